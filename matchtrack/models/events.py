"""
Event data models — Point events, the append-only log entries of a match,
and the snapshot shape used to save and resume a match.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from matchtrack.models.match import MatchConfig, MatchState, Player, TrackingLevel


def now_ms() -> int:
    return int(time.time() * 1000)


# ── Detail Enums ─────────────────────────────────────────────────────────────

class ServeOutcome(str, Enum):
    ACE = "ace"
    DOUBLE_FAULT = "doubleFault"
    RETURN_ERROR = "returnError"
    FORCED_RETURN_ERROR = "forcedReturnError"
    RETURN_WINNER = "returnWinner"
    IN_PLAY = "inPlay"


class RallyEnding(str, Enum):
    WINNER = "winner"
    UNFORCED_ERROR = "unforcedError"
    FORCED_ERROR = "forcedError"


class ServePlacement(str, Enum):
    WIDE = "wide"
    BODY = "body"
    T = "t"
    NET = "net"


class ShotType(str, Enum):
    FOREHAND = "forehand"
    BACKHAND = "backhand"
    FOREHAND_SLICE = "forehandSlice"
    BACKHAND_SLICE = "backhandSlice"
    FOREHAND_DROP_SHOT = "forehandDropShot"
    BACKHAND_DROP_SHOT = "backhandDropShot"
    OVERHEAD = "overhead"
    VOLLEY = "volley"


class ShotPlacement(str, Enum):
    DOWN_THE_LINE = "downTheLine"
    CROSS_COURT = "crossCourt"


class MissedShot(str, Enum):
    NET = "net"
    LONG = "long"
    WIDE = "wide"
    LET = "let"


class Reaction(str, Enum):
    NO_RESPONSE = "noResponse"
    NEGATIVE_SELF_TALK = "negativeSelfTalk"
    POSITIVE_SELF_TALK = "positiveSelfTalk"
    POSITIVE_RESPONSE = "positiveResponse"
    NEGATIVE_RESPONSE = "negativeResponse"


class RallyLength(str, Enum):
    ONE_TO_FOUR = "oneToFour"
    FIVE_TO_EIGHT = "fiveToEight"
    NINE_TO_TWELVE = "nineToTwelve"
    THIRTEEN_TO_TWENTY = "thirteenToTwenty"
    TWENTY_ONE_PLUS = "twentyOnePlus"


class CourtPosition(str, Enum):
    LEFT_COURT = "leftCourt"
    RIGHT_COURT = "rightCourt"
    MIDDLE_COURT = "middleCourt"
    OUT_OF_BOUNDS = "outOfBounds"


class CourtSide(str, Enum):
    DEUCE = "deuce"
    AD = "ad"


# Which optional detail fields each tracking level may carry.
LEVEL_2_FIELDS = frozenset({
    "serve_outcome",
    "is_second_serve",
    "serve_placement",
    "shot_type",
    "shot_placement",
    "missed_shot",
    "rally_ending",
    "reaction_tags",
    "deciding_point_side",
})
LEVEL_3_FIELDS = LEVEL_2_FIELDS | {"rally_length", "court_position", "between_point_seconds"}

TRACKED_FIELDS = {
    TrackingLevel.LEVEL_1: frozenset(),
    TrackingLevel.LEVEL_2: LEVEL_2_FIELDS,
    TrackingLevel.LEVEL_3: LEVEL_3_FIELDS,
}


# ── Event Models ─────────────────────────────────────────────────────────────

class ReactionTags(BaseModel):
    """Between-point reaction of each player."""
    model_config = ConfigDict(frozen=True)

    p1: Optional[Reaction] = None
    p2: Optional[Reaction] = None

    def for_player(self, player: Player) -> Optional[Reaction]:
        return self.p1 if player is Player.P1 else self.p2


class PointEvent(BaseModel):
    """A single recorded point. Immutable once appended to a match log."""
    model_config = ConfigDict(frozen=True)

    sequence_no: int = Field(default=0, ge=0, description="Stamped by the log on append")
    timestamp_ms: int = Field(default_factory=now_ms)
    serving_player: Optional[Player] = None
    winner: Player
    tiebreak: Optional[bool] = Field(
        default=None, description="Recorder's assertion that this point is a tiebreak point"
    )

    # ── Level 2 ──────────────────────────────────────────
    serve_outcome: Optional[ServeOutcome] = None
    is_second_serve: Optional[bool] = None
    serve_placement: Optional[ServePlacement] = None
    shot_type: Optional[ShotType] = None
    shot_placement: Optional[ShotPlacement] = None
    missed_shot: Optional[MissedShot] = None
    rally_ending: Optional[RallyEnding] = None
    reaction_tags: Optional[ReactionTags] = None
    deciding_point_side: Optional[CourtSide] = Field(
        default=None, description="Receiver's side choice on a no-ad deciding point"
    )

    # ── Level 3 ──────────────────────────────────────────
    rally_length: Optional[RallyLength] = None
    court_position: Optional[CourtPosition] = None
    between_point_seconds: Optional[int] = Field(default=None, ge=0)

    @property
    def detail_fields(self) -> set[str]:
        """Names of the optional detail fields this event carries."""
        return {name for name in LEVEL_3_FIELDS if getattr(self, name) is not None}

    def untracked_fields(self, level: TrackingLevel) -> set[str]:
        return self.detail_fields - TRACKED_FIELDS[level]

    @property
    def receiver(self) -> Optional[Player]:
        return self.serving_player.opponent if self.serving_player else None


class HistoryStep(BaseModel):
    """Result of an undo or redo; ``moved`` is False at the log boundary."""
    moved: bool
    cursor: int
    state: MatchState


class MatchSnapshot(BaseModel):
    """Serializable record of a match in progress: ``{config, events, cursor}``."""
    schema_version: int = 1
    match_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    config: MatchConfig
    events: list[PointEvent] = Field(default_factory=list)
    cursor: int = Field(default=0, ge=0)
    saved_at_ms: int = Field(default_factory=now_ms)
    state: Optional[MatchState] = Field(
        default=None, description="Cached state at the cursor; advisory only"
    )

    @model_validator(mode="after")
    def _check_cursor(self) -> MatchSnapshot:
        if self.cursor > len(self.events):
            raise ValueError(f"cursor {self.cursor} is past the end of {len(self.events)} events")
        return self
