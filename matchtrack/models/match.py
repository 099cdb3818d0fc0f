"""
Match data models — Formats, rules, and the derived match state.
Supports points, games, sets, tiebreaks, and complete match lifecycle.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ── Enums ────────────────────────────────────────────────────────────────────

class MatchFormat(str, Enum):
    ONE_SET = "oneSet"
    BEST_OF_THREE = "bestOfThree"
    BEST_OF_FIVE = "bestOfFive"
    SHORT_SETS = "shortSets"
    PRO_SET_8 = "proSet8"
    TIEBREAK_7 = "tiebreak7"
    TIEBREAK_10 = "tiebreak10"
    TIEBREAK_21 = "tiebreak21"


class ScoringVariation(str, Enum):
    STANDARD = "standard"
    FINAL_SET_TIEBREAK_10 = "finalSetTiebreak10"
    ONE_SET_TIEBREAK_10 = "oneSetTiebreak10"

    @property
    def display_name(self) -> str:
        return {
            ScoringVariation.STANDARD: "Standard Scoring",
            ScoringVariation.FINAL_SET_TIEBREAK_10: "Final Set 10-Point Tiebreak",
            ScoringVariation.ONE_SET_TIEBREAK_10: "One Set 10-Point Tiebreak",
        }[self]


class TrackingLevel(str, Enum):
    LEVEL_1 = "level1"    # winner + server
    LEVEL_2 = "level2"    # + serve, shot, placement, reactions
    LEVEL_3 = "level3"    # + rally length, court position, timing

    @property
    def rank(self) -> int:
        return int(self.value[-1])

    @property
    def display_name(self) -> str:
        return {
            TrackingLevel.LEVEL_1: "Basic Tracking",
            TrackingLevel.LEVEL_2: "Advanced Tracking",
            TrackingLevel.LEVEL_3: "Professional Tracking",
        }[self]

    def includes(self, other: TrackingLevel) -> bool:
        return self.rank >= other.rank


class Player(str, Enum):
    P1 = "p1"
    P2 = "p2"

    @property
    def opponent(self) -> Player:
        return Player.P2 if self is Player.P1 else Player.P1


class TiebreakPhase(str, Enum):
    """Keys of a custom tiebreak override."""
    SET = "set"               # an ordinary set tiebreak
    FINAL_SET = "finalSet"    # the deciding-set tiebreak
    MATCH = "match"           # the lone tiebreak of a tiebreak-only format


class MatchStatus(str, Enum):
    IN_PROGRESS = "inProgress"
    COMPLETE = "complete"


class PointScore(str, Enum):
    ZERO = "0"
    FIFTEEN = "15"
    THIRTY = "30"
    FORTY = "40"
    ADVANTAGE = "AD"


POINT_CALLS = [PointScore.ZERO, PointScore.FIFTEEN, PointScore.THIRTY, PointScore.FORTY]


# ── Configuration & Rules ────────────────────────────────────────────────────

class MatchConfig(BaseModel):
    """Configuration for a tracked match. Fixed once points exist."""
    model_config = ConfigDict(frozen=True)

    format: MatchFormat = MatchFormat.BEST_OF_THREE
    variation: ScoringVariation = ScoringVariation.STANDARD
    no_ad_scoring: bool = Field(default=False, description="Sudden-death deciding point at deuce")
    custom_tiebreak_rules: Optional[dict[str, Any]] = Field(
        default=None, description="Tiebreak point target per phase: set | finalSet | match"
    )
    tracking_level: TrackingLevel = TrackingLevel.LEVEL_1
    initial_server: Player = Player.P1


class FormatRules(BaseModel):
    """One row of the format catalog."""
    model_config = ConfigDict(frozen=True)

    format: MatchFormat
    description: str
    sets_to_win: int
    max_sets: int
    games_per_set: int
    tiebreak_at: int
    tiebreak_points: int
    no_ad_forced: bool = False
    is_tiebreak_only: bool = False
    compatible_variations: tuple[ScoringVariation, ...] = (ScoringVariation.STANDARD,)


class EffectiveRules(BaseModel):
    """Fully resolved rules consumed by the scoring engine."""
    model_config = ConfigDict(frozen=True)

    format: MatchFormat
    variation: ScoringVariation
    sets_to_win: int
    max_sets: int
    games_per_set: int
    tiebreak_at: int
    tie_break_point: int
    no_ad_scoring: bool
    final_set_uses_tiebreak10: bool = False
    is_tiebreak_only_format: bool = False
    custom_tiebreak_rules: Optional[tuple[tuple[TiebreakPhase, int], ...]] = None

    @field_validator("custom_tiebreak_rules", mode="before")
    @classmethod
    def _freeze_custom_rules(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return tuple(sorted(value.items(), key=lambda item: TiebreakPhase(item[0]).value)) or None
        return value

    @property
    def custom_targets(self) -> dict[TiebreakPhase, int]:
        """Custom tiebreak targets keyed by phase (a copy)."""
        return dict(self.custom_tiebreak_rules or ())

    @model_validator(mode="after")
    def _check_progression(self) -> EffectiveRules:
        if self.is_tiebreak_only_format != (self.games_per_set == 0):
            raise ValueError("rules must describe either games-and-sets or a single tiebreak")
        return self

    def is_deciding_set(self, set_index: int) -> bool:
        return set_index == self.max_sets - 1

    def tiebreak_target(self, set_index: int = 0) -> int:
        """Points needed to take the tiebreak played in the given set."""
        custom = self.custom_targets
        if self.is_tiebreak_only_format:
            return custom.get(TiebreakPhase.MATCH, self.tie_break_point)
        if self.is_deciding_set(set_index):
            if TiebreakPhase.FINAL_SET in custom:
                return custom[TiebreakPhase.FINAL_SET]
            if self.final_set_uses_tiebreak10:
                return 10
        return custom.get(TiebreakPhase.SET, self.tie_break_point)

    @property
    def final_set_tie_break_point(self) -> int:
        return self.tiebreak_target(self.max_sets - 1)


# ── Derived State ────────────────────────────────────────────────────────────

class GameScore(BaseModel):
    """Points in the game (or tiebreak) currently being played."""
    p1_points: int = 0
    p2_points: int = 0
    is_tiebreak: bool = False
    tiebreak_first_server: Optional[Player] = None

    def points(self, player: Player) -> int:
        return self.p1_points if player is Player.P1 else self.p2_points

    def add_point(self, player: Player) -> None:
        if player is Player.P1:
            self.p1_points += 1
        else:
            self.p2_points += 1

    @property
    def total_points(self) -> int:
        return self.p1_points + self.p2_points


class TiebreakScore(BaseModel):
    p1_points: int = 0
    p2_points: int = 0


class SetRecord(BaseModel):
    """Games in one set; the last record of a match may still be in play."""
    p1_games: int = 0
    p2_games: int = 0
    tiebreak: Optional[TiebreakScore] = None
    winner: Optional[Player] = None

    def games(self, player: Player) -> int:
        return self.p1_games if player is Player.P1 else self.p2_games

    def add_game(self, player: Player) -> None:
        if player is Player.P1:
            self.p1_games += 1
        else:
            self.p2_games += 1

    @property
    def is_complete(self) -> bool:
        return self.winner is not None


class MatchState(BaseModel):
    """Complete match state, always recomputed from the event log."""
    sets: list[SetRecord] = Field(default_factory=lambda: [SetRecord()])
    current_set_index: int = 0
    current_game: GameScore = Field(default_factory=GameScore)
    server: Player = Player.P1
    match_winner: Optional[Player] = None
    is_complete: bool = False
    status: MatchStatus = MatchStatus.IN_PROGRESS
    points_played: int = 0

    @property
    def current_set(self) -> SetRecord:
        return self.sets[self.current_set_index]

    def sets_won(self, player: Player) -> int:
        return sum(1 for s in self.sets if s.winner is player)

    @property
    def game_call(self) -> str:
        """Umpire-style call for the game in progress."""
        g = self.current_game
        if g.is_tiebreak:
            return f"{g.p1_points}-{g.p2_points}"
        p1, p2 = g.p1_points, g.p2_points
        if p1 >= 3 and p2 >= 3:
            if p1 == p2:
                return "Deuce"
            leader = Player.P1 if p1 > p2 else Player.P2
            return f"Ad {leader.value}"
        return f"{POINT_CALLS[min(p1, 3)].value}-{POINT_CALLS[min(p2, 3)].value}"

    @property
    def score_display(self) -> str:
        """Human-readable score string."""
        parts = []
        for s in self.sets:
            set_score = f"{s.p1_games}-{s.p2_games}"
            if s.tiebreak is not None:
                set_score += f" [{s.tiebreak.p1_points}-{s.tiebreak.p2_points}]"
            parts.append(set_score)
        if not self.is_complete:
            g = self.current_game
            if g.is_tiebreak:
                parts[-1] += f" ({g.p1_points}-{g.p2_points})"
            elif g.total_points:
                parts[-1] += f" ({self._point_display(g.p1_points, g.p2_points)})"
        return " | ".join(parts)

    @staticmethod
    def _point_display(p1: int, p2: int) -> str:
        if p1 >= 3 and p2 >= 3:
            if p1 > p2:
                return f"{PointScore.ADVANTAGE.value}-{PointScore.FORTY.value}"
            if p2 > p1:
                return f"{PointScore.FORTY.value}-{PointScore.ADVANTAGE.value}"
            return f"{PointScore.FORTY.value}-{PointScore.FORTY.value}"
        return f"{POINT_CALLS[min(p1, 3)].value}-{POINT_CALLS[min(p2, 3)].value}"


class PointContext(BaseModel):
    """What the next point is worth to each player."""
    server: Player
    is_tiebreak: bool = False
    game_point_for: list[Player] = Field(default_factory=list)
    break_point_for: Optional[Player] = None
    set_point_for: list[Player] = Field(default_factory=list)
    match_point_for: list[Player] = Field(default_factory=list)
