"""
Error values — configuration and scoring failures returned to callers
so that forms and trackers can show a specific corrective message.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RuleErrorCode(str, Enum):
    INCOMPATIBLE_VARIATION = "IncompatibleVariation"
    INVALID_CUSTOM_RULE = "InvalidCustomRule"
    CONFIGURATION_LOCKED = "ConfigurationLocked"


class ScoringErrorCode(str, Enum):
    MATCH_ALREADY_COMPLETE = "MatchAlreadyComplete"
    EVENT_OUTSIDE_TIEBREAK_WINDOW = "EventOutsideTiebreakWindow"
    UNKNOWN_WINNER = "UnknownWinner"
    SERVER_MISMATCH = "ServerMismatch"
    INVALID_EVENT_DETAIL = "InvalidEventDetail"
    DETAIL_NOT_TRACKED = "DetailNotTracked"
    INVALID_EVENT = "InvalidEvent"
    CURSOR_OUT_OF_RANGE = "CursorOutOfRange"


class RuleError(BaseModel):
    """Config-time failure."""
    model_config = ConfigDict(frozen=True)

    code: RuleErrorCode
    message: str
    field: Optional[str] = None


class ScoringError(BaseModel):
    """Run-time failure; the match state is left untouched."""
    model_config = ConfigDict(frozen=True)

    code: ScoringErrorCode
    message: str
    sequence_no: Optional[int] = None


class UnknownFormat(LookupError):
    """Raised for a format identifier outside ``MatchFormat``."""
