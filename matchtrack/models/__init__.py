"""MatchTrack data models — Pydantic schemas for the scoring engine."""

from matchtrack.models.match import *
from matchtrack.models.events import *
from matchtrack.models.errors import *
from matchtrack.models.stats import *
