"""
Statistics models — Per-match and per-set counters derived from the point log.

Sections that depend on detail the match never tracked are ``None`` rather
than zero-filled, so "not tracked" stays distinguishable from "tracked as zero".
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from matchtrack.models.match import Player, TrackingLevel


class PointsSummary(BaseModel):
    """Available at every tracking level."""
    points_won: int = 0
    service_points_played: int = 0
    service_points_won: int = 0
    return_points_played: int = 0
    return_points_won: int = 0
    service_points_won_pct: float = 0.0
    return_points_won_pct: float = 0.0


class ServeStats(BaseModel):
    aces: int = 0
    double_faults: int = 0
    first_serves: int = 0
    first_serves_in: int = 0
    second_serves: int = 0
    first_serve_points_won: int = 0
    second_serve_points_won: int = 0
    first_serve_pct: float = 0.0
    serve_in_return_out: int = 0
    return_winners: int = 0
    return_errors: int = 0
    placements: dict[str, int] = Field(default_factory=dict)


class ShotBreakdown(BaseModel):
    by_shot_type: dict[str, int] = Field(default_factory=dict)
    by_placement: dict[str, int] = Field(default_factory=dict)
    missed_shots: dict[str, int] = Field(default_factory=dict)
    winners: int = 0
    unforced_errors: int = 0
    forced_errors: int = 0


class RallyStats(BaseModel):
    by_length: dict[str, int] = Field(default_factory=dict)
    court_positions: dict[str, int] = Field(default_factory=dict)


class TimingStats(BaseModel):
    """Professional tracking only. Between-point time is charged to the server."""
    between_point_seconds: dict[Player, int] = Field(
        default_factory=lambda: {Player.P1: 0, Player.P2: 0}
    )
    timed_points: dict[Player, int] = Field(
        default_factory=lambda: {Player.P1: 0, Player.P2: 0}
    )
    average_between_point_seconds: dict[Player, float] = Field(
        default_factory=lambda: {Player.P1: 0.0, Player.P2: 0.0}
    )
    first_point_ms: Optional[int] = None
    last_point_ms: Optional[int] = None
    duration_seconds: float = 0.0


class ConversionStats(BaseModel):
    break_point_opportunities: int = 0
    break_points_won: int = 0
    break_points_faced: int = 0
    break_points_saved: int = 0
    game_points: int = 0
    game_points_won: int = 0
    break_point_conversion_pct: float = 0.0


class StatisticsBlock(BaseModel):
    total_points: int = 0
    points: dict[Player, PointsSummary] = Field(
        default_factory=lambda: {Player.P1: PointsSummary(), Player.P2: PointsSummary()}
    )
    serve: Optional[dict[Player, ServeStats]] = None
    shot_breakdown: Optional[dict[Player, ShotBreakdown]] = None
    reactions: Optional[dict[Player, dict[str, int]]] = None
    rallies: Optional[RallyStats] = None
    timing: Optional[TimingStats] = None
    conversion: Optional[dict[Player, ConversionStats]] = None


class GameRecord(BaseModel):
    """One game (or tiebreak) of the replayed match, with its points in order."""
    set_index: int
    game_index: int
    server: Player
    is_tiebreak: bool = False
    points: list[Player] = Field(default_factory=list)
    winner: Optional[Player] = None


class SetStatistics(StatisticsBlock):
    set_index: int


class MatchStatistics(StatisticsBlock):
    tracking_level: TrackingLevel
    sets: Optional[list[SetStatistics]] = None
    games: Optional[list[GameRecord]] = None
