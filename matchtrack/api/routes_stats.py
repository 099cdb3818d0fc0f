"""
Stats routes — Match and per-set statistics from the recorded point log.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from matchtrack.models.match import Player

router = APIRouter()

# Reference to match trackers (shared with routes_matches)
from matchtrack.api.routes_matches import _trackers


@router.get("/match/{match_id}")
async def get_match_stats(match_id: str):
    """Get statistics for a match, sections limited to its tracking level."""
    tracker = _trackers.get(match_id)
    if not tracker:
        raise HTTPException(404, "Match not found")
    return tracker.statistics().model_dump(mode="json")


@router.get("/match/{match_id}/player/{player}")
async def get_player_match_stats(match_id: str, player: Player):
    """Get one player's side of every statistics section."""
    tracker = _trackers.get(match_id)
    if not tracker:
        raise HTTPException(404, "Match not found")
    stats = tracker.statistics()
    return {
        "player": player.value,
        "tracking_level": stats.tracking_level.value,
        "total_points": stats.total_points,
        "points": stats.points[player].model_dump(mode="json"),
        "serve": _side(stats.serve, player),
        "shot_breakdown": _side(stats.shot_breakdown, player),
        "reactions": stats.reactions[player] if stats.reactions is not None else None,
        "conversion": _side(stats.conversion, player),
        "timing": _timing_side(stats, player),
    }


@router.get("/match/{match_id}/games")
async def get_game_history(match_id: str):
    """Points grouped game by game, with the server of each game."""
    tracker = _trackers.get(match_id)
    if not tracker:
        raise HTTPException(404, "Match not found")
    games = tracker.statistics().games or []
    return {"match_id": match_id, "games": [g.model_dump(mode="json") for g in games]}


def _timing_side(stats, player: Player):
    timing = stats.timing
    if timing is None:
        return None
    return {
        "between_point_seconds": timing.between_point_seconds[player],
        "timed_points": timing.timed_points[player],
        "average_between_point_seconds": timing.average_between_point_seconds[player],
    }


def _side(section, player: Player):
    if section is None:
        return None
    return section[player].model_dump(mode="json")
