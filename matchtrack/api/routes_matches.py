"""
Match routes — Configure matches, record points, undo/redo, save and resume.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import ValidationError

from matchtrack.config import settings
from matchtrack.engine.storage import JsonFileSnapshotStore, SnapshotStore
from matchtrack.engine.tracker import MatchTracker
from matchtrack.models.errors import RuleError, RuleErrorCode, ScoringError
from matchtrack.models.events import HistoryStep
from matchtrack.models.match import MatchConfig, MatchState

router = APIRouter()

# ── In-memory trackers and saved-match store ─────────────────────────────────
_trackers: dict[str, MatchTracker] = {}
_store: SnapshotStore = JsonFileSnapshotStore()


def _get_tracker(match_id: str) -> MatchTracker:
    tracker = _trackers.get(match_id)
    if not tracker:
        raise HTTPException(status_code=404, detail="Match not found")
    return tracker


def _error(status_code: int, error: RuleError | ScoringError) -> HTTPException:
    return HTTPException(status_code=status_code, detail=error.model_dump(mode="json"))


def _state_view(state: MatchState) -> dict:
    return {
        "state": state.model_dump(mode="json"),
        "score_display": state.score_display,
        "game_call": state.game_call,
        "match_over": state.is_complete,
        "winner": state.match_winner.value if state.match_winner else None,
    }


def _tracker_view(tracker: MatchTracker) -> dict:
    return {
        "match_id": tracker.match_id,
        "config": tracker.config.model_dump(mode="json"),
        "rules": tracker.rules.model_dump(mode="json"),
        "cursor": tracker.cursor,
        "total_events": len(tracker.events),
        "can_undo": tracker.can_undo,
        "can_redo": tracker.can_redo,
        **_state_view(tracker.state),
    }


def _history_view(step: HistoryStep) -> dict:
    return {"moved": step.moved, "cursor": step.cursor, **_state_view(step.state)}


def _default_config() -> dict[str, Any]:
    return {
        "format": settings.DEFAULT_MATCH_FORMAT,
        "variation": settings.DEFAULT_SCORING_VARIATION,
        "tracking_level": settings.DEFAULT_TRACKING_LEVEL,
    }


# ── Lifecycle ────────────────────────────────────────────────────────────────

@router.post("/", status_code=201)
async def create_match(payload: dict[str, Any] = Body(default={})):
    """Create a match from a configuration; omitted fields use the defaults."""
    try:
        config = MatchConfig.model_validate({**_default_config(), **payload})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    tracker = MatchTracker.create(config)
    if isinstance(tracker, RuleError):
        raise _error(422, tracker)
    _trackers[tracker.match_id] = tracker
    return _tracker_view(tracker)


@router.get("/{match_id}")
async def get_match(match_id: str):
    """Get configuration, resolved rules and the state at the cursor."""
    return _tracker_view(_get_tracker(match_id))


@router.get("/{match_id}/score")
async def get_score(match_id: str):
    """Get current score display."""
    tracker = _get_tracker(match_id)
    state = tracker.state
    return {
        "score_display": state.score_display,
        "game_call": state.game_call,
        "server": state.server.value,
        "match_over": state.is_complete,
    }


@router.get("/{match_id}/context")
async def get_point_context(match_id: str):
    """What the next point is worth: game, break, set or match point."""
    return _get_tracker(match_id).point_context().model_dump(mode="json")


@router.patch("/{match_id}/config")
async def update_config(match_id: str, payload: dict[str, Any] = Body(...)):
    """Change the configuration of a match with no recorded points."""
    tracker = _get_tracker(match_id)
    try:
        result = tracker.reconfigure(**payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    except TypeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if isinstance(result, RuleError):
        status = 409 if result.code is RuleErrorCode.CONFIGURATION_LOCKED else 422
        raise _error(status, result)
    return _tracker_view(tracker)


# ── Points & history ─────────────────────────────────────────────────────────

@router.post("/{match_id}/points")
async def record_point(match_id: str, payload: dict[str, Any] = Body(...)):
    """Record one point; detail fields must fit the match's tracking level."""
    tracker = _get_tracker(match_id)
    result = tracker.append(payload)
    if isinstance(result, ScoringError):
        raise _error(409, result)
    return {"cursor": tracker.cursor, **_state_view(result)}


@router.post("/{match_id}/undo")
async def undo_point(match_id: str):
    return _history_view(_get_tracker(match_id).undo())


@router.post("/{match_id}/redo")
async def redo_point(match_id: str):
    return _history_view(_get_tracker(match_id).redo())


@router.get("/{match_id}/state")
async def get_state(match_id: str, cursor: Optional[int] = None):
    """State after the first ``cursor`` points (default: the current cursor)."""
    tracker = _get_tracker(match_id)
    result = tracker.state_at(tracker.cursor if cursor is None else cursor)
    if isinstance(result, ScoringError):
        raise _error(409, result)
    return _state_view(result)


@router.get("/{match_id}/events")
async def get_events(match_id: str):
    """The whole point log, including undone points past the cursor."""
    tracker = _get_tracker(match_id)
    return {
        "cursor": tracker.cursor,
        "events": [e.model_dump(mode="json", exclude_none=True) for e in tracker.events],
    }


# ── Saved matches ────────────────────────────────────────────────────────────

@router.post("/{match_id}/save")
async def save_match(match_id: str):
    tracker = _get_tracker(match_id)
    snapshot = tracker.snapshot()
    _store.save(snapshot)
    return {
        "saved": True,
        "match_id": match_id,
        "cursor": snapshot.cursor,
        "total_events": len(snapshot.events),
    }


@router.post("/{match_id}/resume")
async def resume_match(match_id: str):
    """Load saved progress and replay it into a live tracker."""
    try:
        snapshot = _store.load(match_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No saved match")

    tracker = MatchTracker.restore(snapshot)
    if isinstance(tracker, RuleError):
        raise _error(422, tracker)
    if isinstance(tracker, ScoringError):
        raise _error(409, tracker)
    _trackers[tracker.match_id] = tracker
    return _tracker_view(tracker)


@router.delete("/{match_id}/save")
async def clear_saved_match(match_id: str):
    try:
        cleared = _store.clear(match_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not cleared:
        raise HTTPException(status_code=404, detail="No saved match")
    return {"cleared": True, "match_id": match_id}
