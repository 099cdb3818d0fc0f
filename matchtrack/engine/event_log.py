"""
Event Log — Append-only point log with an undo/redo cursor.

The match state at any cursor is a fold of the first ``cursor`` events over
the scoring engine. Undo and redo only move the cursor; appending a new
point after an undo discards the redo tail. Folded states are checkpointed
every ``snapshot_interval`` events so replays start from the nearest one.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from matchtrack.config import settings
from matchtrack.engine.scoring import ScoringEngine
from matchtrack.models.errors import ScoringError, ScoringErrorCode
from matchtrack.models.events import HistoryStep, PointEvent
from matchtrack.models.match import MatchState

logger = logging.getLogger("matchtrack.engine.event_log")


class EventLog:
    """Ordered point events plus the cursor marking the current position."""

    def __init__(self, engine: ScoringEngine, snapshot_interval: Optional[int] = None):
        self.engine = engine
        self.snapshot_interval = snapshot_interval or settings.SNAPSHOT_INTERVAL
        self._events: list[PointEvent] = []
        self._cursor = 0
        self._checkpoints: dict[int, MatchState] = {0: engine.initial_state()}
        self._current: MatchState = self._checkpoints[0]

    @classmethod
    def replay(
        cls,
        engine: ScoringEngine,
        events: Iterable[PointEvent],
        cursor: Optional[int] = None,
        snapshot_interval: Optional[int] = None,
    ) -> Union[EventLog, ScoringError]:
        """Rebuild a log from stored events, re-validating every point."""
        log = cls(engine, snapshot_interval)
        for event in events:
            result = log.append(event)
            if isinstance(result, ScoringError):
                return result

        if cursor is not None and cursor != len(log):
            if not 0 <= cursor <= len(log):
                return _cursor_error(cursor, len(log))
            log._cursor = cursor
            log._current = log._fold_to(cursor)
        return log

    # ── Read access ──────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._events)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def events(self) -> list[PointEvent]:
        """The whole log, including points past the cursor."""
        return list(self._events)

    @property
    def active_events(self) -> list[PointEvent]:
        return self._events[: self._cursor]

    @property
    def state(self) -> MatchState:
        return self._current.model_copy(deep=True)

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._events)

    def state_at(self, cursor: int) -> Union[MatchState, ScoringError]:
        if not 0 <= cursor <= len(self._events):
            return _cursor_error(cursor, len(self._events))
        return self._fold_to(cursor).model_copy(deep=True)

    # ── Mutation ─────────────────────────────────────────────────────────────

    def append(self, event: PointEvent) -> Union[MatchState, ScoringError]:
        """Validate and record a point at the cursor."""
        current = self._current
        stamped = event.model_copy(update={
            "sequence_no": self._cursor + 1,
            "serving_player": event.serving_player or current.server,
        })

        result = self.engine.apply(current, stamped)
        if isinstance(result, ScoringError):
            return result

        if self._cursor < len(self._events):
            discarded = len(self._events) - self._cursor
            del self._events[self._cursor:]
            self._checkpoints = {k: v for k, v in self._checkpoints.items() if k <= self._cursor}
            logger.info("Discarded %d undone point(s) after #%d", discarded, self._cursor)

        self._events.append(stamped)
        self._cursor += 1
        self._current = result
        if self._cursor % self.snapshot_interval == 0:
            self._checkpoints[self._cursor] = result
        return result.model_copy(deep=True)

    def undo(self) -> HistoryStep:
        if not self.can_undo:
            return HistoryStep(moved=False, cursor=self._cursor, state=self.state)
        self._cursor -= 1
        self._current = self._fold_to(self._cursor)
        logger.info("Undo → point %d of %d", self._cursor, len(self._events))
        return HistoryStep(moved=True, cursor=self._cursor, state=self.state)

    def redo(self) -> HistoryStep:
        if not self.can_redo:
            return HistoryStep(moved=False, cursor=self._cursor, state=self.state)
        self._cursor += 1
        self._current = self._fold_to(self._cursor)
        logger.info("Redo → point %d of %d", self._cursor, len(self._events))
        return HistoryStep(moved=True, cursor=self._cursor, state=self.state)

    # ── Folding ──────────────────────────────────────────────────────────────

    def _fold_to(self, cursor: int) -> MatchState:
        base = max(k for k in self._checkpoints if k <= cursor)
        state = self._checkpoints[base]
        for index in range(base, cursor):
            result = self.engine.apply(state, self._events[index])
            if isinstance(result, ScoringError):
                # Every stored event was validated on append.
                raise RuntimeError(f"Corrupt event log at point {index + 1}: {result.message}")
            state = result
            if (index + 1) % self.snapshot_interval == 0:
                self._checkpoints[index + 1] = state
        return state


def _cursor_error(cursor: int, length: int) -> ScoringError:
    return ScoringError(
        code=ScoringErrorCode.CURSOR_OUT_OF_RANGE,
        message=f"Cursor {cursor} outside 0..{length}",
    )
