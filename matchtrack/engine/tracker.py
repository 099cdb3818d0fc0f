"""
Match Tracker — One tracked match: its configuration, resolved rules,
scoring engine and event log behind a single lock.

Every mutating call (append, undo, redo, reconfigure) holds the match lock,
so a recorder and a reviewer sharing one tracker never interleave.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from matchtrack.engine.event_log import EventLog
from matchtrack.engine.rules import resolve_config
from matchtrack.engine.scoring import ScoringEngine
from matchtrack.engine.stats_calculator import StatsCalculator
from matchtrack.models.errors import RuleError, RuleErrorCode, ScoringError, ScoringErrorCode
from matchtrack.models.events import HistoryStep, MatchSnapshot, PointEvent, now_ms
from matchtrack.models.match import (
    EffectiveRules,
    MatchConfig,
    MatchState,
    Player,
    PointContext,
)
from matchtrack.models.stats import MatchStatistics

logger = logging.getLogger("matchtrack.engine.tracker")

_stats_calc = StatsCalculator()


class MatchTracker:
    """
    Usage:
        tracker = MatchTracker.create(MatchConfig(format=MatchFormat.ONE_SET))
        tracker.record_point(Player.P1)
        tracker.undo()
        stats = tracker.statistics()
    """

    def __init__(
        self,
        config: MatchConfig,
        rules: EffectiveRules,
        match_id: Optional[str] = None,
        log: Optional[EventLog] = None,
    ):
        self.match_id = match_id or str(uuid.uuid4())
        self._config = config
        self._rules = rules
        self._engine = log.engine if log is not None else self._build_engine(config, rules)
        self._log = log if log is not None else EventLog(self._engine)
        self._lock = threading.RLock()

    @classmethod
    def create(
        cls, config: MatchConfig, match_id: Optional[str] = None
    ) -> Union[MatchTracker, RuleError]:
        """Resolve the configuration and open an empty match."""
        rules = resolve_config(config)
        if isinstance(rules, RuleError):
            logger.warning("Rejected match config (%s): %s", rules.code.value, rules.message)
            return rules
        tracker = cls(config, rules, match_id=match_id)
        logger.info(
            "Match %s created: %s, %s, %s",
            tracker.match_id, config.format.value, rules.variation.value,
            config.tracking_level.value,
        )
        return tracker

    @classmethod
    def restore(
        cls, snapshot: MatchSnapshot
    ) -> Union[MatchTracker, RuleError, ScoringError]:
        """Rebuild a tracker from a saved snapshot, replaying every event."""
        rules = resolve_config(snapshot.config)
        if isinstance(rules, RuleError):
            return rules
        engine = cls._build_engine(snapshot.config, rules)
        log = EventLog.replay(engine, snapshot.events, cursor=snapshot.cursor)
        if isinstance(log, ScoringError):
            logger.warning("Snapshot %s does not replay: %s", snapshot.match_id, log.message)
            return log
        logger.info(
            "Match %s restored at point %d of %d",
            snapshot.match_id, log.cursor, len(log),
        )
        return cls(snapshot.config, rules, match_id=snapshot.match_id, log=log)

    @staticmethod
    def _build_engine(config: MatchConfig, rules: EffectiveRules) -> ScoringEngine:
        return ScoringEngine(
            rules,
            initial_server=config.initial_server,
            tracking_level=config.tracking_level,
        )

    # ── Read access ──────────────────────────────────────────────────────────

    @property
    def config(self) -> MatchConfig:
        return self._config

    @property
    def rules(self) -> EffectiveRules:
        return self._rules

    @property
    def state(self) -> MatchState:
        return self._log.state

    @property
    def cursor(self) -> int:
        return self._log.cursor

    @property
    def events(self) -> list[PointEvent]:
        return self._log.events

    @property
    def can_undo(self) -> bool:
        return self._log.can_undo

    @property
    def can_redo(self) -> bool:
        return self._log.can_redo

    def state_at(self, cursor: int) -> Union[MatchState, ScoringError]:
        with self._lock:
            return self._log.state_at(cursor)

    def point_context(self) -> PointContext:
        return self._engine.point_context(self._log.state)

    def statistics(self) -> MatchStatistics:
        """Statistics over the whole recorded log, independent of the cursor."""
        with self._lock:
            events = self._log.events
        return _stats_calc.compute_statistics(
            events, self._config.tracking_level, engine=self._engine
        )

    # ── Recording ────────────────────────────────────────────────────────────

    def append(
        self, event: Union[PointEvent, Mapping[str, Any]]
    ) -> Union[MatchState, ScoringError]:
        """Record a point given as an event or a plain mapping."""
        if not isinstance(event, PointEvent):
            parsed = _parse_event(event)
            if isinstance(parsed, ScoringError):
                logger.warning("Rejected point payload: %s", parsed.message)
                return parsed
            event = parsed
        with self._lock:
            return self._log.append(event)

    def record_point(self, winner: Player, **details: Any) -> Union[MatchState, ScoringError]:
        return self.append({"winner": winner, **details})

    def undo(self) -> HistoryStep:
        with self._lock:
            return self._log.undo()

    def redo(self) -> HistoryStep:
        with self._lock:
            return self._log.redo()

    # ── Configuration ────────────────────────────────────────────────────────

    def reconfigure(self, **changes: Any) -> Union[MatchConfig, RuleError]:
        """
        Change the configuration of a match that has no points yet.

        Raises TypeError for unknown fields and ValidationError for values
        that are not valid config values at all.
        """
        unknown = set(changes) - set(MatchConfig.model_fields)
        if unknown:
            raise TypeError(f"Unknown match config field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            updated = MatchConfig.model_validate({**self._config.model_dump(), **changes})
            if updated == self._config:
                return self._config
            if len(self._log):
                logger.warning("Match %s: config change refused, points recorded", self.match_id)
                return RuleError(
                    code=RuleErrorCode.CONFIGURATION_LOCKED,
                    message="Configuration cannot change once points have been recorded",
                    field=next(iter(sorted(changes)), None),
                )

            rules = resolve_config(updated)
            if isinstance(rules, RuleError):
                return rules
            self._config = updated
            self._rules = rules
            self._engine = self._build_engine(updated, rules)
            self._log = EventLog(self._engine)
            logger.info("Match %s reconfigured: %s", self.match_id, sorted(changes))
            return updated

    # ── Persistence ──────────────────────────────────────────────────────────

    def snapshot(self) -> MatchSnapshot:
        with self._lock:
            return MatchSnapshot(
                match_id=self.match_id,
                config=self._config,
                events=self._log.events,
                cursor=self._log.cursor,
                saved_at_ms=now_ms(),
                state=self._log.state,
            )


def _parse_event(payload: Mapping[str, Any]) -> Union[PointEvent, ScoringError]:
    try:
        return PointEvent.model_validate(dict(payload))
    except ValidationError as exc:
        errors = exc.errors()
        if any(err["loc"] and err["loc"][0] == "winner" for err in errors):
            return ScoringError(
                code=ScoringErrorCode.UNKNOWN_WINNER,
                message=f"Point winner must be p1 or p2, got {payload.get('winner')!r}",
            )
        first = errors[0]
        where = ".".join(str(part) for part in first["loc"]) or "event"
        return ScoringError(
            code=ScoringErrorCode.INVALID_EVENT,
            message=f"{where}: {first['msg']}",
        )
