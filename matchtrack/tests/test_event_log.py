"""
Tests for the event log — cursor folding, undo/redo and truncation.
"""

from matchtrack.engine.event_log import EventLog
from matchtrack.engine.rules import resolve
from matchtrack.engine.scoring import ScoringEngine
from matchtrack.models.errors import ScoringError, ScoringErrorCode
from matchtrack.models.events import PointEvent
from matchtrack.models.match import MatchFormat, Player

P1, P2 = Player.P1, Player.P2


class TestEventLog:

    def setup_method(self):
        self.engine = ScoringEngine(resolve(MatchFormat.BEST_OF_THREE))

    def _log(self, winners=(), **kwargs) -> EventLog:
        log = EventLog(self.engine, **kwargs)
        for w in winners:
            result = log.append(PointEvent(winner=w))
            assert not isinstance(result, ScoringError)
        return log

    def test_append_stamps_sequence_and_server(self):
        log = self._log([P1, P1, P1, P1, P2])
        events = log.events
        assert [e.sequence_no for e in events] == [1, 2, 3, 4, 5]
        assert [e.serving_player for e in events] == [P1, P1, P1, P1, P2]
        assert log.cursor == 5

    def test_state_is_fold_of_active_events(self):
        log = self._log([P1, P2, P1, P1, P1, P2])
        assert log.state == self.engine.fold(log.active_events)

    def test_state_at_is_idempotent(self):
        log = self._log([P1, P2, P1, P1, P2, P2, P2])
        assert log.state_at(4) == log.state_at(4)
        assert log.state_at(0) == self.engine.initial_state()

    def test_state_at_out_of_range(self):
        log = self._log([P1, P2])
        for cursor in (-1, 3):
            result = log.state_at(cursor)
            assert isinstance(result, ScoringError)
            assert result.code is ScoringErrorCode.CURSOR_OUT_OF_RANGE

    def test_undo_redo_round_trip(self):
        log = self._log([P1, P2])
        after_append = log.append(PointEvent(winner=P1))
        assert log.undo().moved
        step = log.redo()
        assert step.moved
        assert step.state == after_append
        assert log.state == after_append

    def test_undo_moves_cursor_only(self):
        log = self._log([P1, P1, P2])
        step = log.undo()
        assert step.cursor == 2
        assert len(log) == 3
        assert log.can_redo
        assert step.state.current_game.p1_points == 2

    def test_boundaries_are_not_errors(self):
        log = self._log()
        step = log.undo()
        assert step.moved is False
        assert step.cursor == 0
        step = log.redo()
        assert step.moved is False

        log = self._log([P1])
        assert log.redo().moved is False

    def test_append_after_undo_truncates(self):
        log = self._log()
        log.append(PointEvent(winner=P1))
        log.append(PointEvent(winner=P2))
        log.undo()
        log.append(PointEvent(winner=P1, between_point_seconds=20))

        events = log.events
        assert [e.winner for e in events] == [P1, P1]
        assert events[1].between_point_seconds == 20
        assert [e.sequence_no for e in events] == [1, 2]
        assert not log.can_redo

    def test_rejected_append_keeps_redo_tail(self):
        log = self._log([P1, P2])
        log.undo()
        result = log.append(PointEvent(winner=P1, serving_player=P2))
        assert isinstance(result, ScoringError)
        assert len(log) == 2
        assert log.cursor == 1
        assert log.can_redo

    def test_checkpoints_do_not_change_states(self):
        winners = [P1, P2, P1, P1, P2, P1, P1, P2, P2, P1, P1]
        log = self._log(winners, snapshot_interval=3)
        for cursor in range(len(winners) + 1):
            assert log.state_at(cursor) == self.engine.fold(log.events[:cursor])

        for _ in range(7):
            log.undo()
        log.append(PointEvent(winner=P2))
        assert log.state == self.engine.fold(log.events)
        assert len(log) == 5

    def test_returned_states_are_copies(self):
        log = self._log([P1])
        state = log.state
        state.current_game.p1_points = 3
        assert log.state.current_game.p1_points == 1

    def test_replay(self):
        source = self._log([P1, P1, P2, P1, P1, P2])
        replayed = EventLog.replay(self.engine, source.events, cursor=4)
        assert isinstance(replayed, EventLog)
        assert replayed.cursor == 4
        assert replayed.state == source.state_at(4)
        assert len(replayed) == 6

    def test_replay_rejects_bad_cursor(self):
        source = self._log([P1, P2])
        result = EventLog.replay(self.engine, source.events, cursor=5)
        assert isinstance(result, ScoringError)
        assert result.code is ScoringErrorCode.CURSOR_OUT_OF_RANGE

    def test_replay_rejects_invalid_event(self):
        events = [PointEvent(winner=P1, serving_player=P2)]
        result = EventLog.replay(self.engine, events)
        assert isinstance(result, ScoringError)
        assert result.code is ScoringErrorCode.SERVER_MISMATCH
