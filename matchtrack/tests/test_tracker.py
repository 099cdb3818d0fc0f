"""
Tests for the match tracker — creation, recording, configuration lock and snapshots.
"""

import pytest
from matchtrack.engine.tracker import MatchTracker
from matchtrack.models.errors import RuleError, RuleErrorCode, ScoringError, ScoringErrorCode
from matchtrack.models.events import MatchSnapshot
from matchtrack.models.match import (
    MatchConfig,
    MatchFormat,
    Player,
    ScoringVariation,
    TrackingLevel,
)

P1, P2 = Player.P1, Player.P2


class TestMatchTracker:

    def _make_tracker(self, **kwargs) -> MatchTracker:
        tracker = MatchTracker.create(MatchConfig(**kwargs))
        assert isinstance(tracker, MatchTracker)
        return tracker

    def test_create(self):
        tracker = self._make_tracker(format=MatchFormat.BEST_OF_FIVE, initial_server=P2)
        assert tracker.rules.sets_to_win == 3
        assert tracker.state.server is P2
        assert tracker.cursor == 0
        assert not tracker.can_undo

    def test_create_rejects_incompatible_variation(self):
        result = MatchTracker.create(
            MatchConfig(format=MatchFormat.ONE_SET, variation=ScoringVariation.FINAL_SET_TIEBREAK_10)
        )
        assert isinstance(result, RuleError)
        assert result.code is RuleErrorCode.INCOMPATIBLE_VARIATION

    def test_record_point(self):
        tracker = self._make_tracker()
        state = tracker.record_point(P1)
        assert state.current_game.p1_points == 1
        assert tracker.cursor == 1
        assert tracker.events[0].serving_player is P1

    def test_append_mapping(self):
        tracker = self._make_tracker(tracking_level=TrackingLevel.LEVEL_2)
        state = tracker.append({"winner": "p1", "serve_outcome": "ace", "serve_placement": "t"})
        assert not isinstance(state, ScoringError)
        assert tracker.events[0].serve_outcome.value == "ace"

    def test_unknown_winner(self):
        tracker = self._make_tracker()
        result = tracker.append({"winner": "p3"})
        assert isinstance(result, ScoringError)
        assert result.code is ScoringErrorCode.UNKNOWN_WINNER
        assert tracker.cursor == 0

    def test_missing_winner(self):
        result = self._make_tracker().append({})
        assert result.code is ScoringErrorCode.UNKNOWN_WINNER

    def test_malformed_detail(self):
        tracker = self._make_tracker(tracking_level=TrackingLevel.LEVEL_3)
        result = tracker.append({"winner": "p1", "shot_type": "tweener"})
        assert result.code is ScoringErrorCode.INVALID_EVENT
        assert "shot_type" in result.message

    def test_detail_gated_by_level(self):
        tracker = self._make_tracker(tracking_level=TrackingLevel.LEVEL_1)
        result = tracker.record_point(P1, shot_type="forehand")
        assert result.code is ScoringErrorCode.DETAIL_NOT_TRACKED

    def test_undo_redo(self):
        tracker = self._make_tracker()
        tracker.record_point(P1)
        tracker.record_point(P2)
        assert tracker.undo().cursor == 1
        assert tracker.can_redo
        assert tracker.redo().state.current_game.p2_points == 1

    def test_state_at(self):
        tracker = self._make_tracker()
        for w in (P1, P1, P2):
            tracker.record_point(w)
        assert tracker.state_at(2).current_game.p1_points == 2
        assert tracker.state_at(9).code is ScoringErrorCode.CURSOR_OUT_OF_RANGE

    def test_point_context(self):
        tracker = self._make_tracker()
        for _ in range(3):
            tracker.record_point(P2)
        assert tracker.point_context().break_point_for is P2

    def test_statistics_ignore_cursor(self):
        tracker = self._make_tracker()
        for w in (P1, P1, P2, P2):
            tracker.record_point(w)
        tracker.undo()
        tracker.undo()
        stats = tracker.statistics()
        assert stats.total_points == 4
        assert stats.points[P2].points_won == 2


class TestReconfigure:

    def _make_tracker(self, **kwargs) -> MatchTracker:
        return MatchTracker.create(MatchConfig(**kwargs))

    def test_reconfigure_empty_match(self):
        tracker = self._make_tracker()
        result = tracker.reconfigure(format=MatchFormat.TIEBREAK_10, initial_server=P2)
        assert isinstance(result, MatchConfig)
        assert tracker.rules.is_tiebreak_only_format
        assert tracker.state.current_game.is_tiebreak
        assert tracker.state.server is P2

    def test_locked_once_points_exist(self):
        tracker = self._make_tracker()
        tracker.record_point(P1)
        result = tracker.reconfigure(format=MatchFormat.BEST_OF_FIVE)
        assert isinstance(result, RuleError)
        assert result.code is RuleErrorCode.CONFIGURATION_LOCKED
        assert tracker.config.format is MatchFormat.BEST_OF_THREE

    def test_locked_even_after_undo(self):
        tracker = self._make_tracker()
        tracker.record_point(P1)
        tracker.undo()
        result = tracker.reconfigure(variation=ScoringVariation.FINAL_SET_TIEBREAK_10)
        assert result.code is RuleErrorCode.CONFIGURATION_LOCKED

    def test_unchanged_config_is_not_an_error(self):
        tracker = self._make_tracker()
        tracker.record_point(P1)
        assert tracker.reconfigure(format=MatchFormat.BEST_OF_THREE) == tracker.config

    def test_incompatible_reconfigure_keeps_config(self):
        tracker = self._make_tracker()
        result = tracker.reconfigure(
            format=MatchFormat.TIEBREAK_7, custom_tiebreak_rules={"finalSet": 9}
        )
        assert result.code is RuleErrorCode.INVALID_CUSTOM_RULE
        assert tracker.config.format is MatchFormat.BEST_OF_THREE

    @pytest.mark.parametrize("custom", [{"set": True}, {"set": 7.5}])
    def test_create_rejects_non_integer_tiebreak_target(self, custom):
        result = MatchTracker.create(MatchConfig(custom_tiebreak_rules=custom))
        assert isinstance(result, RuleError)
        assert result.code is RuleErrorCode.INVALID_CUSTOM_RULE

    def test_reconfigure_rejects_boolean_tiebreak_target(self):
        tracker = self._make_tracker()
        result = tracker.reconfigure(custom_tiebreak_rules={"set": True})
        assert result.code is RuleErrorCode.INVALID_CUSTOM_RULE
        assert tracker.config.custom_tiebreak_rules is None

    def test_unknown_field(self):
        with pytest.raises(TypeError):
            self._make_tracker().reconfigure(surface="clay")


class TestSnapshots:

    def test_snapshot_restore_round_trip(self):
        tracker = MatchTracker.create(MatchConfig(format=MatchFormat.ONE_SET))
        for w in (P1, P1, P2, P1, P1, P2, P2):
            tracker.record_point(w)
        tracker.undo()

        snapshot = tracker.snapshot()
        assert snapshot.cursor == 6
        assert len(snapshot.events) == 7

        restored = MatchTracker.restore(MatchSnapshot.model_validate_json(snapshot.model_dump_json()))
        assert isinstance(restored, MatchTracker)
        assert restored.match_id == tracker.match_id
        assert restored.state == tracker.state
        assert restored.cursor == 6
        assert restored.can_redo
        assert restored.redo().state == tracker.redo().state

    def test_restore_rejects_bad_config(self):
        snapshot = MatchSnapshot(
            config=MatchConfig(format=MatchFormat.ONE_SET, variation=ScoringVariation.FINAL_SET_TIEBREAK_10)
        )
        result = MatchTracker.restore(snapshot)
        assert isinstance(result, RuleError)

    def test_restore_rejects_invalid_log(self):
        snapshot = MatchSnapshot(
            config=MatchConfig(format=MatchFormat.TIEBREAK_7),
            events=[{"winner": "p1"}] * 8,
            cursor=8,
        )
        result = MatchTracker.restore(snapshot)
        assert isinstance(result, ScoringError)
        assert result.code is ScoringErrorCode.MATCH_ALREADY_COMPLETE

    def test_snapshot_cursor_past_end_is_invalid(self):
        with pytest.raises(ValueError):
            MatchSnapshot(config=MatchConfig(), events=[], cursor=2)
