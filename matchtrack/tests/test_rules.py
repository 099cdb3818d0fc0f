"""
Tests for the scoring rules resolver — totality, forcing, and custom tiebreaks.
"""

import itertools

import pytest
from matchtrack.engine.rules import resolve, resolve_config
from matchtrack.models.errors import RuleError, RuleErrorCode
from matchtrack.models.match import (
    EffectiveRules,
    MatchConfig,
    MatchFormat,
    ScoringVariation,
    TiebreakPhase,
)

TIEBREAK_ONLY = [MatchFormat.TIEBREAK_7, MatchFormat.TIEBREAK_10, MatchFormat.TIEBREAK_21]


class TestResolve:

    @pytest.mark.parametrize(
        "fmt,variation,no_ad",
        list(itertools.product(MatchFormat, ScoringVariation, [False, True])),
    )
    def test_resolve_is_total(self, fmt, variation, no_ad):
        result = resolve(fmt, variation, no_ad)
        assert isinstance(result, (EffectiveRules, RuleError))

    @pytest.mark.parametrize(
        "fmt,variation", list(itertools.product(TIEBREAK_ONLY, ScoringVariation))
    )
    def test_tiebreak_only_forces_standard_no_ad(self, fmt, variation):
        rules = resolve(fmt, variation, no_ad_scoring=False)
        assert isinstance(rules, EffectiveRules)
        assert rules.no_ad_scoring is True
        assert rules.variation is ScoringVariation.STANDARD
        assert rules.is_tiebreak_only_format

    def test_final_set_tiebreak10_rejected_for_one_set(self):
        result = resolve(MatchFormat.ONE_SET, ScoringVariation.FINAL_SET_TIEBREAK_10)
        assert isinstance(result, RuleError)
        assert result.code is RuleErrorCode.INCOMPATIBLE_VARIATION
        assert result.field == "variation"

    def test_one_set_tiebreak10_rejected_for_best_of_three(self):
        result = resolve(MatchFormat.BEST_OF_THREE, ScoringVariation.ONE_SET_TIEBREAK_10)
        assert isinstance(result, RuleError)
        assert result.code is RuleErrorCode.INCOMPATIBLE_VARIATION

    def test_short_sets_force_no_ad(self):
        rules = resolve(MatchFormat.SHORT_SETS, no_ad_scoring=False)
        assert rules.no_ad_scoring is True

    def test_no_ad_is_honoured(self):
        assert resolve(MatchFormat.BEST_OF_THREE, no_ad_scoring=True).no_ad_scoring is True
        assert resolve(MatchFormat.BEST_OF_THREE).no_ad_scoring is False

    def test_one_set_tiebreak10(self):
        rules = resolve(MatchFormat.ONE_SET, ScoringVariation.ONE_SET_TIEBREAK_10)
        assert rules.tie_break_point == 10
        assert rules.tiebreak_target(0) == 10

    def test_final_set_tiebreak10_targets_deciding_set_only(self):
        rules = resolve(MatchFormat.BEST_OF_THREE, ScoringVariation.FINAL_SET_TIEBREAK_10)
        assert rules.final_set_uses_tiebreak10
        assert rules.tiebreak_target(0) == 7
        assert rules.tiebreak_target(1) == 7
        assert rules.tiebreak_target(2) == 10
        assert rules.final_set_tie_break_point == 10

    def test_resolve_config(self):
        rules = resolve_config(MatchConfig(format=MatchFormat.BEST_OF_FIVE, no_ad_scoring=True))
        assert rules.sets_to_win == 3
        assert rules.max_sets == 5
        assert rules.no_ad_scoring


class TestCustomTiebreakRules:

    def test_final_set_override(self):
        rules = resolve(MatchFormat.BEST_OF_FIVE, custom_tiebreak_rules={"finalSet": 12})
        assert rules.custom_targets == {TiebreakPhase.FINAL_SET: 12}
        assert rules.tiebreak_target(0) == 7
        assert rules.tiebreak_target(4) == 12

    def test_final_set_override_beats_variation(self):
        rules = resolve(
            MatchFormat.BEST_OF_THREE,
            ScoringVariation.FINAL_SET_TIEBREAK_10,
            custom_tiebreak_rules={"finalSet": 15},
        )
        assert rules.tiebreak_target(2) == 15

    def test_set_override_applies_to_every_set(self):
        rules = resolve(MatchFormat.BEST_OF_THREE, custom_tiebreak_rules={"set": 5})
        assert [rules.tiebreak_target(i) for i in range(3)] == [5, 5, 5]

    def test_match_override_for_tiebreak_only(self):
        rules = resolve(MatchFormat.TIEBREAK_10, custom_tiebreak_rules={"match": 15})
        assert rules.tiebreak_target() == 15

    @pytest.mark.parametrize("custom", [
        {"set": 0},
        {"set": -7},
        {"set": 7.5},
        {"set": True},
        {"set": "7"},
        {"overtime": 7},
        {"match": 15},
    ])
    def test_invalid_overrides(self, custom):
        result = resolve(MatchFormat.BEST_OF_THREE, custom_tiebreak_rules=custom)
        assert isinstance(result, RuleError)
        assert result.code is RuleErrorCode.INVALID_CUSTOM_RULE
        assert result.field == "custom_tiebreak_rules"

    def test_set_phase_rejected_for_tiebreak_only(self):
        result = resolve(MatchFormat.TIEBREAK_7, custom_tiebreak_rules={"set": 9})
        assert isinstance(result, RuleError)
        assert result.code is RuleErrorCode.INVALID_CUSTOM_RULE

    def test_empty_override_is_ignored(self):
        assert resolve(MatchFormat.ONE_SET, custom_tiebreak_rules={}).custom_tiebreak_rules is None

    @pytest.mark.parametrize("custom", [{"set": True}, {"set": 7.0}, {"set": 7.5}])
    def test_invalid_overrides_through_config(self, custom):
        result = resolve_config(MatchConfig(custom_tiebreak_rules=custom))
        assert isinstance(result, RuleError)
        assert result.code is RuleErrorCode.INVALID_CUSTOM_RULE

    def test_resolved_overrides_are_immutable(self):
        rules = resolve(MatchFormat.BEST_OF_THREE, custom_tiebreak_rules={"set": 5})
        assert rules.custom_tiebreak_rules == ((TiebreakPhase.SET, 5),)
        rules.custom_targets[TiebreakPhase.SET] = 1
        assert rules.tiebreak_target(0) == 5
