"""
Scoring Rules Resolver — Turns a format, a scoring variation and optional
tiebreak overrides into the EffectiveRules the scoring engine runs on.

Resolution is pure and total: every enum combination yields either rules or
a RuleError value that a configuration form can render directly.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Union

from matchtrack.engine.formats import get_format_rules
from matchtrack.models.errors import RuleError, RuleErrorCode
from matchtrack.models.match import (
    EffectiveRules,
    FormatRules,
    MatchConfig,
    MatchFormat,
    ScoringVariation,
    TiebreakPhase,
)

logger = logging.getLogger("matchtrack.engine.rules")

SET_PHASES = frozenset({TiebreakPhase.SET, TiebreakPhase.FINAL_SET})
TIEBREAK_ONLY_PHASES = frozenset({TiebreakPhase.MATCH})


def resolve(
    match_format: MatchFormat,
    variation: ScoringVariation = ScoringVariation.STANDARD,
    no_ad_scoring: bool = False,
    custom_tiebreak_rules: Optional[Mapping[str, int]] = None,
) -> Union[EffectiveRules, RuleError]:
    """Resolve the rules for one match configuration."""
    catalog = get_format_rules(match_format)
    variation = ScoringVariation(variation)

    if catalog.is_tiebreak_only:
        # No deuce and no final set in a lone tiebreak.
        if variation is not ScoringVariation.STANDARD:
            logger.debug("Forcing %s to standard for %s", variation.value, catalog.format.value)
        variation = ScoringVariation.STANDARD
        no_ad = True
    else:
        if variation not in catalog.compatible_variations:
            return RuleError(
                code=RuleErrorCode.INCOMPATIBLE_VARIATION,
                message=(
                    f"{variation.display_name} is not available for "
                    f"{catalog.description}"
                ),
                field="variation",
            )
        no_ad = bool(no_ad_scoring) or catalog.no_ad_forced

    custom = _validate_custom_rules(catalog, custom_tiebreak_rules)
    if isinstance(custom, RuleError):
        return custom

    tie_break_point = catalog.tiebreak_points
    if variation is ScoringVariation.ONE_SET_TIEBREAK_10:
        tie_break_point = 10

    return EffectiveRules(
        format=catalog.format,
        variation=variation,
        sets_to_win=catalog.sets_to_win,
        max_sets=catalog.max_sets,
        games_per_set=catalog.games_per_set,
        tiebreak_at=catalog.tiebreak_at,
        tie_break_point=tie_break_point,
        no_ad_scoring=no_ad,
        final_set_uses_tiebreak10=variation is ScoringVariation.FINAL_SET_TIEBREAK_10,
        is_tiebreak_only_format=catalog.is_tiebreak_only,
        custom_tiebreak_rules=custom,
    )


def resolve_config(config: MatchConfig) -> Union[EffectiveRules, RuleError]:
    return resolve(
        config.format,
        config.variation,
        config.no_ad_scoring,
        config.custom_tiebreak_rules,
    )


def _validate_custom_rules(
    catalog: FormatRules,
    custom_tiebreak_rules: Optional[Mapping[str, int]],
) -> Union[dict[TiebreakPhase, int], RuleError, None]:
    if not custom_tiebreak_rules:
        return None

    allowed = TIEBREAK_ONLY_PHASES if catalog.is_tiebreak_only else SET_PHASES
    resolved: dict[TiebreakPhase, int] = {}
    for key, value in custom_tiebreak_rules.items():
        try:
            phase = TiebreakPhase(key)
        except ValueError:
            return _invalid_rule(f"Unknown tiebreak phase {key!r}")
        if phase not in allowed:
            return _invalid_rule(
                f"A {phase.value!r} tiebreak does not occur in {catalog.description}"
            )
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            return _invalid_rule(
                f"Tiebreak target for {phase.value!r} must be a positive whole number, got {value!r}"
            )
        resolved[phase] = value
    return resolved


def _invalid_rule(message: str) -> RuleError:
    return RuleError(
        code=RuleErrorCode.INVALID_CUSTOM_RULE,
        message=message,
        field="custom_tiebreak_rules",
    )
