"""
Format Catalog — Rule parameters for every supported match format.
"""

from __future__ import annotations

from matchtrack.models.errors import UnknownFormat
from matchtrack.models.match import FormatRules, MatchFormat, ScoringVariation


_STANDARD = ScoringVariation.STANDARD
_FINAL_SET_TB10 = ScoringVariation.FINAL_SET_TIEBREAK_10
_ONE_SET_TB10 = ScoringVariation.ONE_SET_TIEBREAK_10


FORMAT_CATALOG: dict[MatchFormat, FormatRules] = {
    MatchFormat.ONE_SET: FormatRules(
        format=MatchFormat.ONE_SET,
        description="One Set with 7-point tiebreak at 6-6",
        sets_to_win=1, max_sets=1, games_per_set=6, tiebreak_at=6, tiebreak_points=7,
        compatible_variations=(_STANDARD, _ONE_SET_TB10),
    ),
    MatchFormat.BEST_OF_THREE: FormatRules(
        format=MatchFormat.BEST_OF_THREE,
        description="2 out of 3 sets with 7-point tiebreak at 6-6",
        sets_to_win=2, max_sets=3, games_per_set=6, tiebreak_at=6, tiebreak_points=7,
        compatible_variations=(_STANDARD, _FINAL_SET_TB10),
    ),
    MatchFormat.BEST_OF_FIVE: FormatRules(
        format=MatchFormat.BEST_OF_FIVE,
        description="3 out of 5 sets with 7-point tiebreak at 6-6",
        sets_to_win=3, max_sets=5, games_per_set=6, tiebreak_at=6, tiebreak_points=7,
        compatible_variations=(_STANDARD, _FINAL_SET_TB10),
    ),
    MatchFormat.SHORT_SETS: FormatRules(
        format=MatchFormat.SHORT_SETS,
        description="4 out of 7 short sets (no-ad scoring and 7-point tiebreak at 3-3)",
        sets_to_win=4, max_sets=7, games_per_set=4, tiebreak_at=3, tiebreak_points=7,
        no_ad_forced=True,
        compatible_variations=(_STANDARD, _FINAL_SET_TB10),
    ),
    MatchFormat.PRO_SET_8: FormatRules(
        format=MatchFormat.PRO_SET_8,
        description="8-game pro set with 7-point tiebreak at 8-8",
        sets_to_win=1, max_sets=1, games_per_set=8, tiebreak_at=8, tiebreak_points=7,
        compatible_variations=(_STANDARD, _FINAL_SET_TB10),
    ),
    MatchFormat.TIEBREAK_7: FormatRules(
        format=MatchFormat.TIEBREAK_7,
        description="Single 7-Point Tiebreaker",
        sets_to_win=1, max_sets=1, games_per_set=0, tiebreak_at=0, tiebreak_points=7,
        no_ad_forced=True, is_tiebreak_only=True,
    ),
    MatchFormat.TIEBREAK_10: FormatRules(
        format=MatchFormat.TIEBREAK_10,
        description="Single 10-Point Tiebreaker",
        sets_to_win=1, max_sets=1, games_per_set=0, tiebreak_at=0, tiebreak_points=10,
        no_ad_forced=True, is_tiebreak_only=True,
    ),
    MatchFormat.TIEBREAK_21: FormatRules(
        format=MatchFormat.TIEBREAK_21,
        description="Single 21-Point Tiebreaker",
        sets_to_win=1, max_sets=1, games_per_set=0, tiebreak_at=0, tiebreak_points=21,
        no_ad_forced=True, is_tiebreak_only=True,
    ),
}


def get_format_rules(match_format: MatchFormat) -> FormatRules:
    """Look up the catalog row for a format."""
    try:
        return FORMAT_CATALOG[MatchFormat(match_format)]
    except (ValueError, KeyError):
        raise UnknownFormat(f"Unknown match format: {match_format!r}") from None


def list_formats() -> list[FormatRules]:
    return [FORMAT_CATALOG[f] for f in MatchFormat]


def is_format_compatible_with_variation(
    match_format: MatchFormat, variation: ScoringVariation
) -> bool:
    return ScoringVariation(variation) in get_format_rules(match_format).compatible_variations


def legal_tiebreak_points(match_format: MatchFormat) -> tuple[int, ...]:
    """Tiebreak targets the catalog and its variations can produce for a format."""
    rules = get_format_rules(match_format)
    if rules.is_tiebreak_only:
        return (rules.tiebreak_points,)
    return (rules.tiebreak_points, 10)
