"""
Format routes — The format catalog and rule resolution for configuration forms.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException

from matchtrack.engine.formats import get_format_rules, legal_tiebreak_points, list_formats
from matchtrack.engine.rules import resolve
from matchtrack.models.errors import RuleError
from matchtrack.models.match import MatchFormat, ScoringVariation, TrackingLevel

router = APIRouter()


@router.get("/")
async def get_formats():
    """Every format with its compatible scoring variations."""
    return {
        "formats": [
            {
                **row.model_dump(mode="json"),
                "variations": [
                    {"value": v.value, "name": v.display_name} for v in row.compatible_variations
                ],
                "legal_tiebreak_points": list(legal_tiebreak_points(row.format)),
            }
            for row in list_formats()
        ],
        "tracking_levels": [
            {"value": level.value, "name": level.display_name} for level in TrackingLevel
        ],
    }


@router.get("/{match_format}")
async def get_format(match_format: MatchFormat):
    return get_format_rules(match_format).model_dump(mode="json")


@router.get("/{match_format}/rules")
async def resolve_rules(
    match_format: MatchFormat,
    variation: ScoringVariation = ScoringVariation.STANDARD,
    no_ad: bool = False,
    set_tiebreak: Optional[int] = None,
    final_set_tiebreak: Optional[int] = None,
    match_tiebreak: Optional[int] = None,
):
    """Preview the rules a configuration resolves to."""
    custom = {
        key: value
        for key, value in (
            ("set", set_tiebreak),
            ("finalSet", final_set_tiebreak),
            ("match", match_tiebreak),
        )
        if value is not None
    }
    rules = resolve(match_format, variation, no_ad, custom or None)
    if isinstance(rules, RuleError):
        raise HTTPException(status_code=422, detail=rules.model_dump(mode="json"))
    return {
        **rules.model_dump(mode="json"),
        "final_set_tie_break_point": rules.final_set_tie_break_point,
    }
