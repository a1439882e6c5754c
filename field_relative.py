"""Field-relative scoring: how a horse's score sits against its own race.

Absolute scores mislead in lopsided fields -- a 175 is a standout among
140s and an also-ran among 190s.  Everything here is advisory; the tier
classifier attaches it to each horse but never reads it back.

Field strength bands (mean score)
---------------------------------
weak      < 140
average   140-164
strong    165-184
stacked   185+
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np


FIELD_STRENGTH_THRESHOLDS = {"weak": 140, "average": 165, "strong": 185}

DEFAULT_STANDOUT_THRESHOLD = 20
CLOSE_RACE_THRESHOLD = 5        # leader margin treated as a coin-flip in a stacked field
MIN_FIELD_SIZE = 2


@dataclass(frozen=True)
class FieldContext:
    field_size: int
    average_score: float
    standard_deviation: float
    top_score: float
    bottom_score: float
    score_range: float
    field_strength: str         # weak / average / strong / stacked


@dataclass(frozen=True)
class FieldRelativeResult:
    z_score: float
    field_percentile: float
    gap_from_leader: float
    gap_from_next_best: float
    is_standout: bool
    tier_adjustment: int        # -1 / 0 / +1, suggestion only
    adjustment_reason: str


@dataclass(frozen=True)
class FieldAnalysis:
    context: FieldContext
    results: List[FieldRelativeResult]


def classify_field_strength(average_score: float) -> str:
    if average_score >= FIELD_STRENGTH_THRESHOLDS["strong"]:
        return "stacked"
    if average_score >= FIELD_STRENGTH_THRESHOLDS["average"]:
        return "strong"
    if average_score >= FIELD_STRENGTH_THRESHOLDS["weak"]:
        return "average"
    return "weak"


def calculate_field_context(scores: Sequence[float]) -> FieldContext:
    """Summary statistics for a field.  Needs at least two scores."""
    if len(scores) < MIN_FIELD_SIZE:
        raise ValueError(f"field context needs at least {MIN_FIELD_SIZE} scores, got {len(scores)}")

    arr = np.asarray(scores, dtype=float)
    mean = float(arr.mean())
    top = float(arr.max())
    bottom = float(arr.min())
    return FieldContext(
        field_size=len(arr),
        average_score=mean,
        standard_deviation=float(arr.std()),    # population std
        top_score=top,
        bottom_score=bottom,
        score_range=top - bottom,
        field_strength=classify_field_strength(mean),
    )


def _fmt_points(value: float) -> str:
    return f"{value:g}"


def calculate_field_relative_score(
    horse_score: float,
    all_scores: Sequence[float],
    context: Optional[FieldContext] = None,
    standout_threshold: float = DEFAULT_STANDOUT_THRESHOLD,
) -> FieldRelativeResult:
    """Position of *horse_score* within *all_scores*.

    Ties at the top are nobody's standout: a shared lead has a next-best
    gap of 0.  The tier_adjustment is a suggestion for display.
    """
    if not all_scores:
        return FieldRelativeResult(0.0, 0.0, 0.0, 0.0, False, 0, "No field data available")
    if len(all_scores) == 1:
        return FieldRelativeResult(0.0, 100.0, 0.0, 0.0, False, 0,
                                   "Single horse field - no comparison possible")

    ctx = context or calculate_field_context(all_scores)
    ranked = sorted(all_scores, reverse=True)

    z = 0.0 if ctx.standard_deviation == 0 else (horse_score - ctx.average_score) / ctx.standard_deviation
    below = sum(1 for s in all_scores if s < horse_score)
    percentile = below / (ctx.field_size - 1) * 100
    gap_leader = ctx.top_score - horse_score

    at_top = horse_score == ctx.top_score
    n_at_top = sum(1 for s in ranked if s == ctx.top_score)
    unique_leader = at_top and n_at_top == 1

    gap_next = 0.0
    if unique_leader:
        gap_next = horse_score - ranked[1]
    elif not at_top:
        nxt = next((s for s in ranked if s < horse_score), None)
        if nxt is not None:
            gap_next = horse_score - nxt

    is_standout = unique_leader and gap_next >= standout_threshold
    strength = ctx.field_strength

    adjustment = 0
    reason = "No adjustment needed"
    if is_standout and strength in ("weak", "average"):
        adjustment = 1
        reason = (f"Standout by {_fmt_points(gap_next)} points in {strength} field "
                  f"- consider tier promotion")
    elif unique_leader and gap_next < CLOSE_RACE_THRESHOLD and strength == "stacked":
        adjustment = -1
        reason = (f"Leading by only {_fmt_points(gap_next)} points in stacked field "
                  f"- consider tier demotion")
    elif is_standout:
        reason = f"Standout by {_fmt_points(gap_next)} points in {strength} field"
    elif at_top and n_at_top > 1:
        reason = f"Tied for first with {n_at_top - 1} other horse(s)"
    elif gap_leader > 0:
        reason = f"{_fmt_points(gap_leader)} points behind leader"

    return FieldRelativeResult(
        z_score=round(z, 2),
        field_percentile=round(percentile, 1),
        gap_from_leader=gap_leader,
        gap_from_next_best=gap_next,
        is_standout=is_standout,
        tier_adjustment=adjustment,
        adjustment_reason=reason,
    )


def analyze_entire_field(scores: Sequence[float],
                         standout_threshold: float = DEFAULT_STANDOUT_THRESHOLD) -> FieldAnalysis:
    context = calculate_field_context(scores)
    return FieldAnalysis(
        context=context,
        results=[calculate_field_relative_score(s, scores, context, standout_threshold) for s in scores],
    )


def describe_field_strength(strength: str) -> str:
    return {
        "weak": "Weak field (avg < 140)",
        "average": "Average field (avg 140-164)",
        "strong": "Strong field (avg 165-184)",
        "stacked": "Stacked field (avg 185+)",
    }.get(strength, "Unknown field strength")


def format_z_score(z_score: float) -> str:
    if not math.isfinite(z_score):
        return "+0.00σ"
    sign = "+" if z_score >= 0 else ""
    return f"{sign}{z_score:.2f}σ"


def interpret_z_score(z_score: float) -> str:
    if z_score >= 2:
        return "Exceptional - far above field average"
    if z_score >= 1:
        return "Strong - above field average"
    if z_score >= 0:
        return "Average - at or slightly above field average"
    if z_score >= -1:
        return "Below average - slightly below field"
    return "Weak - significantly below field average"


def field_context_to_dict(ctx: Optional[FieldContext]) -> Optional[dict]:
    if ctx is None:
        return None
    return {
        "field_size": ctx.field_size,
        "average_score": round(ctx.average_score, 1),
        "standard_deviation": round(ctx.standard_deviation, 2),
        "top_score": ctx.top_score,
        "bottom_score": ctx.bottom_score,
        "score_range": ctx.score_range,
        "field_strength": ctx.field_strength,
    }


def field_relative_to_dict(result: Optional[FieldRelativeResult]) -> Optional[dict]:
    if result is None:
        return None
    return {
        "z_score": result.z_score,
        "field_percentile": result.field_percentile,
        "gap_from_leader": result.gap_from_leader,
        "gap_from_next_best": result.gap_from_next_best,
        "is_standout": result.is_standout,
        "tier_adjustment": result.tier_adjustment,
        "adjustment_reason": result.adjustment_reason,
    }
