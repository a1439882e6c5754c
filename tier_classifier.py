"""Tier classifier: scored field -> betting tiers.

Tier bands (adjusted score = score + overlay bonus/penalty)
-----------------------------------------------------------
tier1  Cover Chalk           180+  and confidence >= 80
tier2  Logical Alternatives  160-199
tier3  Value Bombs           140-179 and overlay >= 25%

Bands overlap on purpose; precedence is tier1, tier2, tier3.  Special cases
win over score bands: an undervalued "diamond in the rough" always lands in
tier2, and an overvalued tier1-grade horse (fool's gold) is demoted to tier2.

Confidence is a linear rescale of the base score onto 40-100.

Field-relative metrics are attached for display only and never feed back
into the tier.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from bet_costs import round_half_up
from config import DEFAULT_CONFIG, RecommendationConfig
from field_relative import (
    MIN_FIELD_SIZE,
    FieldContext,
    FieldRelativeResult,
    calculate_field_context,
    calculate_field_relative_score,
    field_context_to_dict,
    field_relative_to_dict,
)
from horse_data import HorseEntry, HorseScore, ScoredHorse
from odds import parse_odds
from overlay_analysis import (
    OverlayAnalysis,
    SpecialCase,
    analyze_overlay_with_field,
    calculate_tier_adjustment,
    overlay_analysis_to_dict,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TIERS = ("tier1", "tier2", "tier3")

TIER_CONFIG = {
    "tier1": {"min_score": 180, "max_score": 240, "min_confidence": 80},
    "tier2": {"min_score": 160, "max_score": 179, "min_confidence": 60},
    "tier3": {"min_score": 140, "max_score": 159, "min_confidence": 40},
}

# Upper bands tolerate this much above the nominal max
_BAND_TOLERANCE = 20

TIER_NAMES = {
    "tier1": "Cover Chalk",
    "tier2": "Logical Alternatives",
    "tier3": "Value Bombs",
}

TIER_DESCRIPTIONS = {
    "tier1": "Top contenders with strong fundamentals. High confidence plays.",
    "tier2": "Solid value plays with good win/place potential.",
    "tier3": "Overlay opportunities. High risk, high reward lottery tickets.",
}

TIER_EXPECTED_HIT_RATE = {
    "tier1": {"win": 35, "place": 55, "show": 70},
    "tier2": {"win": 18, "place": 35, "show": 50},
    "tier3": {"win": 8, "place": 18, "show": 28},
}

MAX_BASE_SCORE = 240
TIER3_MIN_OVERLAY = 25.0

# Reliability of the odds string by where it came from
ODDS_SOURCE_CONFIDENCE = {"live": 95, "morning_line": 60, "default": 20}


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClassifiedHorse:
    horse: HorseEntry
    index: int                      # position in the input field, display only
    score: HorseScore
    confidence: int
    odds: float                     # profit ratio, 3-1 -> 3.0
    odds_display: str
    tier: str
    adjusted_score: float
    overlay: OverlayAnalysis
    special_case: SpecialCase = SpecialCase.NONE
    adjustment_reasoning: str = ""
    odds_source: str = "morning_line"
    odds_confidence: Optional[int] = None
    field_relative: Optional[FieldRelativeResult] = None

    @property
    def program_number(self) -> int:
        return self.horse.program_number

    @property
    def name(self) -> str:
        return self.horse.horse_name

    @property
    def is_special_case(self) -> bool:
        return self.special_case.is_special

    @property
    def overlay_percent(self) -> float:
        return self.overlay.overlay_percent


@dataclass
class TierGroup:
    tier: str
    name: str
    description: str
    horses: List[ClassifiedHorse] = field(default_factory=list)
    expected_hit_rate: Dict[str, int] = field(default_factory=dict)
    field_context: Optional[FieldContext] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def calculate_confidence(base_score: float) -> int:
    """Base score 0-240 -> confidence 40-100."""
    return min(100, round_half_up(40 + base_score / MAX_BASE_SCORE * 60))


def determine_tier(base_score: float, adjusted_score: float, confidence: int,
                   special_case: SpecialCase) -> Optional[str]:
    """Tier for one horse, or None when it falls below every band."""
    if special_case is SpecialCase.DIAMOND_IN_ROUGH:
        return "tier2"
    if special_case is SpecialCase.FOOL_GOLD and base_score >= TIER_CONFIG["tier1"]["min_score"]:
        return "tier2"

    t1, t2, t3 = TIER_CONFIG["tier1"], TIER_CONFIG["tier2"], TIER_CONFIG["tier3"]
    if adjusted_score >= t1["min_score"] and confidence >= t1["min_confidence"]:
        return "tier1"
    if t2["min_score"] <= adjusted_score <= t2["max_score"] + _BAND_TOLERANCE:
        return "tier2"
    if t3["min_score"] <= adjusted_score <= t3["max_score"] + _BAND_TOLERANCE:
        return "tier3"
    return None


def _odds_source(sh: ScoredHorse, live_odds: Dict[int, str]) -> str:
    if sh.horse.program_number in live_odds:
        return "live"
    if (sh.horse.morning_line_odds or "").strip():
        return "morning_line"
    return "default"


def _sort_tier(tier: str, horses: List[ClassifiedHorse]) -> List[ClassifiedHorse]:
    if tier == "tier1":
        return sorted(horses, key=lambda h: (-h.adjusted_score, -h.overlay_percent))
    if tier == "tier2":
        return sorted(horses, key=lambda h: (
            0 if h.special_case is SpecialCase.DIAMOND_IN_ROUGH else 1,
            -h.overlay_percent,
        ))
    return sorted(horses, key=lambda h: (-h.overlay_percent, -h.odds))


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify_horses(
    field_horses: Sequence[ScoredHorse],
    config: RecommendationConfig = DEFAULT_CONFIG,
    live_odds: Optional[Dict[int, str]] = None,
) -> List[TierGroup]:
    """Classify a race field into non-empty tier groups, tier1 first.

    *field_horses* is the whole field including scratches.  *live_odds*
    maps program number to a current tote price that replaces the morning
    line.
    """
    live_odds = live_odds or {}
    active = []
    for sh in field_horses:
        if sh.score.is_scratched:
            continue
        if sh.horse.program_number in live_odds:
            sh = sh.with_odds(live_odds[sh.horse.program_number])
        active.append(sh)

    if not active:
        return []

    field_scores = [sh.score.total for sh in active]
    context: Optional[FieldContext] = None
    if config.use_field_relative_scoring and len(field_scores) >= MIN_FIELD_SIZE:
        context = calculate_field_context(field_scores)

    classified: List[ClassifiedHorse] = []
    for sh in active:
        odds_str = sh.horse.morning_line_odds
        confidence = calculate_confidence(sh.score.base_score)
        overlay = analyze_overlay_with_field(sh.score.total, field_scores, odds_str)
        adjustment = calculate_tier_adjustment(sh.score.total, sh.score.base_score, overlay.overlay_percent)

        tier = determine_tier(sh.score.base_score, adjustment.adjusted_score,
                              confidence, adjustment.special_case)
        if tier is None:
            continue
        if tier == "tier3" and overlay.overlay_percent < TIER3_MIN_OVERLAY:
            logger.debug(f"#{sh.program_number} dropped from tier3: overlay {overlay.overlay_percent}%")
            continue

        source = _odds_source(sh, live_odds)
        relative = None
        if context is not None:
            relative = calculate_field_relative_score(
                sh.score.total, field_scores, context,
                standout_threshold=config.field_relative_standout_threshold,
            )

        classified.append(ClassifiedHorse(
            horse=sh.horse,
            index=sh.index,
            score=sh.score,
            confidence=confidence,
            odds=parse_odds(odds_str),
            odds_display=odds_str,
            tier=tier,
            adjusted_score=adjustment.adjusted_score,
            overlay=overlay,
            special_case=adjustment.special_case,
            adjustment_reasoning=adjustment.reasoning,
            odds_source=source,
            odds_confidence=ODDS_SOURCE_CONFIDENCE[source] if config.use_odds_confidence else None,
            field_relative=relative,
        ))

    groups = []
    for tier in TIERS:
        members = [h for h in classified if h.tier == tier]
        if not members:
            continue
        groups.append(TierGroup(
            tier=tier,
            name=TIER_NAMES[tier],
            description=TIER_DESCRIPTIONS[tier],
            horses=_sort_tier(tier, members),
            expected_hit_rate=dict(TIER_EXPECTED_HIT_RATE[tier]),
            field_context=context,
        ))
    return groups


def get_qualifying_horses(field_horses: Sequence[ScoredHorse],
                          config: RecommendationConfig = DEFAULT_CONFIG) -> List[ClassifiedHorse]:
    return [h for g in classify_horses(field_horses, config) for h in g.horses]


def has_qualifying_horses(field_horses: Sequence[ScoredHorse],
                          config: RecommendationConfig = DEFAULT_CONFIG) -> bool:
    return any(g.horses for g in classify_horses(field_horses, config))


def find_group(groups: Sequence[TierGroup], tier: str) -> Optional[TierGroup]:
    return next((g for g in groups if g.tier == tier), None)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def classified_horse_to_dict(h: ClassifiedHorse) -> dict:
    return {
        "program_number": h.program_number,
        "horse_name": h.name,
        "tier": h.tier,
        "score": h.score.total,
        "base_score": h.score.base_score,
        "adjusted_score": h.adjusted_score,
        "confidence": h.confidence,
        "odds": h.odds,
        "odds_display": h.odds_display,
        "odds_source": h.odds_source,
        "odds_confidence": h.odds_confidence,
        "special_case": h.special_case.value if h.is_special_case else None,
        "adjustment_reasoning": h.adjustment_reasoning,
        "overlay": overlay_analysis_to_dict(h.overlay),
        "field_relative": field_relative_to_dict(h.field_relative),
    }


def tier_groups_to_dict(groups: Sequence[TierGroup]) -> List[dict]:
    return [
        {
            "tier": g.tier,
            "name": g.name,
            "description": g.description,
            "expected_hit_rate": g.expected_hit_rate,
            "field_context": field_context_to_dict(g.field_context),
            "horses": [classified_horse_to_dict(h) for h in g.horses],
        }
        for g in groups
    ]
