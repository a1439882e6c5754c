"""Overlay / underlay analysis: model price vs market price.

Pipeline per horse
------------------
1. Win probability from the score, relative to the rest of the field
   (softmax over scores scaled by SCORE_SCALE), clamped to 2-85%.
2. Fair decimal odds = 1 / probability.
3. Overlay% = (actual - fair) / fair * 100.  Positive means the tote pays
   more than the horse's chance justifies.
4. Value class, EV per $1 and a sizing recommendation.

calculate_tier_adjustment() turns the overlay into a bonus/penalty on the
score used for tier placement and flags the two special cases:

DIAMOND_IN_ROUGH  base score 140-169 with a 150%+ overlay (undervalued)
FOOL_GOLD         tier1-level base score with a 25%+ underlay (trap)
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from odds import decimal_to_fractional_odds, decimal_to_moneyline, parse_odds_to_decimal


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SOFTMAX_TEMPERATURE = 1.0
SCORE_SCALE = 100.0
MIN_FIELD_PROBABILITY = 0.005
MAX_FIELD_PROBABILITY = 0.95

# Display clamp on field-relative win% (percent)
WIN_PCT_FLOOR = 2.0
WIN_PCT_CEILING = 85.0

# Legacy no-field formula: score 323 -> 50%
_LEGACY_SCORE_SCALE = 323.0
_LEGACY_WIN_PCT_CEILING = 50.0

VALUE_THRESHOLDS = {
    "massive": 100.0,
    "strong": 40.0,
    "moderate": 20.0,
    "slight": 10.0,
    "fair": -20.0,
}

# Horses with a base score at or above this keep their score on an underlay
UNDERLAY_PENALTY_THRESHOLD = 160

# Tier1 floor, repeated here so the trap check does not import the classifier
TRAP_MIN_BASE_SCORE = 180
TRAP_MAX_OVERLAY = -25.0

DIAMOND_MIN_BASE_SCORE = 140
DIAMOND_MAX_BASE_SCORE = 170
DIAMOND_MIN_OVERLAY = 150.0

ADJUSTED_SCORE_CEILING = 250


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

class ValueClass(str, enum.Enum):
    MASSIVE_OVERLAY = "massive_overlay"
    STRONG_OVERLAY = "strong_overlay"
    MODERATE_OVERLAY = "moderate_overlay"
    SLIGHT_OVERLAY = "slight_overlay"
    FAIR_PRICE = "fair_price"
    UNDERLAY = "underlay"


class SpecialCase(str, enum.Enum):
    """Tagged special-case outcome of the tier adjustment."""
    NONE = "none"
    DIAMOND_IN_ROUGH = "diamond_in_rough"   # undervalued
    FOOL_GOLD = "fool_gold"                 # overvalued trap

    @property
    def is_special(self) -> bool:
        return self is not SpecialCase.NONE


@dataclass(frozen=True)
class BettingRecommendation:
    action: str                 # bet_heavily / bet_standard / bet_small / pass / avoid
    reasoning: str
    suggested_multiplier: float
    urgency: str                # immediate / standard / low / none


@dataclass(frozen=True)
class OverlayAnalysis:
    win_probability: float      # percent, 0-100
    fair_odds_decimal: float
    fair_odds_display: str
    fair_odds_moneyline: str
    actual_odds_decimal: float
    overlay_percent: float
    value_class: ValueClass
    ev_per_dollar: float
    is_positive_ev: bool
    overlay_description: str
    recommendation: BettingRecommendation

    @property
    def implied_win_percent(self) -> float:
        """Market-implied win% from the actual price."""
        if self.actual_odds_decimal <= 0:
            return 0.0
        return round(100.0 / self.actual_odds_decimal, 1)

    @property
    def ev_percent(self) -> float:
        return round(self.ev_per_dollar * 100, 1)


@dataclass(frozen=True)
class TierAdjustment:
    adjusted_score: float
    tier_shift: int
    special_case: SpecialCase
    reasoning: str

    @property
    def is_special_case(self) -> bool:
        return self.special_case.is_special


@dataclass
class ValuePlay:
    program_number: int
    horse_name: str
    score: float
    overlay_percent: float
    value_class: ValueClass
    ev_per_dollar: float
    fair_odds_display: str
    actual_odds_display: str
    recommendation: BettingRecommendation
    tags: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Probability
# ---------------------------------------------------------------------------

def _clamp_and_redistribute(probs: np.ndarray) -> np.ndarray:
    """Clamp each probability into [MIN, MAX] keeping the total at 1."""
    result = probs.astype(float).copy()
    for _ in range(10):
        low = result < MIN_FIELD_PROBABILITY
        high = result > MAX_FIELD_PROBABILITY
        if not low.any() and not high.any():
            break
        excess = float(np.sum(result[high] - MAX_FIELD_PROBABILITY)) - float(
            np.sum(MIN_FIELD_PROBABILITY - result[low])
        )
        result[low] = MIN_FIELD_PROBABILITY
        result[high] = MAX_FIELD_PROBABILITY
        free = ~(low | high)
        free_total = float(np.sum(result[free]))
        if free_total <= 0:
            break
        result[free] += excess * result[free] / free_total
    return result


def softmax_probabilities(scores: Sequence[float],
                          temperature: float = SOFTMAX_TEMPERATURE) -> List[float]:
    """Field win probabilities (0-1) from raw scores.

    A one-horse field gets 1.0; an all-zero field is split evenly.
    """
    if not scores:
        return []
    if len(scores) == 1:
        return [1.0]

    arr = np.array([s if (s is not None and math.isfinite(s) and s > 0) else 0.0
                    for s in scores], dtype=float)
    if not arr.any():
        return [1.0 / len(scores)] * len(scores)

    scaled = arr / SCORE_SCALE
    exp = np.exp((scaled - scaled.max()) / max(0.001, temperature))
    probs = exp / exp.sum()
    return [float(p) for p in _clamp_and_redistribute(probs)]


def calculate_field_relative_win_probability(
    score: float, field_scores: Sequence[float],
    temperature: float = SOFTMAX_TEMPERATURE,
) -> float:
    """Win% (0-100) for *score* against *field_scores*, clamped 2-85."""
    if score is None or not math.isfinite(score) or score <= 0:
        return WIN_PCT_FLOOR
    if not field_scores:
        return WIN_PCT_FLOOR

    scores = list(field_scores)
    if score in scores:
        idx = scores.index(score)
    else:
        scores.append(score)
        idx = len(scores) - 1

    probs = softmax_probabilities(scores, temperature)
    prob = probs[idx] if idx < len(probs) else None
    if prob is None or not math.isfinite(prob):
        return WIN_PCT_FLOOR
    return max(WIN_PCT_FLOOR, min(WIN_PCT_CEILING, prob * 100))


def score_to_win_probability(score: float) -> float:
    """Win% without field context.  Less accurate; kept for single-horse lookups."""
    if score is None or not math.isfinite(score):
        return WIN_PCT_FLOOR
    raw = score / _LEGACY_SCORE_SCALE * 50
    return max(WIN_PCT_FLOOR, min(_LEGACY_WIN_PCT_CEILING, raw))


def probability_to_fair_odds(probability: float) -> float:
    """Fair decimal odds for a 0-1 probability, bounded to [1.01, 100]."""
    if probability is None or not math.isfinite(probability) or probability <= 0:
        return 100.0
    if probability >= 1:
        return 1.01
    return min(100.0, max(1.01, round(1 / probability, 2)))


def probability_to_decimal_odds(win_pct: float) -> float:
    """Same as probability_to_fair_odds but takes a percentage."""
    if win_pct is None or not math.isfinite(win_pct):
        return 50.0
    return probability_to_fair_odds(win_pct / 100)


# ---------------------------------------------------------------------------
# Value
# ---------------------------------------------------------------------------

def calculate_overlay_percent(fair_odds: float, actual_odds: float) -> float:
    if fair_odds <= 1.01:
        return 0.0
    return round((actual_odds - fair_odds) / fair_odds * 100, 1)


def classify_value(overlay_percent: float) -> ValueClass:
    if overlay_percent >= VALUE_THRESHOLDS["massive"]:
        return ValueClass.MASSIVE_OVERLAY
    if overlay_percent >= VALUE_THRESHOLDS["strong"]:
        return ValueClass.STRONG_OVERLAY
    if overlay_percent >= VALUE_THRESHOLDS["moderate"]:
        return ValueClass.MODERATE_OVERLAY
    if overlay_percent >= VALUE_THRESHOLDS["slight"]:
        return ValueClass.SLIGHT_OVERLAY
    if overlay_percent >= VALUE_THRESHOLDS["fair"]:
        return ValueClass.FAIR_PRICE
    return ValueClass.UNDERLAY


def calculate_ev(win_pct: float, decimal_odds: float) -> float:
    """Expected value per $1 wagered, to 3 decimals."""
    p = win_pct / 100
    return round(p * (decimal_odds - 1) - (1 - p), 3)


def generate_recommendation(value_class: ValueClass, overlay_percent: float) -> BettingRecommendation:
    pct = f"{overlay_percent:.0f}"
    if value_class is ValueClass.MASSIVE_OVERLAY:
        return BettingRecommendation(
            "bet_heavily",
            f"This is a {pct}% overlay - exceptional value. Consider 2-3x standard unit.",
            min(3.0, 1 + overlay_percent / 100), "immediate",
        )
    if value_class is ValueClass.STRONG_OVERLAY:
        return BettingRecommendation(
            "bet_standard",
            f"Excellent value at {pct}% overlay. Standard to 1.5x unit.",
            1 + overlay_percent / 150, "standard",
        )
    if value_class is ValueClass.MODERATE_OVERLAY:
        return BettingRecommendation(
            "bet_standard", f"Good value bet with {pct}% overlay.", 1.0, "standard",
        )
    if value_class is ValueClass.SLIGHT_OVERLAY:
        return BettingRecommendation(
            "bet_small",
            f"Slight edge at {pct}% overlay. Playable with reduced unit.",
            0.75, "low",
        )
    if value_class is ValueClass.FAIR_PRICE:
        return BettingRecommendation(
            "pass",
            f"No significant edge detected ({pct}%). Only bet if other factors are compelling.",
            0.5, "none",
        )
    return BettingRecommendation(
        "avoid",
        f"Underlay of {abs(overlay_percent):.0f}% - avoid this bet. Price does not offer value.",
        0.0, "none",
    )


def generate_overlay_description(overlay_percent: float, value_class: ValueClass,
                                 fair_display: str, actual_display: str) -> str:
    if value_class is ValueClass.UNDERLAY:
        return (f"Underlay: Fair odds {fair_display}, actual {actual_display} "
                f"({abs(overlay_percent):.0f}% worse than fair value)")
    if value_class is ValueClass.FAIR_PRICE:
        return f"Fair price: Odds of {actual_display} are close to fair value of {fair_display}"
    intensity = {
        ValueClass.MASSIVE_OVERLAY: "exceptional",
        ValueClass.STRONG_OVERLAY: "excellent",
        ValueClass.MODERATE_OVERLAY: "good",
    }.get(value_class, "slight")
    return (f"{overlay_percent:.0f}% overlay - {intensity} value! "
            f"Fair odds {fair_display}, actual {actual_display}")


def _build_analysis(win_pct: float, actual_odds: str) -> OverlayAnalysis:
    fair = probability_to_decimal_odds(win_pct)
    fair_display = decimal_to_fractional_odds(fair)
    actual = parse_odds_to_decimal(actual_odds)
    overlay = calculate_overlay_percent(fair, actual)
    value_class = classify_value(overlay)
    ev = calculate_ev(win_pct, actual)
    return OverlayAnalysis(
        win_probability=win_pct,
        fair_odds_decimal=fair,
        fair_odds_display=fair_display,
        fair_odds_moneyline=decimal_to_moneyline(fair),
        actual_odds_decimal=actual,
        overlay_percent=overlay,
        value_class=value_class,
        ev_per_dollar=ev,
        is_positive_ev=ev > 0,
        overlay_description=generate_overlay_description(overlay, value_class, fair_display, actual_odds),
        recommendation=generate_recommendation(value_class, overlay),
    )


def analyze_overlay_with_field(score: float, field_scores: Sequence[float],
                               actual_odds: str) -> OverlayAnalysis:
    """Overlay analysis with the win% taken relative to the field."""
    return _build_analysis(calculate_field_relative_win_probability(score, field_scores), actual_odds)


def analyze_overlay(score: float, actual_odds: str) -> OverlayAnalysis:
    """Overlay analysis without field context (legacy formula)."""
    return _build_analysis(score_to_win_probability(score), actual_odds)


def detect_value_plays(horses, min_overlay_percent: float = 10.0) -> List[ValuePlay]:
    """Value plays in a field, best overlay first.

    *horses* is a list of ScoredHorse; scratched entries are skipped.
    """
    active = [sh for sh in horses if not sh.score.is_scratched]
    field_scores = [sh.score.total for sh in active]
    plays: List[ValuePlay] = []
    for sh in active:
        analysis = analyze_overlay_with_field(sh.score.total, field_scores, sh.horse.morning_line_odds)
        if analysis.overlay_percent < min_overlay_percent:
            continue
        tags = []
        if analysis.is_positive_ev:
            tags.append("+EV")
        plays.append(ValuePlay(
            program_number=sh.horse.program_number,
            horse_name=sh.horse.horse_name,
            score=sh.score.total,
            overlay_percent=analysis.overlay_percent,
            value_class=analysis.value_class,
            ev_per_dollar=analysis.ev_per_dollar,
            fair_odds_display=analysis.fair_odds_display,
            actual_odds_display=sh.horse.morning_line_odds,
            recommendation=analysis.recommendation,
            tags=tags,
        ))
    plays.sort(key=lambda vp: vp.overlay_percent, reverse=True)
    return plays


# ---------------------------------------------------------------------------
# Tier adjustment
# ---------------------------------------------------------------------------

def calculate_tier_adjustment(score: float, base_score: float,
                              overlay_percent: float) -> TierAdjustment:
    """Bonus/penalty on *score* from the overlay, plus special-case flags.

    Overlay bonuses always apply.  Underlay penalties are waived for horses
    whose base score is at or above UNDERLAY_PENALTY_THRESHOLD: a short
    price on a proven horse is the market agreeing, not a warning.
    """
    adjusted = score
    shift = 0
    reasoning = ""
    pct = f"{overlay_percent:.0f}"
    under = f"{abs(overlay_percent):.0f}"

    if overlay_percent >= 150:
        shift, adjusted = 2, score + 30
        reasoning = f"Massive {pct}% overlay adds +30 effective points"
    elif overlay_percent >= 80:
        shift, adjusted = 1, score + 20
        reasoning = f"Strong {pct}% overlay adds +20 effective points"
    elif overlay_percent >= 40:
        shift, adjusted = 1, score + 10
        reasoning = f"Good {pct}% overlay adds +10 effective points"
    elif overlay_percent >= 15:
        adjusted = score + 5
        reasoning = f"Slight {pct}% overlay adds +5 effective points"
    elif overlay_percent <= -15:
        if base_score >= UNDERLAY_PENALTY_THRESHOLD:
            reasoning = (f"Underlay of {under}% - penalty waived "
                         f"(base score {base_score:g} exceeds threshold)")
        elif overlay_percent <= -30:
            shift, adjusted = -2, score - 25
            reasoning = f"Significant {under}% underlay subtracts -25 effective points"
        else:
            shift, adjusted = -1, score - 15
            reasoning = f"Underlay of {under}% subtracts -15 effective points"

    special = SpecialCase.NONE
    if (DIAMOND_MIN_BASE_SCORE <= base_score < DIAMOND_MAX_BASE_SCORE
            and overlay_percent >= DIAMOND_MIN_OVERLAY):
        special = SpecialCase.DIAMOND_IN_ROUGH
        reasoning = (f"DIAMOND IN ROUGH: Base score {base_score:g} with {pct}% overlay "
                     f"- hidden gem!")
    elif base_score >= TRAP_MIN_BASE_SCORE and overlay_percent <= TRAP_MAX_OVERLAY:
        special = SpecialCase.FOOL_GOLD
        reasoning = (f"FOOL'S GOLD: Base score {base_score:g} looks good but {under}% "
                     f"underlay - overbet public choice")

    adjusted = max(0, min(ADJUSTED_SCORE_CEILING, adjusted))
    return TierAdjustment(adjusted_score=adjusted, tier_shift=shift,
                          special_case=special, reasoning=reasoning)


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

def format_overlay_percent(overlay_percent: float) -> str:
    if overlay_percent is None or not math.isfinite(overlay_percent):
        return "0%"
    sign = "+" if overlay_percent > 0 else ""
    return f"{sign}{overlay_percent:.0f}%"


def format_ev(ev_per_dollar: float) -> str:
    if ev_per_dollar is None or not math.isfinite(ev_per_dollar):
        return "$0.00"
    sign = "+" if ev_per_dollar >= 0 else "-"
    return f"{sign}${abs(ev_per_dollar):.2f}"


def overlay_analysis_to_dict(analysis: Optional[OverlayAnalysis]) -> Optional[dict]:
    if analysis is None:
        return None
    return {
        "win_probability": round(analysis.win_probability, 2),
        "implied_win_percent": analysis.implied_win_percent,
        "fair_odds": analysis.fair_odds_display,
        "fair_odds_decimal": analysis.fair_odds_decimal,
        "actual_odds_decimal": analysis.actual_odds_decimal,
        "overlay_percent": analysis.overlay_percent,
        "value_class": analysis.value_class.value,
        "ev_per_dollar": analysis.ev_per_dollar,
        "is_positive_ev": analysis.is_positive_ev,
        "description": analysis.overlay_description,
        "recommendation": analysis.recommendation.action,
    }
