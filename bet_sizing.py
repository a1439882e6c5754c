"""Bet sizing and bankroll scaling.

Single bet
----------
    amount = unit x tier multiplier x risk multiplier x confidence multiplier

capped at a third of the tier's share of the race budget, clamped to
$1-$100 and rounded to whole dollars.

Tier budget split (percent of race budget)
------------------------------------------
simple mode (by betting style)       moderate / advanced (by risk tolerance)
  safe        70 / 30 /  0             conservative  60 / 30 / 10
  balanced    40 / 35 / 25             moderate      45 / 35 / 20
  aggressive  20 / 30 / 50             aggressive    25 / 35 / 40

Slate scaling
-------------
scale_bets_by_bankroll() shrinks every bet in an over-budget tier by the
same factor, floors stakes to the cent, recomputes cost from the bet type's
combination count and scales the payout range to match.  Stakes are never
raised, and a compliant slate comes back unchanged.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from bet_costs import BetType, calculate_total_cost, round_half_up, scale_return
from bet_recommendations import BetRecommendation
from config import BankrollSettings
from window_instructions import generate_window_instruction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TIERS = ("tier1", "tier2", "tier3")

SIMPLE_MODE_ALLOCATIONS = {
    "safe": {"tier1": 70, "tier2": 30, "tier3": 0},
    "balanced": {"tier1": 40, "tier2": 35, "tier3": 25},
    "aggressive": {"tier1": 20, "tier2": 30, "tier3": 50},
}

MODERATE_MODE_ALLOCATIONS = {
    "conservative": {"tier1": 60, "tier2": 30, "tier3": 10},
    "moderate": {"tier1": 45, "tier2": 35, "tier3": 20},
    "aggressive": {"tier1": 25, "tier2": 35, "tier3": 40},
}

# Advanced mode shares the moderate table
ADVANCED_MODE_ALLOCATIONS = MODERATE_MODE_ALLOCATIONS

TIER_MULTIPLIERS = {"tier1": 1.5, "tier2": 1.0, "tier3": 0.5}

# (minimum confidence, multiplier), checked top down
CONFIDENCE_MULTIPLIERS = [
    (85, 2.0),
    (75, 1.5),
    (65, 1.0),
    (55, 0.75),
    (0, 0.5),
]

RISK_MULTIPLIERS = {"conservative": 0.6, "moderate": 1.0, "aggressive": 1.5}

BET_LIMITS = {"min": 1.0, "max": 100.0, "superfecta_min": 0.1, "superfecta_max": 1.0}

ASSUMED_BETS_PER_TIER = 3
DEFAULT_STAKE = 5

_EPS = 1e-9


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BetSizingConfig:
    race_budget: float
    mode: str
    betting_style: str
    risk_tolerance: str
    unit_size: float


@dataclass(frozen=True)
class BudgetValidation:
    is_valid: bool
    overage: float
    message: Optional[str] = None


# ---------------------------------------------------------------------------
# Sizing
# ---------------------------------------------------------------------------

def get_bet_sizing_config(bankroll: BankrollSettings) -> BetSizingConfig:
    return BetSizingConfig(
        race_budget=bankroll.race_budget,
        mode=bankroll.complexity_mode,
        betting_style=bankroll.betting_style,
        risk_tolerance=bankroll.effective_risk,
        unit_size=bankroll.unit_size,
    )


def get_tier_allocation(bankroll: BankrollSettings) -> Dict[str, int]:
    if bankroll.complexity_mode == "simple":
        return SIMPLE_MODE_ALLOCATIONS.get(bankroll.betting_style, SIMPLE_MODE_ALLOCATIONS["balanced"])
    if bankroll.complexity_mode == "moderate":
        return MODERATE_MODE_ALLOCATIONS[bankroll.risk_tolerance]
    if bankroll.complexity_mode == "advanced":
        return ADVANCED_MODE_ALLOCATIONS[bankroll.risk_tolerance]
    return SIMPLE_MODE_ALLOCATIONS["balanced"]


def get_tier_budgets(bankroll: BankrollSettings) -> Dict[str, float]:
    allocation = get_tier_allocation(bankroll)
    return {t: bankroll.race_budget * allocation[t] / 100 for t in TIERS}


def get_confidence_multiplier(confidence: float) -> float:
    for minimum, multiplier in CONFIDENCE_MULTIPLIERS:
        if confidence >= minimum:
            return multiplier
    return CONFIDENCE_MULTIPLIERS[-1][1]


def calculate_bet_amount(confidence: float, tier: str, bankroll: BankrollSettings) -> int:
    """Whole-dollar stake for one bet.  Falls back to $5 if sizing fails."""
    try:
        config = get_bet_sizing_config(bankroll)
        amount = (config.unit_size
                  * TIER_MULTIPLIERS[tier]
                  * RISK_MULTIPLIERS[config.risk_tolerance]
                  * get_confidence_multiplier(confidence))

        tier_budget = get_tier_budgets(bankroll)[tier]
        amount = min(amount, tier_budget / ASSUMED_BETS_PER_TIER)
        amount = max(BET_LIMITS["min"], min(BET_LIMITS["max"], amount))
        if math.isnan(amount):
            raise ValueError("stake is NaN")
        return round_half_up(amount)
    except (AttributeError, KeyError, TypeError, ValueError, ZeroDivisionError) as e:
        logger.warning(f"[bet_sizing] Falling back to ${DEFAULT_STAKE} for {tier} "
                       f"at confidence {confidence}: {e}")
        return DEFAULT_STAKE


# ---------------------------------------------------------------------------
# Slate scaling
# ---------------------------------------------------------------------------

def _min_stake(bet_type: BetType) -> float:
    return BET_LIMITS["superfecta_min"] if bet_type is BetType.SUPERFECTA else BET_LIMITS["min"]


def _tier_totals(bets: Sequence) -> Dict[str, float]:
    totals = {t: 0.0 for t in TIERS}
    for b in bets:
        totals[b.tier] += b.total_cost
    return totals


def _scale_bet(bet, factor: float):
    """Shrunk copy of *bet*, or None when it would fall under the minimum stake.

    The window instruction is rebuilt from the new stake.
    """
    new_amount = math.floor(bet.amount * factor * 100 + _EPS) / 100
    if new_amount < _min_stake(bet.type) - _EPS:
        return None
    new_cost = calculate_total_cost(bet.type, len(bet.horses), new_amount)
    ratio = new_cost / bet.total_cost if bet.total_cost else 0.0
    return replace(
        bet,
        amount=new_amount,
        total_cost=new_cost,
        potential_return=scale_return(bet.potential_return, ratio),
        window_instruction=generate_window_instruction(
            bet.type, bet.horse_numbers, new_amount, getattr(bet, "race_number", None)),
    )


def scale_bets_by_bankroll(bets: Sequence, bankroll: BankrollSettings) -> List:
    """Fit each tier's bets inside its share of the race budget.

    A tier whose budget is zero keeps none of its bets.  Bets that cannot
    keep the minimum stake after scaling are dropped; if rounding still
    leaves a tier over budget the lowest-priority (last) bets go.
    """
    budgets = get_tier_budgets(bankroll)
    totals = _tier_totals(bets)

    scaled = []
    for bet in bets:
        budget, total = budgets[bet.tier], totals[bet.tier]
        if total <= 0:
            scaled.append(bet)
            continue
        if budget <= 0:
            continue
        if total <= budget + _EPS:
            scaled.append(bet)
            continue
        shrunk = _scale_bet(bet, budget / total)
        if shrunk is not None:
            scaled.append(shrunk)

    for tier in TIERS:
        while True:
            positions = [i for i, b in enumerate(scaled) if b.tier == tier]
            if not positions or sum(scaled[i].total_cost for i in positions) <= budgets[tier] + _EPS:
                break
            del scaled[positions[-1]]

    dropped = len(bets) - len(scaled)
    if dropped:
        logger.info(f"[bet_sizing] Dropped {dropped} bet(s) that did not fit the tier budgets")
    return scaled


# ---------------------------------------------------------------------------
# Budget checks
# ---------------------------------------------------------------------------

def validate_budget(bets: Sequence[BetRecommendation], bankroll: BankrollSettings) -> BudgetValidation:
    total = sum(b.total_cost for b in bets)
    if total <= bankroll.race_budget:
        return BudgetValidation(is_valid=True, overage=0.0)
    overage = total - bankroll.race_budget
    return BudgetValidation(
        is_valid=False,
        overage=overage,
        message=f"Bets exceed budget by ${overage:.2f}. Consider reducing selections.",
    )


def get_remaining_budget(selected: Sequence[BetRecommendation], bankroll: BankrollSettings) -> float:
    return max(0.0, bankroll.race_budget - sum(b.total_cost for b in selected))


def optimize_bet_distribution(bets: Sequence, bankroll: BankrollSettings) -> List:
    """Greedy fill of each tier budget: nuclear longshots, then tier, then EV."""
    tier_order = {t: i for i, t in enumerate(TIERS)}
    ranked = sorted(bets, key=lambda b: (
        0 if b.special_category == "nuclear" else 1,
        tier_order[b.tier],
        -b.ev_per_dollar,
    ))

    budgets = get_tier_budgets(bankroll)
    spent = {t: 0.0 for t in TIERS}
    kept = []
    for bet in ranked:
        if spent[bet.tier] + bet.total_cost <= budgets[bet.tier] + _EPS:
            spent[bet.tier] += bet.total_cost
            kept.append(bet)
    return kept


def budget_validation_to_dict(v: BudgetValidation) -> dict:
    return {"is_valid": v.is_valid, "overage": round(v.overage, 2), "message": v.message}
