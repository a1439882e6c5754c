"""Fixed-stake bet recommendations per tier.

The bankroll-free recommender: every tier gets a fixed base stake and a
fixed menu of bets.  The full generator (bet_generator.py) builds on the
same BetRecommendation record and adds sizing, specials and explanations.

Base stakes
-----------
tier1  $10   win (2x), place, exacta box, exacta key over, trifecta box
tier2   $5   win, exacta key over/under chalk, quinella, trifecta box,
             place when the odds beat the score's fair price by 20%+
tier3   $2   win, exacta key over, place (2x), trifecta wheel, superfecta

Usage:
    groups = classify_horses(field)
    for rec in generate_bet_recommendations(groups):
        for bet in rec.bets:
            print(bet.window_instruction)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from bet_costs import (
    BET_TYPE_NAMES,
    BetType,
    calculate_potential_return,
    calculate_total_cost,
    round_half_up,
)
from tier_classifier import ClassifiedHorse, TierGroup, find_group
from window_instructions import generate_window_instruction


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BASE_AMOUNTS = {"tier1": 10, "tier2": 5, "tier3": 2}

BET_ICONS = {
    BetType.WIN: "emoji_events",
    BetType.PLACE: "looks_two",
    BetType.SHOW: "looks_3",
    BetType.EXACTA_BOX: "swap_vert",
    BetType.EXACTA_KEY_OVER: "arrow_downward",
    BetType.EXACTA_KEY_UNDER: "arrow_upward",
    BetType.TRIFECTA_BOX: "view_list",
    BetType.TRIFECTA_KEY: "first_page",
    BetType.TRIFECTA_WHEEL: "sync",
    BetType.QUINELLA: "compare_arrows",
    BetType.SUPERFECTA: "format_list_numbered",
    BetType.VALUE_BOMB: "local_fire_department",
    BetType.HIDDEN_GEM: "diamond",
}

PLACE_VALUE_THRESHOLD = 20.0
_FAIR_SCORE_SCALE = 240.0


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BetRecommendation:
    type: BetType
    type_name: str
    description: str
    horses: List[ClassifiedHorse]
    amount: float                       # per combination
    total_cost: float
    window_instruction: str
    potential_return: Tuple[int, int]   # (min, max)
    confidence: int
    icon: str = ""

    @property
    def horse_numbers(self) -> List[int]:
        return [h.program_number for h in self.horses]


@dataclass
class TierBetRecommendations:
    tier: str
    tier_name: str
    description: str
    bets: List[BetRecommendation] = field(default_factory=list)
    total_investment: float = 0.0
    expected_hit_rate: Dict[str, int] = field(default_factory=dict)
    potential_return_range: Tuple[int, int] = (0, 0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def calculate_value_score(score: float, odds: float) -> float:
    """How far the tote price beats the score's fair price, in percent."""
    if score <= 0:
        return 0.0
    expected = 1 / (score / _FAIR_SCORE_SCALE) - 1
    return round((odds - expected) / max(expected, 0.5) * 100, 1)


def calculate_bet_size(confidence: float, base_unit: float = 10, max_units: float = 5) -> int:
    """Stake from confidence: 60% or less is one unit, 100% is *max_units*."""
    normalized = max(0.0, min(1.0, (confidence - 60) / 40))
    units = 1 + normalized * (max_units - 1)
    return round_half_up(units * base_unit)


def average_confidence(horses: Sequence[ClassifiedHorse]) -> int:
    if not horses:
        return 0
    return round_half_up(sum(h.confidence for h in horses) / len(horses))


def make_bet(bet_type: BetType, description: str, horses: Sequence[ClassifiedHorse],
             amount: float, confidence: int, race_number: Optional[int] = None) -> BetRecommendation:
    horses = list(horses)
    cost = calculate_total_cost(bet_type, len(horses), amount)
    return BetRecommendation(
        type=bet_type,
        type_name=BET_TYPE_NAMES[bet_type],
        description=description,
        horses=horses,
        amount=amount,
        total_cost=cost,
        window_instruction=generate_window_instruction(
            bet_type, [h.program_number for h in horses], amount, race_number),
        potential_return=calculate_potential_return(bet_type, [h.odds for h in horses], cost),
        confidence=confidence,
        icon=BET_ICONS[bet_type],
    )


def _dedupe_by_number(horses: Sequence[ClassifiedHorse]) -> List[ClassifiedHorse]:
    seen, out = set(), []
    for h in horses:
        if h.program_number not in seen:
            seen.add(h.program_number)
            out.append(h)
    return out


# ---------------------------------------------------------------------------
# Per-tier menus
# ---------------------------------------------------------------------------

def _tier1_bets(group: TierGroup, all_horses: List[ClassifiedHorse]) -> List[BetRecommendation]:
    base = BASE_AMOUNTS["tier1"]
    horses = group.horses
    top = horses[0]
    bets = [
        make_bet(BetType.WIN, f"Win bet on top contender {top.name}", [top], base * 2, top.confidence),
        make_bet(BetType.PLACE, f"Place bet on {top.name} for safety", [top], base, top.confidence),
    ]

    if len(horses) >= 2:
        box = horses[:3]
        bets.append(make_bet(BetType.EXACTA_BOX, f"Exacta box with top {len(box)} contenders",
                             box, base / 2, average_confidence(box)))

    others = [h for h in all_horses
              if h.program_number != top.program_number and not h.score.is_scratched][:4]
    if others:
        bets.append(make_bet(BetType.EXACTA_KEY_OVER, f"{top.name} over top {len(others)} others",
                             [top] + others, base / 2, top.confidence - 10))

    if len(horses) >= 3:
        tri = horses[:3]
        bets.append(make_bet(BetType.TRIFECTA_BOX, "Trifecta box with top 3 chalk",
                             tri, 1, average_confidence(tri) - 15))
    elif len(horses) == 2:
        outside = [h for h in all_horses if h.tier != "tier1"][:1]
        if outside:
            bets.append(make_bet(BetType.TRIFECTA_BOX, "Trifecta box: chalk with one alternative",
                                 horses[:2] + outside, 1, 55))
    return bets


def _tier2_bets(group: TierGroup, tier1: List[ClassifiedHorse]) -> List[BetRecommendation]:
    base = BASE_AMOUNTS["tier2"]
    horses = group.horses
    top = horses[0]
    bets = [make_bet(BetType.WIN, f"Value win on {top.name} at {top.odds_display}",
                     [top], base, top.confidence)]

    if tier1:
        chalk = tier1[:2]
        bets.append(make_bet(BetType.EXACTA_KEY_OVER, f"{top.name} over chalk upset special",
                             [top] + chalk, base / 2, top.confidence - 10))
        bets.append(make_bet(BetType.EXACTA_KEY_UNDER, f"Chalk on top, {top.name} underneath",
                             [top] + chalk, base / 2, top.confidence))
        pair = [top, tier1[0]]
        bets.append(make_bet(BetType.QUINELLA, "Quinella: alternative with favorite",
                             pair, base, average_confidence(pair) - 5))

    tri = _dedupe_by_number(horses[:2] + tier1[:2])[:3]
    if len(tri) >= 3:
        bets.append(make_bet(BetType.TRIFECTA_BOX, "Trifecta box: alternatives with chalk", tri, 1, 45))

    if calculate_value_score(top.score.total, top.odds) > PLACE_VALUE_THRESHOLD:
        bets.append(make_bet(BetType.PLACE, f"Place bet on value horse {top.name}",
                             [top], base, top.confidence + 10))
    return bets


def _tier3_bets(group: TierGroup, all_horses: List[ClassifiedHorse]) -> List[BetRecommendation]:
    base = BASE_AMOUNTS["tier3"]
    bomb = group.horses[0]
    bets = [make_bet(BetType.WIN, f"Lottery ticket: {bomb.name} at {bomb.odds_display}",
                     [bomb], base, bomb.confidence)]

    others = [h for h in all_horses if h.program_number != bomb.program_number]
    if others:
        bets.append(make_bet(BetType.EXACTA_KEY_OVER, "Bomb on top over field for huge exacta",
                             [bomb] + others[:5], 1, bomb.confidence - 15))

    bets.append(make_bet(BetType.PLACE, f"Place bet on {bomb.name} - better value",
                         [bomb], base * 2, bomb.confidence + 15))

    contenders = [h for h in all_horses if h.tier in ("tier1", "tier2")][:3]
    if len(contenders) >= 2:
        bets.append(make_bet(BetType.TRIFECTA_WHEEL, "Bomb trifecta wheel for jackpot",
                             [bomb] + contenders, 1, bomb.confidence - 20))

    if len(all_horses) >= 4:
        bets.append(make_bet(BetType.SUPERFECTA, "Superfecta box with bomb included",
                             [bomb] + others[:3], 0.1, bomb.confidence - 25))
    return bets


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def summarize_tier_bets(group: TierGroup, bets: Sequence[BetRecommendation]) -> TierBetRecommendations:
    return TierBetRecommendations(
        tier=group.tier,
        tier_name=group.name,
        description=group.description,
        bets=list(bets),
        total_investment=round(sum(b.total_cost for b in bets), 2),
        expected_hit_rate=dict(group.expected_hit_rate),
        potential_return_range=(
            round_half_up(sum(b.potential_return[0] for b in bets)),
            round_half_up(sum(b.potential_return[1] for b in bets)),
        ),
    )


def generate_bet_recommendations(tier_groups: Sequence[TierGroup]) -> List[TierBetRecommendations]:
    """One TierBetRecommendations per non-empty group, in group order."""
    all_horses = [h for g in tier_groups for h in g.horses]
    tier1_group = find_group(tier_groups, "tier1")
    tier1 = tier1_group.horses if tier1_group else []

    out = []
    for group in tier_groups:
        if not group.horses:
            continue
        if group.tier == "tier1":
            bets = _tier1_bets(group, all_horses)
        elif group.tier == "tier2":
            bets = _tier2_bets(group, tier1)
        else:
            bets = _tier3_bets(group, all_horses)
        out.append(summarize_tier_bets(group, bets))
    return out


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def bet_to_dict(bet: BetRecommendation) -> dict:
    return {
        "type": bet.type.value,
        "type_name": bet.type_name,
        "description": bet.description,
        "horse_numbers": bet.horse_numbers,
        "amount": bet.amount,
        "total_cost": round(bet.total_cost, 2),
        "window_instruction": bet.window_instruction,
        "potential_return": {"min": bet.potential_return[0], "max": bet.potential_return[1]},
        "confidence": bet.confidence,
        "icon": bet.icon,
    }


def tier_bets_to_dict(rec: TierBetRecommendations) -> dict:
    return {
        "tier": rec.tier,
        "tier_name": rec.tier_name,
        "description": rec.description,
        "bets": [bet_to_dict(b) for b in rec.bets],
        "total_investment": rec.total_investment,
        "expected_hit_rate": rec.expected_hit_rate,
        "potential_return_range": {"min": rec.potential_return_range[0],
                                   "max": rec.potential_return_range[1]},
    }
