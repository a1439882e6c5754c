"""Bet types, combination costs and payout ranges.

One cost model shared by the tier recommender, the generator and the
bankroll scaler, so a bet's total cost never depends on who built it.

Combination counts
------------------
exacta box        n(n-1)
exacta key        n-1          (key horse over/under each partner)
trifecta box      n(n-1)(n-2)
trifecta key/wheel  (n-1)*2, never below $1
superfecta box    flat $0.10 table for 4-6 horses, n(n-1)(n-2)(n-3) above
everything else   one combination
"""
from __future__ import annotations

import enum
import math
from typing import Sequence, Tuple


class BetType(str, enum.Enum):
    WIN = "win"
    PLACE = "place"
    SHOW = "show"
    EXACTA_BOX = "exacta_box"
    EXACTA_KEY_OVER = "exacta_key_over"
    EXACTA_KEY_UNDER = "exacta_key_under"
    TRIFECTA_BOX = "trifecta_box"
    TRIFECTA_KEY = "trifecta_key"
    TRIFECTA_WHEEL = "trifecta_wheel"
    QUINELLA = "quinella"
    SUPERFECTA = "superfecta"
    VALUE_BOMB = "value_bomb"
    HIDDEN_GEM = "hidden_gem"


BET_TYPE_NAMES = {
    BetType.WIN: "Win",
    BetType.PLACE: "Place",
    BetType.SHOW: "Show",
    BetType.EXACTA_BOX: "Exacta Box",
    BetType.EXACTA_KEY_OVER: "Exacta Key Over",
    BetType.EXACTA_KEY_UNDER: "Exacta Key Under",
    BetType.TRIFECTA_BOX: "Trifecta Box",
    BetType.TRIFECTA_KEY: "Trifecta Key",
    BetType.TRIFECTA_WHEEL: "Trifecta Wheel",
    BetType.QUINELLA: "Quinella",
    BetType.SUPERFECTA: "Superfecta",
    BetType.VALUE_BOMB: "Value Bomb",
    BetType.HIDDEN_GEM: "Hidden Gem",
}

_EXACTA_FAMILY = (BetType.EXACTA_BOX, BetType.EXACTA_KEY_OVER, BetType.EXACTA_KEY_UNDER)
_TRIFECTA_FAMILY = (BetType.TRIFECTA_BOX, BetType.TRIFECTA_KEY, BetType.TRIFECTA_WHEEL)
_WIN_FAMILY = (BetType.WIN, BetType.VALUE_BOMB, BetType.HIDDEN_GEM)

SUPERFECTA_BASE = 0.10
# Track price of a $0.10 superfecta box by number of horses
_SUPERFECTA_BOX_COST = {4: 2.40, 5: 12.00, 6: 36.00}


def round_half_up(x: float) -> int:
    """Round halves toward +inf; round() would bank them to even."""
    return int(math.floor(x + 0.5))


def round_cents(x: float) -> float:
    return round_half_up(x * 100) / 100


def _permutations(n: int, k: int) -> int:
    if n < k:
        return 0
    return math.perm(n, k)


def calculate_total_cost(bet_type, n_horses: int, amount: float) -> float:
    """Total ticket cost for *n_horses* at *amount* per combination."""
    bet_type = BetType(bet_type)
    if bet_type is BetType.EXACTA_BOX:
        return n_horses * (n_horses - 1) * amount
    if bet_type in (BetType.EXACTA_KEY_OVER, BetType.EXACTA_KEY_UNDER):
        return (n_horses - 1) * amount
    if bet_type is BetType.TRIFECTA_BOX:
        return n_horses * (n_horses - 1) * (n_horses - 2) * amount
    if bet_type in (BetType.TRIFECTA_KEY, BetType.TRIFECTA_WHEEL):
        # $1 ticket floor makes cost non-linear in the stake, so proportional
        # scaling can still overshoot; scale_bets_by_bankroll trims what is left over
        return max(1, (n_horses - 1) * 2 * amount)
    if bet_type is BetType.SUPERFECTA:
        if n_horses < 4:
            return n_horses * amount
        if n_horses in _SUPERFECTA_BOX_COST:
            return round_cents(_SUPERFECTA_BOX_COST[n_horses] * amount / SUPERFECTA_BASE)
        return _permutations(n_horses, 4) * amount
    return amount


def calculate_potential_return(bet_type, odds: Sequence[float], cost: float) -> Tuple[int, int]:
    """(min, max) payout estimate from the odds range of the horses on the ticket.

    *odds* are profit ratios (3-1 -> 3.0).  Exotic estimates lean on the
    average price since any horse in a box can fill any slot.
    """
    if not odds:
        return 0, 0
    bet_type = BetType(bet_type)
    lo, hi = min(odds), max(odds)
    avg = sum(odds) / len(odds)

    if bet_type in _WIN_FAMILY:
        return round_half_up(cost * (lo + 1)), round_half_up(cost * (hi + 1))
    if bet_type is BetType.PLACE:
        return round_half_up(cost * (lo / 2 + 1)), round_half_up(cost * (hi / 2 + 1))
    if bet_type is BetType.SHOW:
        return round_half_up(cost * (lo / 3 + 1)), round_half_up(cost * (hi / 3 + 1))
    if bet_type in _EXACTA_FAMILY:
        return round_half_up(cost * (avg * 2 + 1)), round_half_up(cost * (hi * avg + 1))
    if bet_type in _TRIFECTA_FAMILY:
        return round_half_up(cost * (avg * 5 + 1)), round_half_up(cost * (hi * avg * 3 + 1))
    if bet_type is BetType.QUINELLA:
        return round_half_up(cost * (avg * 1.5 + 1)), round_half_up(cost * (hi * 2 + 1))
    if bet_type is BetType.SUPERFECTA:
        return round_half_up(cost * (avg * 20 + 1)), round_half_up(cost * (hi * avg * 10 + 1))
    return round_half_up(cost), round_half_up(cost * 10)


def scale_return(potential_return: Tuple[int, int], factor: float) -> Tuple[int, int]:
    lo, hi = potential_return
    return round_half_up(lo * factor), round_half_up(hi * factor)
