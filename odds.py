"""Odds string parsing and display helpers.

Two numeric conventions are used across the pipeline:

* profit ratio  -- "5-2" -> 2.5, what the horse pays per $1 of profit.
                   ClassifiedHorse.odds and payout estimates use this.
* decimal odds  -- "5-2" -> 3.5, stake included.  Overlay math uses this.

Nothing in here raises on malformed input; unparseable strings fall back to
a 10-1 shot, which keeps an unknown horse out of the chalk tiers.
"""
from __future__ import annotations

import math
import re
from typing import Optional

_DEFAULT_PROFIT_RATIO = 10.0
_DEFAULT_DECIMAL = 11.0

_EVEN_TOKENS = ("EVEN", "EVN", "EVS")

# (profit ratio, display) pairs for nearest-match fractional display
_COMMON_FRACTIONS = [
    (0.1, "1-10"), (0.2, "1-5"), (0.25, "1-4"), (0.33, "1-3"), (0.4, "2-5"),
    (0.5, "1-2"), (0.6, "3-5"), (0.667, "2-3"), (0.75, "3-4"), (0.8, "4-5"),
    (0.9, "9-10"), (1.0, "EVEN"), (1.1, "11-10"), (1.2, "6-5"), (1.4, "7-5"),
    (1.5, "3-2"), (1.8, "9-5"), (2.0, "2-1"), (2.5, "5-2"), (3.0, "3-1"),
    (3.5, "7-2"), (4.0, "4-1"), (5.0, "5-1"), (6.0, "6-1"), (7.0, "7-1"),
    (8.0, "8-1"), (9.0, "9-1"), (10.0, "10-1"), (12.0, "12-1"),
    (15.0, "15-1"), (20.0, "20-1"), (30.0, "30-1"), (50.0, "50-1"),
    (99.0, "99-1"),
]


def _to_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _clean(odds_str: Optional[str]) -> str:
    # "*" marks the morning-line favourite on BRISNET sheets
    return (odds_str or "").strip().upper().lstrip("*").strip()


def parse_odds(odds_str: Optional[str]) -> float:
    """Parse a tote/morning-line string into a profit ratio.

    "3-1" -> 3.0, "5/2" -> 2.5, "EVEN" -> 1.0, "4.5" -> 4.5.
    Anything unparseable returns 10.0.
    """
    cleaned = _clean(odds_str)
    if not cleaned:
        return _DEFAULT_PROFIT_RATIO
    if cleaned in _EVEN_TOKENS:
        return 1.0

    for sep in ("-", "/"):
        if sep in cleaned:
            num_s, den_s = cleaned.split(sep, 1)
            num, den = _to_float(num_s), _to_float(den_s)
            if num is None:
                return _DEFAULT_PROFIT_RATIO
            return num / den if den else num

    value = _to_float(cleaned)
    return value if value is not None else _DEFAULT_PROFIT_RATIO


def parse_odds_to_decimal(odds_str: Optional[str]) -> float:
    """Parse odds into decimal form (stake included).

    Handles fractional ("3-1", "5/2"), EVEN, moneyline ("+300", "-150") and
    plain numbers.  A small plain number is read as a profit ratio; 20 or
    more is taken as already-decimal.  Failures return 11.0 (10-1).
    """
    cleaned = _clean(odds_str)
    if not cleaned:
        return _DEFAULT_DECIMAL
    if cleaned in _EVEN_TOKENS:
        return 2.0

    if cleaned.startswith("+"):
        ml = _to_float(cleaned[1:])
        return 1 + ml / 100 if ml else _DEFAULT_DECIMAL
    if cleaned.startswith("-"):
        ml = _to_float(cleaned[1:])
        return 1 + 100 / ml if ml else _DEFAULT_DECIMAL

    match = re.match(r"^(\d+(?:\.\d+)?)\s*[-/]\s*(\d+(?:\.\d+)?)$", cleaned)
    if match:
        num = float(match.group(1))
        den = float(match.group(2)) or 1.0
        return 1 + num / den

    plain = _to_float(cleaned)
    if plain is None:
        return _DEFAULT_DECIMAL
    if plain < 1.5:
        return 2.0
    if plain < 20:
        return 1 + plain
    return plain


def decimal_to_fractional_odds(decimal: float) -> str:
    """Closest conventional fractional display for decimal odds."""
    if decimal is None or not math.isfinite(decimal) or decimal <= 0:
        return "N/A"
    if decimal <= 1.01:
        return "EVEN"

    profit = decimal - 1
    closest = "10-1"
    closest_diff = math.inf
    for value, display in _COMMON_FRACTIONS:
        diff = abs(profit - value)
        if diff < closest_diff:
            closest_diff = diff
            closest = display
    return closest


def decimal_to_moneyline(decimal: float) -> str:
    if decimal >= 2.0:
        return f"+{round((decimal - 1) * 100)}"
    if decimal <= 1.0:
        return "N/A"
    return f"{round(-100 / (decimal - 1))}"
