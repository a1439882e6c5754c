"""Betting-window instructions.

Renders a bet -- type, ordered program numbers, stake -- into what you say
at the window or paste into an ADW ticket:

    "Race 5, $8 to WIN on number 3"
    "$3 EXACTA BOX 3-5"
    "$2 EXACTA, number 7 on top with 3, 5, 8"
    "10 cent SUPERFECTA BOX 1-3-5-7"

Order matters for key and wheel bets: the first number is the key horse.

Usage:
    text = generate_window_instruction("exacta_box", [3, 5], 3, race_number=5)
    slip = format_bet_slip(result.all_bets, race_number=5,
                           total_cost=result.total_max_cost, potential_return=(40, 900))
    print(slip.full_text)
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from bet_costs import BetType, round_half_up


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WindowInstruction:
    text: str           # quoted, as shown on the bet card
    plain_text: str     # clipboard
    short_text: str     # mobile
    voice_text: str     # read aloud


@dataclass(frozen=True)
class BetSlipEntry:
    bet_type: str
    amount: str
    horses: str
    instruction: str
    potential_return: str


@dataclass
class FormattedBetSlip:
    header: str
    entries: List[BetSlipEntry] = field(default_factory=list)
    total_cost: str = "$0.00"
    potential_return_range: str = ""
    full_text: str = ""


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

def _plain_number(amount: float) -> str:
    # 5 -> "5", 2.5 -> "2.5", 1.25 -> "1.25"
    return f"{amount:.2f}".rstrip("0").rstrip(".")


def format_amount(amount: float) -> str:
    """Stake as called at the window: "$5", "$2.5", "50 cent"."""
    if amount < 1:
        return f"{round_half_up(amount * 100)} cent"
    return f"${_plain_number(amount)}"


def format_display_amount(amount: float) -> str:
    if amount < 1:
        return f"${amount:.2f}"
    return f"${round_half_up(amount)}"


def format_currency(amount: float) -> str:
    """US dollars with thousands separators.

    Whole dollars drop the cents, anything under $1 keeps two places:
    1000 -> "$1,000", 12.5 -> "$12.5", 0.5 -> "$0.50".
    """
    sign = "-" if amount < 0 else ""
    value = round_half_up(abs(amount) * 100) / 100
    text = f"{value:,.2f}"
    if amount >= 1:
        text = text.rstrip("0").rstrip(".")
    return f"{sign}${text}"


def format_numbers(numbers: Sequence[int], separator: str = "-") -> str:
    return separator.join(str(n) for n in numbers)


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------

def _full_instruction(bet_type: BetType, numbers: Sequence[int], amount: float,
                      race_number: Optional[int]) -> str:
    prefix = f"Race {race_number}, " if race_number else ""
    amt = format_amount(amount)
    nums = format_numbers(numbers)
    first = numbers[0] if numbers else nums
    rest = ", ".join(str(n) for n in numbers[1:])

    if bet_type in (BetType.WIN, BetType.VALUE_BOMB, BetType.HIDDEN_GEM):
        body = f"{amt} to WIN on number {first}"
    elif bet_type is BetType.PLACE:
        body = f"{amt} to PLACE on number {first}"
    elif bet_type is BetType.SHOW:
        body = f"{amt} to SHOW on number {first}"
    elif bet_type is BetType.EXACTA_BOX:
        body = f"{amt} EXACTA BOX {nums}"
    elif bet_type is BetType.EXACTA_KEY_OVER:
        body = f"{amt} EXACTA, number {first} on top with {rest}" if len(numbers) >= 2 \
            else f"{amt} EXACTA {nums}"
    elif bet_type is BetType.EXACTA_KEY_UNDER:
        body = f"{amt} EXACTA, {rest} with number {first} second" if len(numbers) >= 2 \
            else f"{amt} EXACTA {nums}"
    elif bet_type is BetType.TRIFECTA_BOX:
        body = f"{amt} TRIFECTA BOX {nums}"
    elif bet_type is BetType.TRIFECTA_KEY:
        body = f"{amt} TRIFECTA, number {first} first, with {rest} for second and third" \
            if len(numbers) >= 3 else f"{amt} TRIFECTA BOX {nums}"
    elif bet_type is BetType.TRIFECTA_WHEEL:
        body = f"{amt} TRIFECTA WHEEL, number {first} with ALL for second, {rest} for third" \
            if len(numbers) >= 2 else f"{amt} TRIFECTA {nums}"
    elif bet_type is BetType.QUINELLA:
        body = f"{amt} QUINELLA {nums}"
    elif bet_type is BetType.SUPERFECTA:
        body = f"{amt} SUPERFECTA BOX {nums}"
    else:
        body = f"{amt} on {nums}"
    return f'"{prefix}{body}"'


_SHORT_CODES = {
    BetType.WIN: "W", BetType.PLACE: "P", BetType.SHOW: "S",
    BetType.VALUE_BOMB: "W", BetType.HIDDEN_GEM: "W",
}


def _short_instruction(bet_type: BetType, numbers: Sequence[int], amount: float) -> str:
    amt = format_display_amount(amount)
    nums = format_numbers(numbers)
    first = numbers[0] if numbers else ""
    if bet_type in _SHORT_CODES:
        return f"{amt} {_SHORT_CODES[bet_type]} #{first}"
    if bet_type is BetType.EXACTA_BOX:
        return f"{amt} EX Box {nums}"
    if bet_type is BetType.EXACTA_KEY_OVER:
        return f"{amt} EX #{first}/{nums}"
    if bet_type is BetType.EXACTA_KEY_UNDER:
        return f"{amt} EX {nums}/#{first}"
    if bet_type is BetType.TRIFECTA_BOX:
        return f"{amt} TRI Box {nums}"
    if bet_type is BetType.TRIFECTA_KEY:
        return f"{amt} TRI Key {nums}"
    if bet_type is BetType.TRIFECTA_WHEEL:
        return f"{amt} TRI Wheel {nums}"
    if bet_type is BetType.QUINELLA:
        return f"{amt} Q {nums}"
    if bet_type is BetType.SUPERFECTA:
        return f"{amt} Super {nums}"
    return f"{amt} {nums}"


def _voice_instruction(bet_type: BetType, numbers: Sequence[int], amount: float,
                       race_number: Optional[int]) -> str:
    prefix = f"Race {race_number}. " if race_number else ""
    said = f"{round_half_up(amount * 100)} cents" if amount < 1 else f"{_plain_number(amount)} dollars"
    joined = " and ".join(str(n) for n in numbers)
    first = numbers[0] if numbers else ""

    if bet_type in (BetType.WIN, BetType.VALUE_BOMB, BetType.HIDDEN_GEM):
        body = f"{said} to win on number {first}"
    elif bet_type is BetType.PLACE:
        body = f"{said} to place on number {first}"
    elif bet_type is BetType.SHOW:
        body = f"{said} to show on number {first}"
    elif bet_type is BetType.EXACTA_BOX:
        body = f"{said} exacta box, numbers {joined}"
    elif bet_type is BetType.EXACTA_KEY_OVER:
        body = f"{said} exacta, number {first} over {' and '.join(str(n) for n in numbers[1:])}"
    elif bet_type is BetType.TRIFECTA_BOX:
        body = f"{said} trifecta box, numbers {joined}"
    elif bet_type is BetType.QUINELLA:
        body = f"{said} quinella, numbers {joined}"
    elif bet_type is BetType.SUPERFECTA:
        body = f"{said} superfecta box, numbers {joined}"
    else:
        body = f"{said} on numbers {joined}"
    return prefix + body


def generate_window_instruction(bet_type, numbers: Sequence[int], amount: float,
                                race_number: Optional[int] = None, style: str = "full") -> str:
    """Instruction text in one of three styles: full (quoted), short or voice."""
    bet_type = BetType(bet_type)
    numbers = list(numbers)
    if style == "short":
        return _short_instruction(bet_type, numbers, amount)
    if style == "voice":
        return _voice_instruction(bet_type, numbers, amount, race_number)
    if style != "full":
        raise ValueError(f"unknown instruction style {style!r}")
    return _full_instruction(bet_type, numbers, amount, race_number)


def generate_full_instruction(bet_type, numbers: Sequence[int], amount: float,
                              race_number: Optional[int] = None) -> WindowInstruction:
    text = generate_window_instruction(bet_type, numbers, amount, race_number)
    return WindowInstruction(
        text=text,
        plain_text=text.strip('"'),
        short_text=generate_window_instruction(bet_type, numbers, amount, style="short"),
        voice_text=generate_window_instruction(bet_type, numbers, amount, race_number, style="voice"),
    )


# ---------------------------------------------------------------------------
# Bet slips
# ---------------------------------------------------------------------------

def _with_race(instruction: str, race_number: int) -> str:
    text = re.sub(r'^"', f'"Race {race_number}, ', instruction)
    text = re.sub(r"Race \d+, Race \d+", f"Race {race_number}", text)
    return text.strip('"')


def format_single_bet(bet, race_number: int) -> str:
    """One bet's instruction for the clipboard, race prefix guaranteed once."""
    return _with_race(bet.window_instruction, race_number)


def format_bet_slip_simple(bets, race_number: int) -> str:
    return "\n".join(f"- {format_single_bet(b, race_number)}" for b in bets)


def format_bet_slip(bets, race_number: int, total_cost: float,
                    potential_return: Tuple[float, float]) -> FormattedBetSlip:
    header = f"Bet Slip - Race {race_number}"
    divider = "=" * 40
    return_range = f"{format_currency(potential_return[0])} - {format_currency(potential_return[1])}"

    entries = [
        BetSlipEntry(
            bet_type=b.type_name,
            amount=format_currency(b.total_cost),
            horses=", ".join(f"#{n}" for n in b.horse_numbers),
            instruction=format_single_bet(b, race_number),
            potential_return=f"{format_currency(b.potential_return[0])} - "
                             f"{format_currency(b.potential_return[1])}",
        )
        for b in bets
    ]

    body = "\n\n".join(
        f"{e.bet_type} ({e.amount}):\n  {e.instruction}\n  Potential: {e.potential_return}"
        for e in entries
    )
    full_text = "\n".join([
        header,
        divider,
        body,
        divider,
        f"Total: {format_currency(total_cost)}",
        f"Potential Return: {return_range}",
    ])
    return FormattedBetSlip(
        header=header,
        entries=entries,
        total_cost=format_currency(total_cost),
        potential_return_range=return_range,
        full_text=full_text,
    )


_AMOUNT_RE = re.compile(r"\$?\d+(?:\.\d{1,2})?\s*(?:cent|dollar|to|EXACTA|TRIFECTA|QUINELLA|SUPERFECTA)",
                        re.IGNORECASE)


def validate_instruction(instruction: str) -> bool:
    """Quoted, carries a stake and at least one program number."""
    if len(instruction) < 2 or not (instruction.startswith('"') and instruction.endswith('"')):
        return False
    if not _AMOUNT_RE.search(instruction):
        return False
    return re.search(r"\d+(?:[,-]\d+)*", instruction) is not None
