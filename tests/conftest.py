"""Shared fixtures: scored fields and classified-horse builders."""
import sys
from dataclasses import replace
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import BankrollSettings
from horse_data import HorseEntry, HorseScore, ScoreBreakdown, ScoredHorse
from odds import parse_odds
from overlay_analysis import SpecialCase, analyze_overlay
from tier_classifier import ClassifiedHorse, calculate_confidence


def _scored(number, score, odds="10-1", name=None, scratched=False, index=None,
            base_score=None, breakdown=None):
    return ScoredHorse(
        horse=HorseEntry(
            program_number=number,
            horse_name=name or f"HORSE {number}",
            morning_line_odds=odds,
            post_position=number,
        ),
        index=number - 1 if index is None else index,
        score=HorseScore(
            total=score,
            base_score=score if base_score is None else base_score,
            breakdown=breakdown or ScoreBreakdown(),
            is_scratched=scratched,
        ),
    )


def _classified(number, adjusted_score, tier="tier1", odds="3-1", name=None,
                overlay_percent=0.0, ev_per_dollar=-0.1, base_score=None,
                special_case=SpecialCase.NONE, breakdown=None):
    base = adjusted_score if base_score is None else base_score
    overlay = replace(
        analyze_overlay(base, odds),
        overlay_percent=overlay_percent,
        ev_per_dollar=ev_per_dollar,
        is_positive_ev=ev_per_dollar > 0,
    )
    return ClassifiedHorse(
        horse=HorseEntry(program_number=number, horse_name=name or f"HORSE {number}",
                         morning_line_odds=odds, post_position=number),
        index=number - 1,
        score=HorseScore(total=base, base_score=base, breakdown=breakdown or ScoreBreakdown()),
        confidence=calculate_confidence(base),
        odds=parse_odds(odds),
        odds_display=odds,
        tier=tier,
        adjusted_score=adjusted_score,
        overlay=overlay,
        special_case=special_case,
    )


@pytest.fixture
def make_scored():
    return _scored


@pytest.fixture
def make_classified():
    return _classified


@pytest.fixture
def standard_field():
    """Seven entries, #7 scratched.

    Classifies as tier1 #1 #2, tier2 #5 (diamond) #4 #3, tier3 #6.
    """
    return [
        _scored(1, 200, "9-2", "BOLD OPTION"),
        _scored(2, 185, "3-1", "STORM RUNNER"),
        _scored(3, 175, "5-1", "DARK MAGIC"),
        _scored(4, 160, "7-1", "FAST COPPER"),
        _scored(5, 150, "20-1", "MORNING STAR"),
        _scored(6, 120, "30-1", "RED PHANTOM"),
        _scored(7, 210, "1-1", "SILVER CREEK", scratched=True),
    ]


@pytest.fixture
def default_bankroll():
    return BankrollSettings()
