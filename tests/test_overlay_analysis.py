"""Tests for overlay analysis: field probabilities, value classes, tier adjustment."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from overlay_analysis import (
    SpecialCase,
    ValueClass,
    analyze_overlay_with_field,
    calculate_ev,
    calculate_field_relative_win_probability,
    calculate_overlay_percent,
    calculate_tier_adjustment,
    classify_value,
    detect_value_plays,
    format_ev,
    format_overlay_percent,
    overlay_analysis_to_dict,
    probability_to_fair_odds,
    score_to_win_probability,
    softmax_probabilities,
)


class TestProbabilities:
    def test_empty_field(self):
        assert softmax_probabilities([]) == []

    def test_single_horse(self):
        assert softmax_probabilities([150]) == [1.0]

    def test_all_zero_split_evenly(self):
        assert softmax_probabilities([0, 0]) == [0.5, 0.5]

    def test_sums_to_one(self):
        probs = softmax_probabilities([200, 185, 175, 160, 150, 120])
        assert sum(probs) == pytest.approx(1.0)

    def test_higher_score_higher_probability(self):
        probs = softmax_probabilities([200, 150, 100])
        assert probs[0] > probs[1] > probs[2]

    def test_zero_score_gets_floor(self):
        assert calculate_field_relative_win_probability(0, [150, 160]) == 2.0

    def test_lone_horse_capped(self):
        assert calculate_field_relative_win_probability(195, [195]) == 85.0

    def test_legacy_formula(self):
        assert score_to_win_probability(323) == 50.0
        assert score_to_win_probability(0) == 2.0


class TestValue:
    def test_fair_odds(self):
        assert probability_to_fair_odds(0.25) == 4.0

    def test_fair_odds_bounds(self):
        assert probability_to_fair_odds(0) == 100.0
        assert probability_to_fair_odds(1) == 1.01

    def test_overlay_percent(self):
        assert calculate_overlay_percent(4.0, 6.0) == 50.0

    def test_overlay_on_heavy_favourite_is_zero(self):
        assert calculate_overlay_percent(1.01, 3.0) == 0.0

    @pytest.mark.parametrize("pct,expected", [
        (100, ValueClass.MASSIVE_OVERLAY),
        (40, ValueClass.STRONG_OVERLAY),
        (20, ValueClass.MODERATE_OVERLAY),
        (10, ValueClass.SLIGHT_OVERLAY),
        (-20, ValueClass.FAIR_PRICE),
        (-20.1, ValueClass.UNDERLAY),
    ])
    def test_classify_value(self, pct, expected):
        assert classify_value(pct) is expected

    def test_ev(self):
        assert calculate_ev(25, 5.0) == 0.25

    def test_analysis_fields(self):
        analysis = analyze_overlay_with_field(195, [195], "3-1")
        assert analysis.win_probability == 85.0
        assert analysis.actual_odds_decimal == 4.0
        assert analysis.overlay_percent > 150
        assert analysis.is_positive_ev
        assert analysis.recommendation.action == "bet_heavily"

    def test_to_dict(self):
        d = overlay_analysis_to_dict(analyze_overlay_with_field(160, [180, 160], "8-1"))
        assert d["value_class"] in {v.value for v in ValueClass}
        assert overlay_analysis_to_dict(None) is None


class TestTierAdjustment:
    def test_massive_overlay_bonus(self):
        adj = calculate_tier_adjustment(200, 200, 200)
        assert adj.adjusted_score == 230
        assert adj.tier_shift == 2

    def test_ceiling(self):
        assert calculate_tier_adjustment(240, 240, 200).adjusted_score == 250

    def test_slight_overlay(self):
        assert calculate_tier_adjustment(150, 120, 20).adjusted_score == 155

    def test_significant_underlay_penalty(self):
        adj = calculate_tier_adjustment(130, 130, -35)
        assert adj.adjusted_score == 105
        assert adj.tier_shift == -2
        assert adj.special_case is SpecialCase.NONE

    def test_mild_underlay_penalty(self):
        assert calculate_tier_adjustment(130, 130, -20).adjusted_score == 115

    def test_penalty_waived_for_proven_horse(self):
        adj = calculate_tier_adjustment(170, 170, -20)
        assert adj.adjusted_score == 170
        assert "waived" in adj.reasoning

    def test_diamond_in_rough(self):
        adj = calculate_tier_adjustment(150, 150, 160)
        assert adj.special_case is SpecialCase.DIAMOND_IN_ROUGH
        assert adj.is_special_case
        assert adj.adjusted_score == 180
        assert adj.reasoning.startswith("DIAMOND IN ROUGH")

    def test_diamond_needs_base_band(self):
        assert calculate_tier_adjustment(170, 170, 200).special_case is SpecialCase.NONE

    def test_fool_gold(self):
        adj = calculate_tier_adjustment(190, 190, -30)
        assert adj.special_case is SpecialCase.FOOL_GOLD
        assert adj.adjusted_score == 190

    def test_fool_gold_needs_deep_underlay(self):
        assert calculate_tier_adjustment(190, 190, -20).special_case is SpecialCase.NONE


class TestValuePlays:
    def test_sorted_by_overlay_and_skips_scratches(self, standard_field):
        plays = detect_value_plays(standard_field)
        overlays = [p.overlay_percent for p in plays]
        assert overlays == sorted(overlays, reverse=True)
        assert 7 not in [p.program_number for p in plays]
        assert plays[0].program_number == 6
        assert "+EV" in plays[0].tags


class TestFormatting:
    def test_overlay_percent(self):
        assert format_overlay_percent(25.4) == "+25%"
        assert format_overlay_percent(-10) == "-10%"
        assert format_overlay_percent(float("nan")) == "0%"

    def test_ev(self):
        assert format_ev(0.25) == "+$0.25"
        assert format_ev(-0.1) == "-$0.10"
