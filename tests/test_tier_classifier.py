"""Tests for tier classification: bands, special cases, scratches, field-relative metrics."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from config import DEFAULT_CONFIG
from overlay_analysis import SpecialCase
from tier_classifier import (
    calculate_confidence,
    classify_horses,
    determine_tier,
    find_group,
    get_qualifying_horses,
    has_qualifying_horses,
    tier_groups_to_dict,
)

_TIER_RANK = {None: 0, "tier3": 1, "tier2": 2, "tier1": 3}


def _tiers_by_number(groups):
    return {h.program_number: g.tier for g in groups for h in g.horses}


class TestConfidence:
    def test_rescale(self):
        assert calculate_confidence(0) == 40
        assert calculate_confidence(160) == 80
        assert calculate_confidence(195) == 89

    def test_capped(self):
        assert calculate_confidence(300) == 100


class TestDetermineTier:
    def test_bands(self):
        assert determine_tier(190, 190, 85, SpecialCase.NONE) == "tier1"
        assert determine_tier(170, 170, 83, SpecialCase.NONE) == "tier2"
        assert determine_tier(150, 150, 78, SpecialCase.NONE) == "tier3"
        assert determine_tier(120, 120, 70, SpecialCase.NONE) is None

    def test_tier1_needs_confidence(self):
        assert determine_tier(185, 185, 79, SpecialCase.NONE) == "tier2"

    def test_diamond_always_tier2(self):
        for base, adjusted in [(150, 230), (145, 145), (160, 120)]:
            assert determine_tier(base, adjusted, 80, SpecialCase.DIAMOND_IN_ROUGH) == "tier2"

    def test_fool_gold_demoted(self):
        assert determine_tier(200, 200, 90, SpecialCase.FOOL_GOLD) == "tier2"

    def test_fool_gold_below_tier1_floor_uses_bands(self):
        assert determine_tier(170, 150, 80, SpecialCase.FOOL_GOLD) == "tier3"

    @pytest.mark.parametrize("confidence", [80, 90, 100])
    def test_monotonic_in_adjusted_score(self, confidence):
        ranks = [_TIER_RANK[determine_tier(150, s, confidence, SpecialCase.NONE)] for s in range(100, 251)]
        assert ranks == sorted(ranks)

    def test_monotonic_below_tier1_confidence(self):
        # sub-80 confidence means base < 160, so adjusted tops out at 189
        ranks = [_TIER_RANK[determine_tier(150, s, 70, SpecialCase.NONE)] for s in range(100, 190)]
        assert ranks == sorted(ranks)


class TestClassifyHorses:
    def test_empty_field(self):
        assert classify_horses([]) == []

    def test_single_favourite_is_tier1(self, make_scored):
        groups = classify_horses([make_scored(3, 195, "3-1")])
        assert len(groups) == 1
        assert groups[0].tier == "tier1"
        horse = groups[0].horses[0]
        assert horse.program_number == 3
        assert horse.confidence == 89
        assert horse.odds == 3.0

    def test_standard_field_tiers(self, standard_field):
        groups = classify_horses(standard_field)
        assert [g.tier for g in groups] == ["tier1", "tier2", "tier3"]
        assert _tiers_by_number(groups) == {1: "tier1", 2: "tier1", 5: "tier2", 4: "tier2",
                                            3: "tier2", 6: "tier3"}

    def test_group_sorting(self, standard_field):
        groups = classify_horses(standard_field)
        assert [h.program_number for h in find_group(groups, "tier1").horses] == [1, 2]
        # diamond first, then overlay descending
        assert [h.program_number for h in find_group(groups, "tier2").horses] == [5, 4, 3]

    def test_diamond_flagged(self, standard_field):
        tier2 = find_group(classify_horses(standard_field), "tier2")
        diamond = tier2.horses[0]
        assert diamond.special_case is SpecialCase.DIAMOND_IN_ROUGH
        assert diamond.is_special_case

    def test_tier1_sorted_by_adjusted_score(self, make_scored):
        field = [make_scored(1, 195, "2-1"), make_scored(2, 170, "3-1"), make_scored(3, 160, "4-1")]
        tier1 = find_group(classify_horses(field), "tier1")
        assert tier1.horses[0].program_number == 1
        scores = [h.adjusted_score for h in tier1.horses]
        assert scores == sorted(scores, reverse=True)

    def test_scratches_never_classified(self, standard_field):
        groups = classify_horses(standard_field)
        assert 7 not in _tiers_by_number(groups)
        assert all(not h.score.is_scratched for g in groups for h in g.horses)

    def test_all_scratched(self, make_scored):
        assert classify_horses([make_scored(1, 200, scratched=True)]) == []

    def test_tier3_requires_overlay(self, make_scored):
        field = [make_scored(1, 200, "1-2"), make_scored(2, 150, "13-8")]
        assert _tiers_by_number(classify_horses(field)) == {1: "tier1"}

    def test_display_metadata(self, standard_field):
        tier3 = find_group(classify_horses(standard_field), "tier3")
        assert tier3.name == "Value Bombs"
        assert tier3.expected_hit_rate == {"win": 8, "place": 18, "show": 28}

    def test_odds_source(self, standard_field):
        horses = get_qualifying_horses(standard_field)
        assert {h.odds_source for h in horses} == {"morning_line"}
        assert {h.odds_confidence for h in horses} == {60}

    def test_live_odds_replace_morning_line(self, standard_field):
        groups = classify_horses(standard_field, live_odds={1: "5-1"})
        top = find_group(groups, "tier1").horses[0]
        assert top.program_number == 1
        assert top.odds_display == "5-1"
        assert top.odds_source == "live"
        assert top.odds_confidence == 95

    def test_odds_confidence_toggle(self, standard_field):
        cfg = DEFAULT_CONFIG.with_overrides(use_odds_confidence=False)
        assert all(h.odds_confidence is None for h in get_qualifying_horses(standard_field, cfg))

    def test_has_qualifying_horses(self, standard_field, make_scored):
        assert has_qualifying_horses(standard_field)
        assert not has_qualifying_horses([make_scored(1, 100, "1-1"), make_scored(2, 90, "1-1")])

    def test_to_dict(self, standard_field):
        data = tier_groups_to_dict(classify_horses(standard_field))
        assert data[0]["tier"] == "tier1"
        assert data[1]["horses"][0]["special_case"] == "diamond_in_rough"
        assert data[0]["field_context"]["field_size"] == 6


class TestFieldRelative:
    def test_tied_leaders(self, make_scored):
        field = [make_scored(1, 185, "3-1"), make_scored(2, 185, "3-1"), make_scored(3, 160, "5-1")]
        leaders = [h for h in get_qualifying_horses(field) if h.score.total == 185]
        assert len(leaders) == 2
        for h in leaders:
            assert h.field_relative.is_standout is False
            assert h.field_relative.gap_from_next_best == 0

    def test_never_changes_tier(self, make_scored):
        field = [make_scored(1, 200, "3-1"), make_scored(2, 150, "6-1"),
                 make_scored(3, 140, "8-1"), make_scored(4, 130, "12-1")]
        with_metrics = classify_horses(field)
        without = classify_horses(field, DEFAULT_CONFIG.with_overrides(use_field_relative_scoring=False))

        nudged = [h for g in with_metrics for h in g.horses if h.field_relative.tier_adjustment != 0]
        assert [h.program_number for h in nudged] == [1]
        assert _tiers_by_number(with_metrics) == _tiers_by_number(without)
        assert all(h.field_relative is None for g in without for h in g.horses)

    def test_threshold_from_config(self, make_scored):
        field = [make_scored(1, 200, "3-1"), make_scored(2, 150, "6-1")]
        cfg = DEFAULT_CONFIG.with_overrides(field_relative_standout_threshold=60)
        top = find_group(classify_horses(field, cfg), "tier1").horses[0]
        assert top.field_relative.is_standout is False

    def test_lone_horse_has_no_context(self, make_scored):
        horse = get_qualifying_horses([make_scored(1, 195, "3-1")])[0]
        assert horse.field_relative is None
