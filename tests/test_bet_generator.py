"""Tests for the end-to-end bet generator."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from bet_costs import BetType
from bet_generator import (
    Err,
    Ok,
    create_generated_bet,
    deduplicate_bets,
    empty_generator_result,
    generate_recommendations,
    generator_result_to_csv,
    generator_result_to_dict,
    generator_result_to_frame,
    generator_result_to_text,
    is_bet_recommended,
    sanitize_bet_amounts,
)
from bet_sizing import TIERS, get_tier_budgets
from config import BankrollSettings
from special_analysis import DiamondAnalysis, LongshotAngle, build_longshot_analysis
from window_instructions import generate_window_instruction

STYLES = [
    BankrollSettings(betting_style="safe"),
    BankrollSettings(betting_style="balanced"),
    BankrollSettings(betting_style="aggressive"),
    BankrollSettings(complexity_mode="moderate", risk_tolerance="conservative"),
    BankrollSettings(complexity_mode="advanced", risk_tolerance="aggressive", race_budget=200),
]


def _nuclear_six():
    return build_longshot_analysis(6, "RED PHANTOM", "30-1", [
        LongshotAngle("Pace Collapse", 110, "Lone closer behind a speed duel"),
    ])


def _generate(field, **kwargs):
    outcome = generate_recommendations(field, race_number=3, **kwargs)
    assert isinstance(outcome, Ok)
    return outcome.value


class TestGenerateRecommendations:
    def test_returns_ok(self, standard_field):
        outcome = generate_recommendations(standard_field, race_number=3)
        assert outcome.is_ok
        assert outcome.unwrap_or_empty().race_number == 3

    def test_every_bet_has_positive_stake(self, standard_field):
        for bet in _generate(standard_field).all_bets:
            assert bet.amount > 0
            assert bet.total_cost > 0

    def test_no_duplicate_combinations(self, standard_field):
        bets = _generate(standard_field, diamonds=[
            DiamondAnalysis(5, "MORNING STAR", "20-1", 70, "Hidden form cycle")]).all_bets
        keys = [(b.type, frozenset(b.horse_numbers)) for b in bets]
        assert len(keys) == len(set(keys))

    def test_scratched_horse_never_bet(self, standard_field):
        result = _generate(standard_field)
        assert all(7 not in b.horse_numbers for b in result.all_bets)
        assert result.summary.scratch_count == 1

    @pytest.mark.parametrize("bankroll", STYLES)
    def test_tier_totals_fit_budgets(self, standard_field, bankroll):
        result = _generate(standard_field, bankroll=bankroll, longshots=[_nuclear_six()])
        budgets = get_tier_budgets(bankroll)
        for tier in TIERS:
            spent = sum(b.total_cost for b in result.all_bets if b.tier == tier)
            assert spent <= budgets[tier] + 1e-9

    def test_instructions_match_scaled_stakes(self, standard_field):
        result = generate_recommendations(
            standard_field, race_number=5, bankroll=BankrollSettings(race_budget=20)).value
        # a $20 race budget forces the scaler to shrink stakes to the cent
        assert any(b.amount != int(b.amount) for b in result.all_bets)
        for bet in result.all_bets:
            assert bet.race_number == 5
            assert bet.window_instruction == generate_window_instruction(
                bet.type, bet.horse_numbers, bet.amount, 5)

    def test_tier1_slate(self, standard_field):
        tier1 = [b for b in _generate(standard_field).all_bets if b.tier == "tier1"]
        win = next(b for b in tier1 if b.type is BetType.WIN)
        assert win.horse_numbers == [1]
        box = next(b for b in tier1 if b.type is BetType.EXACTA_BOX)
        assert box.horse_numbers == [1, 2]
        assert box.box_summary == "2-horse box"

    def test_safe_style_skips_tier3(self, standard_field):
        result = _generate(standard_field, bankroll=BankrollSettings(betting_style="safe"))
        assert all(b.tier != "tier3" for b in result.all_bets)
        assert all(b.tier != "tier3" for b in result.recommended_bets)

    def test_aggressive_recommends_everything(self, standard_field):
        result = _generate(standard_field, bankroll=BankrollSettings(betting_style="aggressive"))
        assert result.all_bets
        assert result.recommended_bets == result.all_bets
        assert result.total_recommended_cost == result.total_max_cost

    def test_nuclear_longshot_replaces_win(self, standard_field):
        result = _generate(standard_field, longshots=[_nuclear_six()])
        nuclear = result.special_bets.nuclear_longshots
        assert len(nuclear) == 1
        assert nuclear[0].type is BetType.VALUE_BOMB
        assert nuclear[0].type_name == "NUCLEAR Value Bomb"
        assert nuclear[0].longshot_angle == "Lone closer behind a speed duel"
        assert not any(b.tier == "tier3" and b.type is BetType.WIN for b in result.all_bets)

    def test_longshot_detector_is_called(self, standard_field):
        seen = []

        def detector(horses):
            seen.append(len(horses))
            return [_nuclear_six()]

        result = _generate(standard_field, longshot_detector=detector)
        assert seen == [7]
        assert result.summary.nuclear_count == 1

    def test_dead_longshot_ignored(self, standard_field):
        dead = build_longshot_analysis(6, "RED PHANTOM", "30-1", [LongshotAngle("Trip", 10)])
        result = _generate(standard_field, longshots=[dead])
        assert result.special_bets.nuclear_longshots == []
        assert any(b.tier == "tier3" and b.type is BetType.WIN for b in result.all_bets)

    def test_diamond_bets(self, standard_field):
        result = _generate(standard_field, diamonds=[
            DiamondAnalysis(5, "MORNING STAR", "20-1", 70, "Hidden form cycle")])
        gem = next(b for b in result.special_bets.diamonds if b.type is BetType.HIDDEN_GEM)
        assert gem.horse_numbers == [5]
        assert gem.diamond_story == "Hidden form cycle"
        # the tier2 menu's place bet on #5 wins the dedup against the diamond saver
        places = [b for b in result.all_bets if b.type is BetType.PLACE and b.horse_numbers == [5]]
        assert len(places) == 1
        assert places[0].special_category is None

    def test_unvalidated_diamond_ignored(self, standard_field):
        result = _generate(standard_field, diamonds=[
            DiamondAnalysis(5, "MORNING STAR", "20-1", 70, "", validated=False)])
        assert result.special_bets.diamonds == []

    def test_value_bombs(self, standard_field):
        bombs = _generate(standard_field).special_bets.value_bombs
        assert 1 <= len(bombs) <= 2
        for bomb in bombs:
            assert bomb.type_name == "EV Value Bomb"
            assert bomb.ev_per_dollar > 0

    def test_explanations_attached(self, standard_field):
        for bet in _generate(standard_field).all_bets:
            assert bet.explanation
            assert bet.narrative.startswith(f"#{bet.horse_numbers[0]} ")
            assert bet.id.startswith(f"{bet.tier}-{bet.type.value}-")

    def test_empty_field(self):
        result = _generate([])
        assert result.all_bets == []
        assert result.total_max_cost == 0

    def test_all_scratched(self, make_scored):
        result = _generate([make_scored(1, 200, scratched=True), make_scored(2, 180, scratched=True)])
        assert result.all_bets == []
        assert result.summary.scratch_count == 2


class TestFailures:
    def test_detector_failure_is_err(self, standard_field, caplog):
        def broken(horses):
            raise RuntimeError("detector offline")

        with caplog.at_level(logging.ERROR, logger="bet_generator"):
            outcome = generate_recommendations(standard_field, race_number=4, longshot_detector=broken)

        assert isinstance(outcome, Err)
        assert not outcome.is_ok
        assert outcome.component == "longshot_detector"
        assert outcome.reason == "detector offline"
        assert any(r.levelno == logging.ERROR for r in caplog.records)

        empty = outcome.unwrap_or_empty()
        assert empty.race_number == 4
        assert empty.all_bets == []
        assert empty.total_max_cost == 0

    def test_diamond_detector_failure(self, standard_field):
        def broken(horses):
            raise KeyError("program_number")

        outcome = generate_recommendations(standard_field, diamond_detector=broken)
        assert isinstance(outcome, Err)
        assert outcome.component == "diamond_detector"


class TestPostProcessing:
    def test_dedup_first_wins(self, make_classified):
        a, b = make_classified(1, 200), make_classified(2, 190)
        first = create_generated_bet(BetType.EXACTA_BOX, "A", [a, b], 2, "tier1", 1, 80)
        second = create_generated_bet(BetType.EXACTA_BOX, "B", [b, a], 3, "tier2", 1, 70)
        other = create_generated_bet(BetType.QUINELLA, "C", [a, b], 2, "tier2", 1, 70)
        assert deduplicate_bets([first, second, other]) == [first, other]

    def test_sanitize(self, make_classified):
        good = create_generated_bet(BetType.WIN, "W", [make_classified(1, 200)], 2, "tier1", 1, 80)
        zero = create_generated_bet(BetType.WIN, "W", [make_classified(2, 200)], 0, "tier1", 1, 80)
        assert sanitize_bet_amounts([good, zero]) == [good]

    def test_recommendation_rules(self, make_classified):
        chalk = create_generated_bet(BetType.WIN, "W", [make_classified(1, 200)], 2, "tier1", 1, 90)
        weak = create_generated_bet(BetType.WIN, "W", [make_classified(2, 150, tier="tier3")],
                                    2, "tier3", 1, 40)
        value = create_generated_bet(BetType.WIN, "W", [make_classified(3, 150, tier="tier3",
                                                                        ev_per_dollar=0.5)],
                                     2, "tier3", 1, 40)
        balanced = BankrollSettings()
        assert is_bet_recommended(chalk, balanced)
        assert not is_bet_recommended(weak, balanced)
        assert is_bet_recommended(weak, BankrollSettings(betting_style="aggressive"))
        moderate = BankrollSettings(complexity_mode="moderate")
        assert is_bet_recommended(chalk, moderate)
        assert not is_bet_recommended(weak, moderate)
        assert is_bet_recommended(value, moderate)


class TestExports:
    def test_to_dict(self, standard_field):
        d = generator_result_to_dict(_generate(standard_field))
        assert d["race_number"] == 3
        assert d["summary"]["scratch_count"] == 1
        assert len(d["all_bets"]) == len({b["id"] for b in d["all_bets"]})
        assert [t["tier"] for t in d["tier_bets"]] == ["tier1", "tier2", "tier3"]

    def test_text(self, standard_field):
        text = generator_result_to_text(_generate(standard_field))
        assert text.startswith("Bet Slip - Race 3")
        assert "Race 3, " in text

    def test_text_empty(self):
        assert generator_result_to_text(empty_generator_result(4)) == "Race 4: no bets recommended"

    def test_frame_and_csv(self, standard_field):
        result = _generate(standard_field)
        frame = generator_result_to_frame(result)
        assert len(frame) == len(result.all_bets)
        assert list(frame.columns)[:4] == ["race", "tier", "category", "bet_type"]
        assert frame["total_cost"].sum() == pytest.approx(result.total_max_cost)
        csv = generator_result_to_csv(result)
        assert csv.splitlines()[0].startswith("race,tier,category,bet_type,horses")
        assert len(csv.strip().splitlines()) == len(result.all_bets) + 1
