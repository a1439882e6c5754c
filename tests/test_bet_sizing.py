"""Tests for single-bet sizing and bankroll scaling of a slate."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from bet_costs import BetType
from bet_generator import create_generated_bet
from bet_sizing import (
    TIERS,
    budget_validation_to_dict,
    calculate_bet_amount,
    get_bet_sizing_config,
    get_confidence_multiplier,
    get_remaining_budget,
    get_tier_allocation,
    get_tier_budgets,
    optimize_bet_distribution,
    scale_bets_by_bankroll,
    validate_budget,
)
from config import BankrollSettings


def _tier_totals(bets):
    totals = {t: 0.0 for t in TIERS}
    for b in bets:
        totals[b.tier] += b.total_cost
    return totals


@pytest.fixture
def horses(make_classified):
    return [make_classified(1, 200), make_classified(2, 185), make_classified(3, 150, tier="tier3", odds="30-1")]


@pytest.fixture
def over_budget_slate(horses):
    return [
        create_generated_bet(BetType.WIN, "Win", horses[:1], 15, "tier1", 1, 90),
        create_generated_bet(BetType.EXACTA_BOX, "Box", horses[:2], 5, "tier1", 1, 85),
        create_generated_bet(BetType.WIN, "Bomb", horses[2:], 10, "tier3", 1, 70),
    ]


class TestAllocation:
    def test_simple_mode_by_style(self):
        assert get_tier_allocation(BankrollSettings(betting_style="safe")) == \
            {"tier1": 70, "tier2": 30, "tier3": 0}
        assert get_tier_allocation(BankrollSettings(betting_style="aggressive")) == \
            {"tier1": 20, "tier2": 30, "tier3": 50}

    def test_moderate_mode_by_risk(self):
        settings = BankrollSettings(complexity_mode="moderate", risk_tolerance="conservative")
        assert get_tier_allocation(settings) == {"tier1": 60, "tier2": 30, "tier3": 10}

    def test_sizing_config_maps_style_to_risk(self):
        config = get_bet_sizing_config(BankrollSettings(betting_style="aggressive"))
        assert config.risk_tolerance == "aggressive"
        assert config.unit_size == 30
        fixed = get_bet_sizing_config(BankrollSettings(bet_unit_type="fixed", bet_unit_value=4))
        assert fixed.unit_size == 4
        assert fixed.risk_tolerance == "moderate"

    def test_budgets(self, default_bankroll):
        assert get_tier_budgets(default_bankroll) == {"tier1": 20.0, "tier2": 17.5, "tier3": 12.5}


class TestCalculateBetAmount:
    @pytest.mark.parametrize("confidence,expected", [
        (85, 2.0), (84.9, 1.5), (75, 1.5), (65, 1.0), (55, 0.75), (54, 0.5),
    ])
    def test_confidence_multiplier(self, confidence, expected):
        assert get_confidence_multiplier(confidence) == expected

    def test_capped_by_tier_share(self, default_bankroll):
        # 30 unit x 1.5 x 1.0 x 2.0 = 90, capped at 20 / 3
        assert calculate_bet_amount(90, "tier1", default_bankroll) == 7

    def test_uncapped(self):
        settings = BankrollSettings(race_budget=1000, bet_unit_type="fixed", bet_unit_value=10)
        assert calculate_bet_amount(70, "tier2", settings) == 10

    def test_clamped_to_minimum(self):
        safe = BankrollSettings(betting_style="safe")
        assert calculate_bet_amount(90, "tier3", safe) == 1

    def test_clamped_to_maximum(self):
        rich = BankrollSettings(total_bankroll=100000, race_budget=100000, betting_style="aggressive")
        assert calculate_bet_amount(95, "tier1", rich) == 100

    def test_whole_dollars(self, default_bankroll):
        for confidence in range(40, 101, 7):
            for tier in TIERS:
                amount = calculate_bet_amount(confidence, tier, default_bankroll)
                assert amount == int(amount)
                assert amount >= 1

    def test_failure_falls_back(self, caplog):
        broken = BankrollSettings(complexity_mode="moderate", risk_tolerance="reckless")
        assert calculate_bet_amount(80, "tier1", broken) == 5
        assert "Falling back" in caplog.text


class TestScaleBetsByBankroll:
    def test_fits_each_tier(self, over_budget_slate, default_bankroll):
        scaled = scale_bets_by_bankroll(over_budget_slate, default_bankroll)
        budgets = get_tier_budgets(default_bankroll)
        for tier, total in _tier_totals(scaled).items():
            assert total <= budgets[tier] + 1e-9

    def test_scales_proportionally(self, over_budget_slate, default_bankroll):
        win, box = scale_bets_by_bankroll(over_budget_slate, default_bankroll)[:2]
        # tier1 holds 25 against a 20 budget
        assert win.amount == 12.0
        assert box.amount == 4.0
        assert box.total_cost == 8.0
        assert win.potential_return[1] <= over_budget_slate[0].potential_return[1]

    def test_rewrites_window_instruction(self, over_budget_slate, default_bankroll):
        win, box = scale_bets_by_bankroll(over_budget_slate, default_bankroll)[:2]
        assert win.window_instruction == '"Race 1, $12 to WIN on number 1"'
        assert box.window_instruction == '"Race 1, $4 EXACTA BOX 1-2"'

    def test_never_raises_stakes(self, over_budget_slate, default_bankroll):
        scaled = scale_bets_by_bankroll(over_budget_slate, default_bankroll)
        before = {b.id: b.amount for b in over_budget_slate}
        assert all(b.amount <= before[b.id] for b in scaled)

    def test_compliant_slate_unchanged(self, horses, default_bankroll):
        slate = [create_generated_bet(BetType.WIN, "Win", horses[:1], 5, "tier1", 1, 90)]
        assert scale_bets_by_bankroll(slate, default_bankroll) == slate

    def test_idempotent(self, over_budget_slate, default_bankroll):
        once = scale_bets_by_bankroll(over_budget_slate, default_bankroll)
        assert scale_bets_by_bankroll(once, default_bankroll) == once

    def test_zero_budget_tier_dropped(self, over_budget_slate):
        safe = BankrollSettings(betting_style="safe")
        scaled = scale_bets_by_bankroll(over_budget_slate, safe)
        assert all(b.tier != "tier3" for b in scaled)

    def test_drops_bets_below_minimum(self, horses):
        tiny = BankrollSettings(race_budget=2)
        slate = [create_generated_bet(BetType.WIN, "Win", horses[:1], 10, "tier1", 1, 90)]
        # tier1 budget 0.80 cannot hold a $1 minimum
        assert scale_bets_by_bankroll(slate, tiny) == []

    def test_ticket_floor_overshoot_trimmed(self, horses, default_bankroll):
        win = create_generated_bet(BetType.WIN, "Bomb", horses[2:], 12, "tier3", 1, 70)
        wheel = create_generated_bet(BetType.TRIFECTA_WHEEL, "Wheel", horses[2:], 2, "tier3", 1, 50)
        assert wheel.total_cost == 1
        # 13 against 12.5: the wheel shrinks to 1.92 but still costs the $1 floor
        scaled = scale_bets_by_bankroll([win, wheel], default_bankroll)
        assert [b.id for b in scaled] == [win.id]
        assert scaled[0].amount == 11.53
        assert scaled[0].total_cost <= 12.5

    def test_superfecta_keeps_dime_minimum(self, horses, make_classified):
        field = horses + [make_classified(4, 140, tier="tier3")]
        slate = [create_generated_bet(BetType.SUPERFECTA, "Super", field, 1, "tier3", 1, 50)]
        scaled = scale_bets_by_bankroll(slate, BankrollSettings())
        assert scaled[0].amount >= 0.1
        assert scaled[0].total_cost <= 12.5


class TestBudgetChecks:
    def test_valid(self, horses, default_bankroll):
        bets = [create_generated_bet(BetType.WIN, "Win", horses[:1], 20, "tier1", 1, 90)]
        result = validate_budget(bets, default_bankroll)
        assert result.is_valid
        assert result.overage == 0

    def test_overage_report(self, horses, default_bankroll):
        bets = [create_generated_bet(BetType.WIN, "Win", horses[:1], 30, "tier1", 1, 90),
                create_generated_bet(BetType.WIN, "Win", horses[1:2], 25, "tier1", 1, 90)]
        result = validate_budget(bets, default_bankroll)
        assert not result.is_valid
        assert result.overage == 5
        assert result.message == "Bets exceed budget by $5.00. Consider reducing selections."
        assert budget_validation_to_dict(result)["overage"] == 5

    def test_remaining(self, horses, default_bankroll):
        bets = [create_generated_bet(BetType.WIN, "Win", horses[:1], 20, "tier1", 1, 90)]
        assert get_remaining_budget(bets, default_bankroll) == 30
        assert get_remaining_budget(bets * 3, default_bankroll) == 0

    def test_optimize_prefers_nuclear(self, horses, default_bankroll):
        regular = create_generated_bet(BetType.WIN, "Win", horses[2:], 10, "tier3", 1, 70)
        nuclear = create_generated_bet(BetType.VALUE_BOMB, "Nuke", horses[2:], 5, "tier3", 1, 15,
                                       special_category="nuclear")
        kept = optimize_bet_distribution([regular, nuclear], default_bankroll)
        assert kept == [nuclear]
