"""Tests for configuration structs and environment loading."""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from config import (
    DEFAULT_BANKROLL,
    DEFAULT_CONFIG,
    BankrollSettings,
    bankroll_from_dict,
    config_from_dict,
    load_bankroll_settings,
    load_config,
)

_ENV_KEYS = [
    "BOX_SEPARATION_ENABLED", "BOX_SEPARATION_THRESHOLD", "ODDS_CONFIDENCE_ENABLED",
    "FIELD_RELATIVE_ENABLED", "FIELD_RELATIVE_STANDOUT_THRESHOLD",
    "BANKROLL_TOTAL", "BANKROLL_RACE_BUDGET", "BANKROLL_MODE", "BANKROLL_STYLE",
    "BANKROLL_RISK", "BANKROLL_UNIT_TYPE", "BANKROLL_UNIT_VALUE",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return env_file


class TestRecommendationConfig:
    def test_defaults(self):
        assert DEFAULT_CONFIG.use_box_separation is True
        assert DEFAULT_CONFIG.box_separation_threshold == 20.0
        assert DEFAULT_CONFIG.use_odds_confidence is True
        assert DEFAULT_CONFIG.use_field_relative_scoring is True

    def test_with_overrides_returns_copy(self):
        cfg = DEFAULT_CONFIG.with_overrides(use_box_separation=False)
        assert cfg.use_box_separation is False
        assert DEFAULT_CONFIG.use_box_separation is True

    def test_load_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("BOX_SEPARATION_ENABLED", "false")
        monkeypatch.setenv("BOX_SEPARATION_THRESHOLD", "15")
        cfg = load_config(str(clean_env))
        assert cfg.use_box_separation is False
        assert cfg.box_separation_threshold == 15.0

    def test_load_from_env_file(self, clean_env):
        clean_env.write_text("FIELD_RELATIVE_ENABLED=no\n")
        try:
            assert load_config(str(clean_env)).use_field_relative_scoring is False
        finally:
            os.environ.pop("FIELD_RELATIVE_ENABLED", None)

    def test_malformed_value_falls_back(self, clean_env, monkeypatch, caplog):
        monkeypatch.setenv("BOX_SEPARATION_THRESHOLD", "abc")
        with caplog.at_level(logging.WARNING, logger="config"):
            cfg = load_config(str(clean_env))
        assert cfg.box_separation_threshold == 20.0
        assert "BOX_SEPARATION_THRESHOLD" in caplog.text

    def test_from_dict(self):
        cfg = config_from_dict({"use_box_separation": False, "unknown": 1})
        assert cfg.use_box_separation is False
        assert config_from_dict(None) is DEFAULT_CONFIG


class TestBankrollSettings:
    def test_percentage_unit(self):
        assert BankrollSettings(total_bankroll=1000, bet_unit_value=3).unit_size == 30

    def test_fixed_unit(self):
        assert BankrollSettings(bet_unit_type="fixed", bet_unit_value=10).unit_size == 10

    def test_simple_mode_maps_style_to_risk(self):
        assert BankrollSettings(betting_style="safe").effective_risk == "conservative"
        assert BankrollSettings(betting_style="aggressive").effective_risk == "aggressive"

    def test_advanced_mode_uses_risk_tolerance(self):
        settings = BankrollSettings(complexity_mode="advanced", risk_tolerance="conservative",
                                    betting_style="aggressive")
        assert settings.effective_risk == "conservative"

    def test_load_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("BANKROLL_RACE_BUDGET", "100")
        monkeypatch.setenv("BANKROLL_MODE", "advanced")
        monkeypatch.setenv("BANKROLL_RISK", "reckless")
        settings = load_bankroll_settings(str(clean_env))
        assert settings.race_budget == 100.0
        assert settings.complexity_mode == "advanced"
        assert settings.risk_tolerance == "moderate"

    def test_negative_env_budget_ignored(self, clean_env, monkeypatch):
        monkeypatch.setenv("BANKROLL_RACE_BUDGET", "-5")
        assert load_bankroll_settings(str(clean_env)).race_budget == DEFAULT_BANKROLL.race_budget

    def test_from_dict(self):
        settings = bankroll_from_dict({"race_budget": 100, "betting_style": "safe"})
        assert settings.race_budget == 100
        assert settings.betting_style == "safe"
        assert settings.total_bankroll == DEFAULT_BANKROLL.total_bankroll

    def test_from_dict_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            bankroll_from_dict({"complexity_mode": "expert"})

    def test_from_dict_rejects_negative_budget(self):
        with pytest.raises(ValueError):
            bankroll_from_dict({"race_budget": -1})
