"""Runtime configuration for the recommendation pipeline.

Two read-only structs are threaded through every call instead of living in
module globals:

RecommendationConfig  feature toggles for the classifier and box selector
BankrollSettings      the bettor's budget and risk settings

Both can be seeded from the environment (``.env`` is honoured):

    BOX_SEPARATION_ENABLED=true
    BOX_SEPARATION_THRESHOLD=20
    ODDS_CONFIDENCE_ENABLED=true
    FIELD_RELATIVE_ENABLED=true
    FIELD_RELATIVE_STANDOUT_THRESHOLD=20

    BANKROLL_TOTAL=1000
    BANKROLL_RACE_BUDGET=50
    BANKROLL_MODE=simple            # simple / moderate / advanced
    BANKROLL_STYLE=balanced         # safe / balanced / aggressive
    BANKROLL_RISK=moderate          # conservative / moderate / aggressive
    BANKROLL_UNIT_TYPE=percentage   # percentage / fixed
    BANKROLL_UNIT_VALUE=3
"""
from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, replace
from typing import Optional

import dotenv

logger = logging.getLogger(__name__)


COMPLEXITY_MODES = ("simple", "moderate", "advanced")
BETTING_STYLES = ("safe", "balanced", "aggressive")
RISK_TOLERANCES = ("conservative", "moderate", "aggressive")

_STYLE_TO_RISK = {"safe": "conservative", "balanced": "moderate", "aggressive": "aggressive"}


@dataclass(frozen=True)
class RecommendationConfig:
    """Feature toggles for classification and exotic box construction."""
    use_box_separation: bool = True
    box_separation_threshold: float = 20.0      # one tier width
    use_odds_confidence: bool = True
    use_field_relative_scoring: bool = True
    field_relative_standout_threshold: float = 20.0

    def with_overrides(self, **overrides) -> "RecommendationConfig":
        return replace(self, **overrides)


@dataclass(frozen=True)
class BankrollSettings:
    """Bettor settings read by the sizing layer.  Never written back."""
    total_bankroll: float = 1000.0
    race_budget: float = 50.0
    complexity_mode: str = "simple"
    betting_style: str = "balanced"         # simple mode only
    risk_tolerance: str = "moderate"        # moderate / advanced modes
    bet_unit_type: str = "percentage"       # percentage of bankroll, or fixed $
    bet_unit_value: float = 3.0

    @property
    def unit_size(self) -> float:
        if self.bet_unit_type == "fixed":
            return self.bet_unit_value
        return self.bet_unit_value / 100.0 * self.total_bankroll

    @property
    def effective_risk(self) -> str:
        """Risk tolerance actually used for sizing; simple mode maps style to risk."""
        if self.complexity_mode == "simple":
            return _STYLE_TO_RISK.get(self.betting_style, "moderate")
        return self.risk_tolerance

    def with_overrides(self, **overrides) -> "BankrollSettings":
        return replace(self, **overrides)


DEFAULT_CONFIG = RecommendationConfig()
DEFAULT_BANKROLL = BankrollSettings()


# ---------------------------------------------------------------------------
# Environment loading
# ---------------------------------------------------------------------------

def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    logger.warning(f"Ignoring {name}={raw!r}: expected a boolean")
    return default


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number")
        return default
    if value < minimum:
        logger.warning(f"Ignoring {name}={raw!r}: below {minimum}")
        return default
    return value


def _env_choice(name: str, default: str, choices) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value not in choices:
        logger.warning(f"Ignoring {name}={raw!r}: expected one of {', '.join(choices)}")
        return default
    return value


def load_config(env_file: Optional[str] = None) -> RecommendationConfig:
    """RecommendationConfig from the environment, defaults where unset."""
    dotenv.load_dotenv(env_file)
    d = DEFAULT_CONFIG
    return RecommendationConfig(
        use_box_separation=_env_bool("BOX_SEPARATION_ENABLED", d.use_box_separation),
        box_separation_threshold=_env_float("BOX_SEPARATION_THRESHOLD", d.box_separation_threshold),
        use_odds_confidence=_env_bool("ODDS_CONFIDENCE_ENABLED", d.use_odds_confidence),
        use_field_relative_scoring=_env_bool("FIELD_RELATIVE_ENABLED", d.use_field_relative_scoring),
        field_relative_standout_threshold=_env_float(
            "FIELD_RELATIVE_STANDOUT_THRESHOLD", d.field_relative_standout_threshold),
    )


def load_bankroll_settings(env_file: Optional[str] = None) -> BankrollSettings:
    """BankrollSettings from the environment, defaults where unset."""
    dotenv.load_dotenv(env_file)
    d = DEFAULT_BANKROLL
    return BankrollSettings(
        total_bankroll=_env_float("BANKROLL_TOTAL", d.total_bankroll),
        race_budget=_env_float("BANKROLL_RACE_BUDGET", d.race_budget),
        complexity_mode=_env_choice("BANKROLL_MODE", d.complexity_mode, COMPLEXITY_MODES),
        betting_style=_env_choice("BANKROLL_STYLE", d.betting_style, BETTING_STYLES),
        risk_tolerance=_env_choice("BANKROLL_RISK", d.risk_tolerance, RISK_TOLERANCES),
        bet_unit_type=_env_choice("BANKROLL_UNIT_TYPE", d.bet_unit_type, ("percentage", "fixed")),
        bet_unit_value=_env_float("BANKROLL_UNIT_VALUE", d.bet_unit_value),
    )


def bankroll_from_dict(data: Optional[dict], base: BankrollSettings = DEFAULT_BANKROLL) -> BankrollSettings:
    """Build settings from a request payload over *base*, ignoring unknown keys."""
    if not data:
        return base
    known = asdict(base)
    values = {k: data[k] for k in known if k in data and data[k] is not None}
    settings = replace(base, **values)
    if settings.complexity_mode not in COMPLEXITY_MODES:
        raise ValueError(f"unknown complexity_mode {settings.complexity_mode!r}")
    if settings.betting_style not in BETTING_STYLES:
        raise ValueError(f"unknown betting_style {settings.betting_style!r}")
    if settings.risk_tolerance not in RISK_TOLERANCES:
        raise ValueError(f"unknown risk_tolerance {settings.risk_tolerance!r}")
    if settings.race_budget < 0 or settings.total_bankroll < 0:
        raise ValueError("bankroll amounts must be non-negative")
    return settings


def config_from_dict(data: Optional[dict], base: RecommendationConfig = DEFAULT_CONFIG) -> RecommendationConfig:
    if not data:
        return base
    known = asdict(base)
    return replace(base, **{k: data[k] for k in known if k in data})
