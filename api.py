from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
import uvicorn
import os
from dataclasses import dataclass
from typing import Dict, Any, List
import logging

from bet_generator import (
    Err,
    generate_recommendations,
    generator_result_to_csv,
    generator_result_to_dict,
    generator_result_to_text,
)
from bet_sizing import budget_validation_to_dict, get_remaining_budget, get_tier_budgets, validate_budget
from box_selection import box_result_to_dict, create_exotic_configs, select_box_horses
from config import bankroll_from_dict, config_from_dict, load_bankroll_settings, load_config
from horse_data import scored_horses_from_dicts
from special_analysis import diamond_from_dict, longshot_from_dict
from tier_classifier import classify_horses, tier_groups_to_dict
from window_instructions import generate_window_instruction

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Race Bet Recommendation API", version="1.0.0")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify actual origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Environment (.env) supplies the defaults; request payloads override per call
base_config = load_config()
base_bankroll = load_bankroll_settings()
logger.info(f"Loaded config: box separation {base_config.use_box_separation} "
            f"({base_config.box_separation_threshold} pts), race budget ${base_bankroll.race_budget:.0f}")

BAD_PAYLOAD_ERRORS = (KeyError, ValueError, TypeError, AttributeError)


@dataclass(frozen=True)
class _CostLine:
    total_cost: float


def _parse_live_odds(payload: Dict[str, Any]) -> Dict[int, str]:
    return {int(k): str(v) for k, v in (payload.get("live_odds") or {}).items()}


def _run_generator(payload: Dict[str, Any]):
    """Parse a recommendations payload and run the generator."""
    try:
        horses = scored_horses_from_dicts(payload["horses"])
        race_number = int(payload.get("race_number", 1))
        bankroll = bankroll_from_dict(payload.get("bankroll"), base_bankroll)
        config = config_from_dict(payload.get("config"), base_config)
        longshots = [longshot_from_dict(d) for d in payload.get("longshots") or []]
        diamonds = [diamond_from_dict(d) for d in payload.get("diamonds") or []]
        live_odds = _parse_live_odds(payload)
    except BAD_PAYLOAD_ERRORS as e:
        raise HTTPException(status_code=400, detail=f"Invalid recommendation payload: {e}")

    outcome = generate_recommendations(
        horses, race_number=race_number, bankroll=bankroll, config=config,
        longshots=longshots, diamonds=diamonds, live_odds=live_odds,
    )
    if isinstance(outcome, Err):
        logger.warning(f"Race {race_number}: returning empty slate after {outcome.component} failure")
    return outcome


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Race Bet Recommendation API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "bet-recommendations"}


@app.post("/classify")
async def classify(payload: Dict[str, Any]):
    """
    Classify a scored field into betting tiers
    """
    try:
        horses = scored_horses_from_dicts(payload["horses"])
        config = config_from_dict(payload.get("config"), base_config)
        live_odds = _parse_live_odds(payload)
    except BAD_PAYLOAD_ERRORS as e:
        raise HTTPException(status_code=400, detail=f"Invalid classify payload: {e}")

    groups = classify_horses(horses, config, live_odds)
    return {
        "tier_groups": tier_groups_to_dict(groups),
        "horses_analyzed": len(horses),
        "scratched": [sh.program_number for sh in horses if sh.score.is_scratched],
    }


@app.post("/recommendations")
async def recommendations(payload: Dict[str, Any]):
    """
    Generate the full bet slate for one race
    """
    outcome = _run_generator(payload)
    result = generator_result_to_dict(outcome.unwrap_or_empty())
    if isinstance(outcome, Err):
        result["error"] = {"reason": outcome.reason, "component": outcome.component}
    return result


@app.post("/recommendations/text", response_class=PlainTextResponse)
async def recommendations_text(payload: Dict[str, Any]):
    """
    Bet slip text, ready to read at the window
    """
    outcome = _run_generator(payload)
    recommended_only = bool(payload.get("recommended_only", False))
    return generator_result_to_text(outcome.unwrap_or_empty(), recommended_only=recommended_only)


@app.post("/recommendations/csv", response_class=PlainTextResponse)
async def recommendations_csv(payload: Dict[str, Any]):
    """
    Bet slate as CSV
    """
    outcome = _run_generator(payload)
    return generator_result_to_csv(outcome.unwrap_or_empty())


@app.post("/box")
async def box(payload: Dict[str, Any]):
    """
    Pick the live horses for an exotic box from the classified field
    """
    try:
        horses = scored_horses_from_dicts(payload["horses"])
        config = config_from_dict(payload.get("config"), base_config)
        box_type = payload.get("box_type", "exacta")
        threshold = payload.get("threshold")
        threshold = float(threshold) if threshold is not None else None
        box_config = create_exotic_configs(threshold, config)[box_type]
    except BAD_PAYLOAD_ERRORS as e:
        raise HTTPException(status_code=400, detail=f"Invalid box payload: {e}")

    classified = [h for g in classify_horses(horses, config) for h in g.horses]
    candidates = sorted(classified, key=lambda h: -h.adjusted_score)
    result = select_box_horses(candidates, box_config, config)
    return {"box_type": box_type, **box_result_to_dict(result)}


@app.post("/budget/validate")
async def budget_validate(payload: Dict[str, Any]):
    """
    Check selected bets against the race budget
    """
    try:
        bankroll = bankroll_from_dict(payload.get("bankroll"), base_bankroll)
        bets: List[_CostLine] = [_CostLine(float(b["total_cost"])) for b in payload.get("bets") or []]
    except BAD_PAYLOAD_ERRORS as e:
        raise HTTPException(status_code=400, detail=f"Invalid budget payload: {e}")

    validation = validate_budget(bets, bankroll)
    return {
        **budget_validation_to_dict(validation),
        "race_budget": bankroll.race_budget,
        "remaining_budget": round(get_remaining_budget(bets, bankroll), 2),
        "tier_budgets": {t: round(v, 2) for t, v in get_tier_budgets(bankroll).items()},
    }


@app.post("/window-instruction")
async def window_instruction(payload: Dict[str, Any]):
    """
    Render one bet as a betting-window instruction
    """
    try:
        text = generate_window_instruction(
            payload["bet_type"],
            [int(n) for n in payload["numbers"]],
            float(payload["amount"]),
            payload.get("race_number"),
            style=payload.get("style", "full"),
        )
    except BAD_PAYLOAD_ERRORS as e:
        raise HTTPException(status_code=400, detail=f"Invalid instruction payload: {e}")
    return {"instruction": text}


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("API_HOST", "0.0.0.0"), port=int(os.getenv("API_PORT", "8000")))
