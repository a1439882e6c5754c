"""Race recalculation on input changes (odds edits, scratches, track condition).

Every change re-derives the whole race from scratch: score, classify,
recommend.  The incremental path only re-scores the horses a change touched
(three or fewer) and rebuilds everything downstream from the merged field;
past that it defers to the full pass.  Both produce the same result for the
same final inputs.

Scoring itself is external: callers hand in a ``score_fn(horse, odds,
scratched) -> HorseScore`` that already knows the race conditions.

Usage:
    result = recalculate_race(horses, score_fn, scratched={4}, updated_odds={2: "7-2"})
    later = recalculate_affected_horses(result, {2}, horses, score_fn,
                                        scratched={4}, updated_odds={2: "3-1"})
    changes = detect_changes(create_snapshot(result), later)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Set

import pandas as pd

from bet_costs import round_half_up
from bet_recommendations import (
    TierBetRecommendations,
    generate_bet_recommendations,
    tier_bets_to_dict,
)
from config import DEFAULT_CONFIG, RecommendationConfig
from horse_data import HorseEntry, HorseScore, ScoredHorse
from tier_classifier import TierGroup, classify_horses, tier_groups_to_dict

logger = logging.getLogger(__name__)

ScoreFunction = Callable[[HorseEntry, str, bool], HorseScore]

# More affected horses than this and the incremental path recomputes everything
MAX_INCREMENTAL_HORSES = 3

# Highest base score the scoring engine can produce
RACE_CONFIDENCE_SCORE_SCALE = 319.0


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class RaceCalculationResult:
    scored_horses: List[ScoredHorse]            # scratched last, then score descending
    tier_groups: List[TierGroup]
    recommendations: List[TierBetRecommendations]
    win_probabilities: Dict[int, float]         # program number -> percent
    horses_analyzed: int
    active_horses: int
    confidence_level: int
    calculated_at: pd.Timestamp
    previous_scores: Dict[int, float] = field(default_factory=dict)

    def tier_of(self, program_number: int) -> Optional[str]:
        for group in self.tier_groups:
            if any(h.program_number == program_number for h in group.horses):
                return group.tier
        return None


@dataclass(frozen=True)
class HorseSnapshot:
    program_number: int
    score: float
    tier: Optional[str]
    odds: str


@dataclass
class RaceChanges:
    score_changes: Dict[int, tuple] = field(default_factory=dict)    # number -> (from, to)
    tier_changes: Dict[int, tuple] = field(default_factory=dict)
    odds_changes: Set[int] = field(default_factory=set)

    @property
    def has_changes(self) -> bool:
        return bool(self.score_changes or self.tier_changes or self.odds_changes)


# ---------------------------------------------------------------------------
# Race-level metrics
# ---------------------------------------------------------------------------

def calculate_win_probability(horse_score: float, all_scores: Sequence[float]) -> float:
    """Share of the field's total score, tempered for big fields. Percent, 1 dp."""
    if horse_score == 0:
        return 0.0
    total = sum(all_scores)
    if total == 0:
        return 0.0
    base = horse_score / total * 100
    field_size = sum(1 for s in all_scores if s > 0)
    adjustment = max(0.8, 1 - (field_size - 6) * 0.02)
    return min(100.0, round_half_up(base * adjustment * 10) / 10)


def calculate_confidence_level(scores: Sequence[float]) -> int:
    """How readable the race is, 0-100: field quality plus separation at the top."""
    active = sorted((s for s in scores if s > 0), reverse=True)
    if len(active) < 2:
        return 50
    top, second = active[0], active[1]
    average = sum(active) / len(active)

    differential = (top - second) / top * 30
    quality_bonus = min(20.0, top / RACE_CONFIDENCE_SCORE_SCALE * 25)
    base = 40 + average / RACE_CONFIDENCE_SCORE_SCALE * 30
    return min(100, round_half_up(base + differential + quality_bonus))


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------

def _current_odds(horse: HorseEntry, updated_odds: Dict[int, str]) -> str:
    return updated_odds.get(horse.program_number, horse.morning_line_odds)


def _score_horse(horse: HorseEntry, index: int, score_fn: ScoreFunction,
                 scratched: Set[int], updated_odds: Dict[int, str]) -> ScoredHorse:
    odds = _current_odds(horse, updated_odds)
    score = score_fn(horse, odds, horse.program_number in scratched)
    entry = horse if odds == horse.morning_line_odds else replace(horse, morning_line_odds=odds)
    return ScoredHorse(horse=entry, index=index, score=score)


def _sort_field(scored: Sequence[ScoredHorse]) -> List[ScoredHorse]:
    # ties fall back to input position so both recalculation paths agree
    return sorted(scored, key=lambda sh: (sh.score.is_scratched, -sh.score.total, sh.index))


def _derive(scored: List[ScoredHorse], config: RecommendationConfig,
            previous_scores: Dict[int, float]) -> RaceCalculationResult:
    ordered = _sort_field(scored)
    groups = classify_horses(ordered, config)
    active_scores = [sh.score.total for sh in ordered if not sh.score.is_scratched]

    return RaceCalculationResult(
        scored_horses=ordered,
        tier_groups=groups,
        recommendations=generate_bet_recommendations(groups),
        win_probabilities={
            sh.program_number: calculate_win_probability(sh.score.total, active_scores)
            for sh in ordered if not sh.score.is_scratched
        },
        horses_analyzed=len(ordered),
        active_horses=len(active_scores),
        confidence_level=calculate_confidence_level(active_scores),
        calculated_at=pd.Timestamp.now(),
        previous_scores=previous_scores,
    )


def recalculate_race(
    horses: Sequence[HorseEntry],
    score_fn: ScoreFunction,
    scratched: Optional[Set[int]] = None,
    updated_odds: Optional[Dict[int, str]] = None,
    previous_scores: Optional[Dict[int, float]] = None,
    config: RecommendationConfig = DEFAULT_CONFIG,
) -> RaceCalculationResult:
    """Score, classify and recommend the whole field.

    *scratched* and *updated_odds* are keyed by program number.
    """
    scratched = scratched or set()
    updated_odds = updated_odds or {}
    scored = [_score_horse(h, i, score_fn, scratched, updated_odds) for i, h in enumerate(horses)]
    return _derive(scored, config, dict(previous_scores or {}))


def recalculate_affected_horses(
    previous: RaceCalculationResult,
    affected: Set[int],
    horses: Sequence[HorseEntry],
    score_fn: ScoreFunction,
    scratched: Optional[Set[int]] = None,
    updated_odds: Optional[Dict[int, str]] = None,
    config: RecommendationConfig = DEFAULT_CONFIG,
) -> RaceCalculationResult:
    """Re-score only *affected* program numbers, then rebuild downstream."""
    scratched = scratched or set()
    updated_odds = updated_odds or {}
    if len(affected) > MAX_INCREMENTAL_HORSES:
        logger.debug(f"{len(affected)} horses affected, running full recalculation")
        return recalculate_race(horses, score_fn, scratched, updated_odds, config=config)

    positions = {h.program_number: i for i, h in enumerate(horses)}
    merged, previous_scores = [], {}
    for sh in previous.scored_horses:
        number = sh.program_number
        if number in affected and number in positions:
            i = positions[number]
            merged.append(_score_horse(horses[i], i, score_fn, scratched, updated_odds))
            previous_scores[number] = sh.score.total
        else:
            merged.append(sh)
    return _derive(merged, config, previous_scores)


def create_calculation_key(scratched: Set[int], updated_odds: Dict[int, str],
                           track_condition: str = "") -> str:
    """Memo key for one combination of race inputs."""
    scratch_part = ",".join(str(n) for n in sorted(scratched))
    odds_part = ",".join(f"{n}:{updated_odds[n]}" for n in sorted(updated_odds))
    return f"{track_condition}|{scratch_part}|{odds_part}"


# ---------------------------------------------------------------------------
# Change detection
# ---------------------------------------------------------------------------

def create_snapshot(result: RaceCalculationResult) -> List[HorseSnapshot]:
    return [
        HorseSnapshot(
            program_number=sh.program_number,
            score=sh.score.total,
            tier=result.tier_of(sh.program_number),
            odds=sh.horse.morning_line_odds,
        )
        for sh in result.scored_horses
    ]


def detect_changes(previous: Sequence[HorseSnapshot], current: RaceCalculationResult) -> RaceChanges:
    before = {s.program_number: s for s in previous}
    changes = RaceChanges()
    for sh in current.scored_horses:
        prev = before.get(sh.program_number)
        if prev is None:
            continue
        if prev.score != sh.score.total:
            changes.score_changes[sh.program_number] = (prev.score, sh.score.total)
        tier = current.tier_of(sh.program_number)
        if prev.tier != tier:
            changes.tier_changes[sh.program_number] = (prev.tier, tier)
        if prev.odds != sh.horse.morning_line_odds:
            changes.odds_changes.add(sh.program_number)
    return changes


def race_result_to_dict(result: RaceCalculationResult) -> dict:
    return {
        "calculated_at": result.calculated_at.isoformat(),
        "horses_analyzed": result.horses_analyzed,
        "active_horses": result.active_horses,
        "confidence_level": result.confidence_level,
        "win_probabilities": {str(k): v for k, v in result.win_probabilities.items()},
        "tier_groups": tier_groups_to_dict(result.tier_groups),
        "recommendations": [tier_bets_to_dict(r) for r in result.recommendations],
    }
