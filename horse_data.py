"""Horse identity and score records consumed by the recommendation pipeline.

The scoring engine that fills these in lives upstream; everything downstream
(classification, bet generation, sizing) treats a HorseScore as read-only
input for one recalculation cycle.

Program number is the stable identity of a horse across every stage.  The
``index`` carried on ScoredHorse is only the position in the original field
list and is never used to look a horse up.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional


# Confidence levels reported by the scoring engine
CONFIDENCE_LEVELS = ("high", "medium", "low")


@dataclass(frozen=True)
class HorseEntry:
    program_number: int
    horse_name: str
    morning_line_odds: str = "10-1"
    post_position: int = 0
    running_style: str = ""          # E / EP / P / S


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-category points from the scoring engine.

    Only the fields the explanation layer reads are modelled here.
    """
    pace: float = 0.0
    pace_style: str = ""             # e.g. "Early Speed", "Closer"
    pace_fit: str = ""               # e.g. "hot", "honest", "slow"
    pace_reasoning: str = ""
    speed_class: float = 0.0
    best_figure: Optional[int] = None
    class_movement: str = "level"    # dropping / rising / level
    class_movement_score: float = 0.0
    connections: float = 0.0
    connections_reasoning: str = ""
    form: float = 0.0
    equipment: float = 0.0
    equipment_changes: bool = False
    equipment_reasoning: str = ""
    post_position: float = 0.0
    golden_post: bool = False


@dataclass(frozen=True)
class HorseScore:
    total: float
    base_score: float
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    is_scratched: bool = False
    confidence_level: str = "medium"
    data_quality: float = 100.0

    def __post_init__(self):
        if self.total < 0 or self.base_score < 0:
            raise ValueError(
                f"score totals must be non-negative (total={self.total}, base={self.base_score})"
            )


@dataclass(frozen=True)
class ScoredHorse:
    """One (horse, index, score) triple from the scoring stage."""
    horse: HorseEntry
    index: int
    score: HorseScore

    @property
    def program_number(self) -> int:
        return self.horse.program_number

    def with_odds(self, odds: str) -> "ScoredHorse":
        return replace(self, horse=replace(self.horse, morning_line_odds=odds))


def active_horses(field_horses: List[ScoredHorse]) -> List[ScoredHorse]:
    """Drop scratched entries, preserving order."""
    return [sh for sh in field_horses if not sh.score.is_scratched]


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

def _breakdown_from_dict(data: Optional[dict]) -> ScoreBreakdown:
    if not data:
        return ScoreBreakdown()
    known = ScoreBreakdown.__dataclass_fields__
    return ScoreBreakdown(**{k: v for k, v in data.items() if k in known})


def scored_horse_from_dict(data: dict, index: int) -> ScoredHorse:
    """One field entry from a JSON payload.

    Expects ``program_number``, ``horse_name`` and a ``score`` object with at
    least ``total``; ``base_score`` defaults to the total.
    """
    score = data["score"]
    total = float(score["total"])
    confidence_level = str(score.get("confidence_level", "medium"))
    if confidence_level not in CONFIDENCE_LEVELS:
        raise ValueError(f"unknown confidence_level {confidence_level!r}")
    return ScoredHorse(
        horse=HorseEntry(
            program_number=int(data["program_number"]),
            horse_name=str(data.get("horse_name") or f"#{data['program_number']}"),
            morning_line_odds=str(data.get("morning_line_odds") or "10-1"),
            post_position=int(data.get("post_position") or 0),
            running_style=str(data.get("running_style") or ""),
        ),
        index=index,
        score=HorseScore(
            total=total,
            base_score=float(score.get("base_score", total)),
            breakdown=_breakdown_from_dict(score.get("breakdown")),
            is_scratched=bool(score.get("is_scratched", data.get("is_scratched", False))),
            confidence_level=confidence_level,
            data_quality=float(score.get("data_quality", 100.0)),
        ),
    )


def scored_horses_from_dicts(rows: List[dict]) -> List[ScoredHorse]:
    field_horses = [scored_horse_from_dict(row, i) for i, row in enumerate(rows)]
    numbers = [sh.program_number for sh in field_horses]
    if len(set(numbers)) != len(numbers):
        raise ValueError("program numbers must be unique within a race")
    return field_horses
