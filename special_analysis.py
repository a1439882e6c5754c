"""Special-situation analyses consumed by the bet generator.

Two upstream detectors feed the generator with per-horse verdicts:

* longshot detector -- 25-1 or longer horses with independent upset angles,
  classified by total angle points:

      nuclear   100+
      live       60-99
      lottery    40-59
      dead       < 40

* diamond detector -- moderate scores at a massive overlay.

The generator only reads the classification, confidence and rationale
text; how the evidence was gathered is the detector's business.  Both can
be handed over pre-computed or as callables taking the scored field.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from horse_data import ScoredHorse
from odds import parse_odds_to_decimal


class LongshotClassification(str, enum.Enum):
    NUCLEAR = "nuclear"
    LIVE = "live"
    LOTTERY = "lottery"
    DEAD = "dead"

    @property
    def is_live(self) -> bool:
        """Nuclear and live longshots get dedicated value-bomb bets."""
        return self in (LongshotClassification.NUCLEAR, LongshotClassification.LIVE)


LONGSHOT_POINT_THRESHOLDS = {"nuclear": 100, "live": 60, "lottery": 40}
LONGSHOT_MIN_DECIMAL_ODDS = 26.0        # 25-1
MAX_UPSET_PROBABILITY = 0.25


@dataclass(frozen=True)
class LongshotAngle:
    name: str
    points: float
    evidence: str = ""


@dataclass(frozen=True)
class LongshotAnalysis:
    program_number: int
    horse_name: str
    odds_display: str
    angle_points: float
    classification: LongshotClassification
    upset_probability: float
    angles: List[LongshotAngle] = field(default_factory=list)

    @property
    def angle_names(self) -> str:
        return " + ".join(a.name for a in self.angles)


@dataclass(frozen=True)
class DiamondAnalysis:
    program_number: int
    horse_name: str
    odds_display: str
    confidence: int
    story: str
    validated: bool = True


LongshotDetector = Callable[[Sequence[ScoredHorse]], List[LongshotAnalysis]]
DiamondDetector = Callable[[Sequence[ScoredHorse]], List[DiamondAnalysis]]


def classification_from_points(points: float) -> LongshotClassification:
    if points >= LONGSHOT_POINT_THRESHOLDS["nuclear"]:
        return LongshotClassification.NUCLEAR
    if points >= LONGSHOT_POINT_THRESHOLDS["live"]:
        return LongshotClassification.LIVE
    if points >= LONGSHOT_POINT_THRESHOLDS["lottery"]:
        return LongshotClassification.LOTTERY
    return LongshotClassification.DEAD


def calculate_upset_probability(points: float) -> float:
    return min(MAX_UPSET_PROBABILITY, max(0.0, points) / 100 * 0.15)


def is_longshot_odds(odds_str: str) -> bool:
    return parse_odds_to_decimal(odds_str) >= LONGSHOT_MIN_DECIMAL_ODDS


def build_longshot_analysis(program_number: int, horse_name: str, odds_display: str,
                            angles: Sequence[LongshotAngle]) -> LongshotAnalysis:
    """Longshot verdict from detected angles; points are the angle sum."""
    points = sum(a.points for a in angles)
    return LongshotAnalysis(
        program_number=program_number,
        horse_name=horse_name,
        odds_display=odds_display,
        angle_points=points,
        classification=classification_from_points(points),
        upset_probability=calculate_upset_probability(points),
        angles=list(angles),
    )


def validated_diamonds(diamonds: Sequence[DiamondAnalysis]) -> List[DiamondAnalysis]:
    return [d for d in diamonds if d.validated]


def live_longshots(longshots: Sequence[LongshotAnalysis]) -> List[LongshotAnalysis]:
    return [ls for ls in longshots if ls.classification.is_live]


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

def longshot_from_dict(data: dict) -> LongshotAnalysis:
    """Accepts either explicit angles or a bare angle_points total."""
    angles = [
        LongshotAngle(name=a.get("name", "Angle"), points=float(a.get("points", 0)),
                      evidence=a.get("evidence", ""))
        for a in data.get("angles") or []
    ]
    number = int(data["program_number"])
    name = data.get("horse_name", f"#{number}")
    odds_display = data.get("odds_display", "")
    if angles:
        return build_longshot_analysis(number, name, odds_display, angles)
    points = float(data.get("angle_points", 0))
    return LongshotAnalysis(
        program_number=number,
        horse_name=name,
        odds_display=odds_display,
        angle_points=points,
        classification=classification_from_points(points),
        upset_probability=calculate_upset_probability(points),
    )


def diamond_from_dict(data: dict) -> DiamondAnalysis:
    number = int(data["program_number"])
    return DiamondAnalysis(
        program_number=number,
        horse_name=data.get("horse_name", f"#{number}"),
        odds_display=data.get("odds_display", ""),
        confidence=int(data.get("confidence", 50)),
        story=data.get("story", ""),
        validated=bool(data.get("validated", True)),
    )
