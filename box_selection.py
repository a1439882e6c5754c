"""Box selection: which horses are live enough for an exotic box.

Candidates arrive sorted by adjusted score, leader first.  A horse makes
the box when it sits within ``max_score_separation`` points of the leader
and the box still has room.  Horses that miss on score get a reason
string; horses that only miss because the box is full do not, since they
were never judged weak.

The default separation is one tier width (20 pts): anything further back
is presumptively a tier below the leader.

With separation turned off (RecommendationConfig.use_box_separation) the
selector just takes the top ``max_horses``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from bet_costs import round_half_up
from config import DEFAULT_CONFIG, RecommendationConfig
from tier_classifier import ClassifiedHorse


@dataclass(frozen=True)
class BoxSelectionConfig:
    max_score_separation: float = DEFAULT_CONFIG.box_separation_threshold
    max_horses: int = 4
    min_horses: int = 2


@dataclass
class BoxSelectionResult:
    selected_horses: List[ClassifiedHorse] = field(default_factory=list)
    excluded_horses: List[ClassifiedHorse] = field(default_factory=list)
    exclusion_reasons: Dict[int, str] = field(default_factory=dict)   # program number -> reason
    is_valid_box: bool = False
    summary: str = ""

    @property
    def recommended_box_size(self) -> int:
        return len(self.selected_horses)


@dataclass(frozen=True)
class HorseExclusion:
    program_number: int
    horse_name: str
    score: float
    leader_score: float
    points_behind: float
    threshold: float
    reason: str


EXACTA_BOX_CONFIG = BoxSelectionConfig(max_horses=4, min_horses=2)
TRIFECTA_BOX_CONFIG = BoxSelectionConfig(max_horses=4, min_horses=3)
SUPERFECTA_BOX_CONFIG = BoxSelectionConfig(max_horses=5, min_horses=4)


def _fmt(value: float) -> str:
    return f"{value:g}"


def format_exclusion_reason(horse_name: str, horse_score: float, leader_score: float,
                            points_behind: float, threshold: float) -> str:
    # "Speedster (155 pts) excluded: 40 points behind leader (195). Threshold: 20."
    return (
        f"{horse_name} ({round_half_up(horse_score)} pts) excluded: "
        f"{round_half_up(points_behind)} points behind leader ({round_half_up(leader_score)}). "
        f"Threshold: {_fmt(threshold)}."
    )


def _summary(selected: int, excluded: int, threshold: float, is_valid: bool, min_required: int) -> str:
    t = _fmt(threshold)
    if not is_valid:
        return f"Only {selected} horse(s) within {t}-point threshold. Need {min_required} for valid box."
    if excluded == 0:
        return f"{selected}-horse box"
    if excluded == 1:
        return f"{selected}-horse box (1 horse excluded: {t}+ pts behind)"
    return f"{selected}-horse box ({excluded} horses excluded: {t}+ pts behind)"


def select_box_horses(
    candidates: Sequence[ClassifiedHorse],
    box_config: Optional[BoxSelectionConfig] = None,
    config: RecommendationConfig = DEFAULT_CONFIG,
) -> BoxSelectionResult:
    """Pick the box from *candidates* (sorted by adjusted score, leader first).

    Without a *box_config* this is an exacta-sized box at
    ``config.box_separation_threshold``.
    """
    if box_config is None:
        box_config = create_box_config(config=config)
    candidates = list(candidates)
    if not candidates:
        return BoxSelectionResult(summary="No horses available for box")

    if len(candidates) < box_config.min_horses:
        return BoxSelectionResult(
            selected_horses=candidates,
            is_valid_box=False,
            summary=f"Only {len(candidates)} horse(s) available, need {box_config.min_horses} for box",
        )

    if not config.use_box_separation:
        selected = candidates[:box_config.max_horses]
        return BoxSelectionResult(
            selected_horses=selected,
            is_valid_box=len(selected) >= box_config.min_horses,
            summary=f"{len(selected)}-horse box",
        )

    threshold = box_config.max_score_separation
    leader_score = candidates[0].adjusted_score
    minimum = leader_score - threshold

    result = BoxSelectionResult()
    for horse in candidates:
        if horse.adjusted_score >= minimum:
            # capacity cut, not a weakness: no reason recorded
            if len(result.selected_horses) < box_config.max_horses:
                result.selected_horses.append(horse)
            continue
        result.excluded_horses.append(horse)
        result.exclusion_reasons[horse.program_number] = format_exclusion_reason(
            horse.name, horse.adjusted_score, leader_score,
            leader_score - horse.adjusted_score, threshold,
        )

    result.is_valid_box = len(result.selected_horses) >= box_config.min_horses
    result.summary = _summary(len(result.selected_horses), len(result.excluded_horses),
                              threshold, result.is_valid_box, box_config.min_horses)
    return result


def get_exclusion_details(result: BoxSelectionResult, leader: Optional[ClassifiedHorse],
                          threshold: float = DEFAULT_CONFIG.box_separation_threshold) -> List[HorseExclusion]:
    if leader is None:
        return []
    return [
        HorseExclusion(
            program_number=h.program_number,
            horse_name=h.name,
            score=h.adjusted_score,
            leader_score=leader.adjusted_score,
            points_behind=leader.adjusted_score - h.adjusted_score,
            threshold=threshold,
            reason=result.exclusion_reasons.get(h.program_number, "Unknown reason"),
        )
        for h in result.excluded_horses
    ]


def would_be_included(horse: ClassifiedHorse, leader_score: float,
                      threshold: float = DEFAULT_CONFIG.box_separation_threshold) -> bool:
    return horse.adjusted_score >= leader_score - threshold


def points_needed_for_inclusion(horse: ClassifiedHorse, leader_score: float,
                                threshold: float = DEFAULT_CONFIG.box_separation_threshold) -> int:
    """0 when already inside the threshold."""
    deficit = (leader_score - threshold) - horse.adjusted_score
    return max(0, math.ceil(deficit))


def create_box_config(max_score_separation: Optional[float] = None, max_horses: int = 4,
                      min_horses: int = 2,
                      config: RecommendationConfig = DEFAULT_CONFIG) -> BoxSelectionConfig:
    if max_score_separation is None:
        max_score_separation = config.box_separation_threshold
    return BoxSelectionConfig(max_score_separation, max_horses, min_horses)


def create_exotic_configs(threshold: Optional[float] = None,
                          config: RecommendationConfig = DEFAULT_CONFIG) -> Dict[str, BoxSelectionConfig]:
    """Exacta / trifecta / superfecta configs sharing one separation threshold."""
    separation = config.box_separation_threshold if threshold is None else threshold
    return {
        "exacta": BoxSelectionConfig(separation, 4, 2),
        "trifecta": BoxSelectionConfig(separation, 4, 3),
        "superfecta": BoxSelectionConfig(separation, 5, 4),
    }


def box_result_to_dict(result: BoxSelectionResult) -> dict:
    return {
        "selected": [h.program_number for h in result.selected_horses],
        "excluded": [h.program_number for h in result.excluded_horses],
        "exclusion_reasons": {str(k): v for k, v in result.exclusion_reasons.items()},
        "recommended_box_size": result.recommended_box_size,
        "is_valid_box": result.is_valid_box,
        "summary": result.summary,
    }
