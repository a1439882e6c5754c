"""Plain-language reasons attached to every generated bet.

Reads the primary (first) horse's score breakdown and overlay and turns
the categories that cleared a threshold into short lines:

    "Lone early speed in soft pace (+25 pace pts)"
    "Class drop from higher level (+12 pts)"
    "210% overlay at 15-1"
    "Expected value: +$2.40 per dollar wagered"

Usage:
    lines = generate_bet_explanation(bet.horses, "exacta_box")
    blurb = generate_bet_narrative(bet.horses, "win", bet.overlay_percent)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from overlay_analysis import SpecialCase
from tier_classifier import ClassifiedHorse


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

THRESHOLDS = {
    "pace": {"strong": 30, "good": 25, "moderate": 20},
    "connections": {"strong": 40, "good": 30, "moderate": 22},
    "speed_class": {"strong": 40, "good": 30, "moderate": 20},
    "form": {"strong": 25, "good": 20, "moderate": 15},
    "equipment": {"significant": 15, "notable": 10},
    "post_position": {"good": 25, "moderate": 15},
    "overlay": {"major": 50, "good": 25, "slight": 10},
}

BEST_FIGURE_COMPETITIVE = 80

_RELEVANCE_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass(frozen=True)
class ExplanationSection:
    title: str
    text: str
    relevance: str                  # high / medium / low
    points: Optional[float] = None


@dataclass
class BetExplanation:
    headline: str
    summary: str
    sections: List[ExplanationSection] = field(default_factory=list)
    key_factors: List[str] = field(default_factory=list)
    risk_assessment: str = "Moderate"
    value_assessment: str = "Fair value"


def _pts(value: float) -> str:
    return f"{value:g}"


def _relevance(value: float, strong: float, good: float) -> str:
    if value >= strong:
        return "high"
    if value >= good:
        return "medium"
    return "low"


# ---------------------------------------------------------------------------
# Explanation lines
# ---------------------------------------------------------------------------

def generate_bet_explanation(horses: Sequence[ClassifiedHorse], bet_type: str) -> List[str]:
    """Reason lines for a bet, primary horse first, never empty."""
    if not horses:
        return ["Unable to analyze - no horse data"]

    primary = horses[0]
    b = primary.score.breakdown
    bet_type = str(getattr(bet_type, "value", bet_type))
    lines: List[str] = []

    if b.pace >= THRESHOLDS["pace"]["moderate"]:
        if "lone" in b.pace_reasoning.lower():
            lines.append(f"Lone {b.pace_style.lower()} in {b.pace_fit} pace (+{_pts(b.pace)} pace pts)")
        else:
            lines.append(f"{b.pace_style} fits {b.pace_fit} pace (+{_pts(b.pace)} pts)")

    if b.class_movement == "dropping":
        lines.append(f"Class drop from higher level (+{_pts(b.class_movement_score)} pts)")

    if b.connections >= THRESHOLDS["connections"]["good"]:
        lines.append(f"Strong connections: {b.connections_reasoning} (+{_pts(b.connections)} pts)")

    if primary.overlay_percent >= THRESHOLDS["overlay"]["good"]:
        lines.append(f"{primary.overlay_percent:.0f}% overlay at {primary.odds_display}")

    if primary.overlay.is_positive_ev:
        lines.append(f"Expected value: +${primary.overlay.ev_per_dollar:.2f} per dollar wagered")

    if b.equipment_changes and b.equipment >= THRESHOLDS["equipment"]["notable"]:
        lines.append(f"Equipment change: {b.equipment_reasoning} (+{_pts(b.equipment)} pts)")

    if b.best_figure and b.best_figure >= BEST_FIGURE_COMPETITIVE:
        lines.append(f"Best Beyer {b.best_figure} competitive at this level")

    if primary.special_case is SpecialCase.DIAMOND_IN_ROUGH:
        lines.append("Diamond in Rough: moderate score with massive overlay")
    elif primary.special_case is SpecialCase.FOOL_GOLD:
        lines.append("Caution: High score but poor value (underlay)")

    if len(horses) > 1 and "exacta" in bet_type:
        if len({h.tier for h in horses}) > 1:
            lines.append("Combines chalk with value for upset coverage")

    if len(horses) >= 3 and "trifecta" in bet_type:
        lines.append("Box covers multiple finish permutations")

    return lines or ["Based on overall handicapping score"]


def generate_bet_narrative(horses: Sequence[ClassifiedHorse], bet_type: str,
                           overlay_percent: float) -> str:
    """One-line story: identity, key angle, value, tier context."""
    if not horses:
        return "No data available"

    primary = horses[0]
    b = primary.score.breakdown
    parts = [f"#{primary.program_number} {primary.name}"]

    if b.pace >= THRESHOLDS["pace"]["good"]:
        parts.append(f"fits {b.pace_fit} pace")
    elif b.class_movement == "dropping":
        parts.append("class edge")
    elif b.connections >= 35:
        parts.append("top connections")

    if overlay_percent >= THRESHOLDS["overlay"]["major"]:
        parts.append("at huge overlay")
    elif overlay_percent >= THRESHOLDS["overlay"]["good"]:
        parts.append("with value")
    elif primary.overlay.is_positive_ev:
        parts.append("+EV play")

    if primary.tier == "tier1":
        parts.append("(top contender)")
    elif primary.tier == "tier3":
        parts.append("(value bomb)")

    return " ".join(parts)


def get_scoring_sources(horses: Sequence[ClassifiedHorse]) -> List[str]:
    """Display names of the scoring categories behind a bet, first-seen order."""
    sources: List[str] = []

    def add(name: str) -> None:
        if name not in sources:
            sources.append(name)

    for h in horses:
        b = h.score.breakdown
        if b.pace >= 20:
            add("Pace Analysis")
        if b.connections >= 25:
            add("Connections")
        if b.speed_class >= 25:
            add("Speed & Class")
        if b.form >= 15:
            add("Form")
        if b.equipment_changes:
            add("Equipment")
        if b.post_position >= 20:
            add("Post Position")
        if b.class_movement == "dropping":
            add("Class Analysis")
        if h.overlay_percent >= 25:
            add("Overlay Analysis")
        if h.is_special_case:
            add("Special Detection")
    return sources


# ---------------------------------------------------------------------------
# Full explanation
# ---------------------------------------------------------------------------

def _sections(horse: ClassifiedHorse) -> List[ExplanationSection]:
    b = horse.score.breakdown
    out: List[ExplanationSection] = []

    t = THRESHOLDS["pace"]
    if b.pace >= t["moderate"]:
        if "lone" in b.pace_reasoning.lower():
            text = f"Lone early speed in {b.pace_fit} pace scenario"
        else:
            text = f"{b.pace_style} fits {b.pace_fit} pace scenario"
        out.append(ExplanationSection("Pace Advantage", f"{text} (+{_pts(b.pace)} pts)",
                                      _relevance(b.pace, t["strong"], t["good"]), b.pace))

    t = THRESHOLDS["connections"]
    if b.connections >= t["moderate"]:
        out.append(ExplanationSection("Connections", b.connections_reasoning or "Solid trainer/jockey",
                                      _relevance(b.connections, t["strong"], t["good"]), b.connections))

    t = THRESHOLDS["speed_class"]
    if b.speed_class >= t["moderate"]:
        parts = []
        if b.best_figure:
            parts.append(f"Best Beyer: {b.best_figure}")
        if b.class_movement == "dropping":
            parts.append("Class drop advantage")
        elif b.class_movement == "level":
            parts.append("Proven at class level")
        out.append(ExplanationSection("Speed & Class", f"{'; '.join(parts)} (+{_pts(b.speed_class)} pts)",
                                      _relevance(b.speed_class, t["strong"], t["good"]), b.speed_class))

    t = THRESHOLDS["form"]
    if b.form >= t["moderate"]:
        out.append(ExplanationSection("Current Form", f"Competitive recent form (+{_pts(b.form)} pts)",
                                      _relevance(b.form, t["strong"], t["good"]), b.form))

    t = THRESHOLDS["equipment"]
    if b.equipment_changes and b.equipment >= t["notable"]:
        relevance = "high" if b.equipment >= t["significant"] else "medium"
        out.append(ExplanationSection("Equipment Change", f"{b.equipment_reasoning} (+{_pts(b.equipment)} pts)",
                                      relevance, b.equipment))

    t = THRESHOLDS["post_position"]
    if b.post_position >= t["moderate"]:
        text = "Golden post position for this distance" if b.golden_post else "Favorable post position"
        relevance = "high" if b.golden_post else ("medium" if b.post_position >= t["good"] else "low")
        out.append(ExplanationSection("Post Position", f"{text} (+{_pts(b.post_position)} pts)",
                                      relevance, b.post_position))

    t = THRESHOLDS["overlay"]
    overlay = horse.overlay
    if overlay.overlay_percent >= t["slight"]:
        parts = [f"{overlay.overlay_percent:.0f}% overlay"]
        if overlay.is_positive_ev:
            parts.append(f"+EV: ${overlay.ev_per_dollar:.2f} per dollar wagered")
        parts.append(f"Fair odds: {overlay.fair_odds_display} vs actual {horse.odds_display}")
        relevance = "high" if overlay.overlay_percent >= t["good"] else "medium"
        out.append(ExplanationSection("Value Overlay", "; ".join(parts), relevance))

    return sorted(out, key=lambda s: _RELEVANCE_ORDER[s.relevance])


def generate_full_bet_explanation(horses: Sequence[ClassifiedHorse], bet_type: str) -> BetExplanation:
    if not horses:
        return BetExplanation(
            headline="Unable to analyze",
            summary="No horse data available for analysis.",
            risk_assessment="Unknown",
            value_assessment="Unknown",
        )

    primary = horses[0]
    sections = _sections(primary)
    top_factor = sections[0].title if sections else "Overall Score"

    high = [s for s in sections if s.relevance == "high"][:2]
    if high:
        summary = ". ".join(s.text for s in high)
    else:
        summary = f"Scored {_pts(primary.score.total)} with {primary.confidence}% confidence."

    overlay = primary.overlay
    if primary.tier == "tier1" and primary.confidence >= 80:
        risk = "Lower risk - top contender"
    elif primary.tier == "tier3" or primary.odds >= 15:
        risk = "Higher risk - longshot play"
    elif overlay.overlay_percent >= 50:
        risk = "Calculated risk - significant overlay"
    else:
        risk = "Moderate"

    if overlay.overlay_percent >= 50:
        value = f"Excellent value: {overlay.overlay_percent:.0f}% overlay"
    elif overlay.is_positive_ev:
        value = f"Good value: +${overlay.ev_per_dollar:.2f} EV"
    elif overlay.overlay_percent < 0:
        value = f"Underlay: {abs(overlay.overlay_percent):.0f}% below fair odds"
    else:
        value = "Fair value"

    return BetExplanation(
        headline=f"{primary.name}: {top_factor} advantage at {primary.odds_display}",
        summary=summary,
        sections=sections,
        key_factors=[f"{s.title}: {s.text}" for s in sections if s.relevance != "low"],
        risk_assessment=risk,
        value_assessment=value,
    )


def format_explanation_for_display(explanation: BetExplanation) -> str:
    lines = [f"**{explanation.headline}**", "", explanation.summary, ""]
    factors = [s for s in explanation.sections if s.relevance != "low"]
    if factors:
        lines.append("**Key Factors:**")
        lines.extend(f"- {s.title}: {s.text}" for s in factors)
        lines.append("")
    lines.append(f"Risk: {explanation.risk_assessment}")
    lines.append(f"Value: {explanation.value_assessment}")
    return "\n".join(lines)
