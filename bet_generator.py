"""Bet generator: scored field -> sized, explained bet slate for one race.

Pipeline
--------
1. Classify the field into tiers (tier_classifier).
2. Per-tier menus (tier1 chalk, tier2 value alternatives, tier3 longshots)
   plus special categories: nuclear/live longshots, validated diamonds and
   EV value bombs.
3. Deduplicate by (bet type, set of program numbers); first one wins.
4. Scale stakes down into each tier's budget share (bet_sizing).
5. Mark bets recommended for the bettor's style.
6. Drop anything left with a non-positive stake or cost.

Exotic boxes over tier1 go through the box selector, so a horse more than
one tier-width behind the leader never pads a box.

Failures anywhere in the pipeline come back as ``Err`` with the component
that raised; ``unwrap_or_empty()`` turns that into an empty but complete
result for callers that just want to render nothing.

Usage:
    outcome = generate_recommendations(scored, race_number=5, bankroll=settings)
    result = outcome.unwrap_or_empty()
    for bet in result.all_bets:
        print(bet.window_instruction, bet.narrative)
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from bet_costs import (
    BET_TYPE_NAMES,
    BetType,
    calculate_potential_return,
    calculate_total_cost,
    round_half_up,
)
from bet_explanations import generate_bet_explanation, generate_bet_narrative
from bet_recommendations import (
    BET_ICONS,
    BetRecommendation,
    TierBetRecommendations,
    average_confidence,
    bet_to_dict,
    summarize_tier_bets,
    tier_bets_to_dict,
)
from bet_sizing import calculate_bet_amount, scale_bets_by_bankroll
from box_selection import BoxSelectionResult, create_exotic_configs, select_box_horses
from config import DEFAULT_BANKROLL, DEFAULT_CONFIG, BankrollSettings, RecommendationConfig
from horse_data import ScoredHorse
from special_analysis import (
    DiamondAnalysis,
    DiamondDetector,
    LongshotAnalysis,
    LongshotClassification,
    LongshotDetector,
    live_longshots,
    validated_diamonds,
)
from tier_classifier import ClassifiedHorse, TierGroup, classify_horses, find_group
from window_instructions import format_bet_slip, generate_window_instruction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# EV value bombs: stake clamp (tier2 limits) and entry criteria
VALUE_BOMB_MIN_AMOUNT = 2
VALUE_BOMB_MAX_AMOUNT = 20
VALUE_BOMB_MIN_OVERLAY = 50.0
VALUE_BOMB_MIN_ODDS = 5.0
MAX_VALUE_BOMBS = 2

NUCLEAR_STAKE = 5
LIVE_STAKE = 2

DIAMOND_STAKE_CONFIDENT = 4
DIAMOND_STAKE = 3
DIAMOND_CONFIDENT_AT = 60

TIER2_PLACE_MIN_OVERLAY = 25.0
RECOMMEND_MIN_OVERLAY = 25.0

# Tier1 exotic boxes are capped at three horses
TIER1_BOX_SIZE = 3


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeneratedBet(BetRecommendation):
    id: str = ""
    tier: str = "tier1"
    race_number: int = 0
    special_category: Optional[str] = None      # nuclear / diamond / value_bomb
    explanation: List[str] = field(default_factory=list)
    narrative: str = ""
    scoring_sources: List[str] = field(default_factory=list)
    ev_per_dollar: float = 0.0
    overlay_percent: float = 0.0
    is_recommended: bool = False
    box_summary: Optional[str] = None
    longshot_angle: Optional[str] = None
    diamond_story: Optional[str] = None


@dataclass
class SpecialCategoryBets:
    nuclear_longshots: List[GeneratedBet] = field(default_factory=list)
    diamonds: List[GeneratedBet] = field(default_factory=list)
    value_bombs: List[GeneratedBet] = field(default_factory=list)
    total_investment: float = 0.0


@dataclass
class GeneratorSummary:
    tier1_count: int = 0
    tier2_count: int = 0
    tier3_count: int = 0
    nuclear_count: int = 0
    diamond_count: int = 0
    positive_ev_count: int = 0
    overlay_count: int = 0
    scratch_count: int = 0


@dataclass
class GeneratorResult:
    race_number: int = 0
    tier_bets: List[TierBetRecommendations] = field(default_factory=list)
    special_bets: SpecialCategoryBets = field(default_factory=SpecialCategoryBets)
    all_bets: List[GeneratedBet] = field(default_factory=list)
    total_recommended_cost: float = 0.0
    total_max_cost: float = 0.0
    summary: GeneratorSummary = field(default_factory=GeneratorSummary)
    tier_groups: List[TierGroup] = field(default_factory=list)

    @property
    def recommended_bets(self) -> List[GeneratedBet]:
        return [b for b in self.all_bets if b.is_recommended]


def empty_generator_result(race_number: int = 0) -> GeneratorResult:
    return GeneratorResult(race_number=race_number)


@dataclass(frozen=True)
class Ok:
    value: GeneratorResult

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap_or_empty(self) -> GeneratorResult:
        return self.value


@dataclass(frozen=True)
class Err:
    reason: str
    component: str
    race_number: int

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap_or_empty(self) -> GeneratorResult:
        return empty_generator_result(self.race_number)


GeneratorOutcome = Union[Ok, Err]


# ---------------------------------------------------------------------------
# Bet construction
# ---------------------------------------------------------------------------

def identify_scoring_sources(horses: Sequence[ClassifiedHorse]) -> List[str]:
    """Short keys of the scoring categories that carried the horses on a bet."""
    sources: List[str] = []
    for h in horses:
        b = h.score.breakdown
        checks = [
            ("pace", b.pace > 25),
            ("speed_class", b.speed_class > 30),
            ("connections", b.connections > 35),
            ("form", b.form > 20),
            ("equipment", b.equipment_changes),
            ("post_position", b.golden_post),
            ("class_drop", b.class_movement == "dropping"),
            ("overlay", h.overlay_percent >= 25),
            (h.special_case.value, h.is_special_case),
        ]
        for key, hit in checks:
            if hit and key not in sources:
                sources.append(key)
    return sources


def create_generated_bet(
    bet_type: BetType,
    description: str,
    horses: Sequence[ClassifiedHorse],
    amount: float,
    tier: str,
    race_number: int,
    confidence: float,
    type_name: Optional[str] = None,
    icon: Optional[str] = None,
    special_category: Optional[str] = None,
    box_summary: Optional[str] = None,
    longshot_angle: Optional[str] = None,
    diamond_story: Optional[str] = None,
) -> GeneratedBet:
    horses = list(horses)
    numbers = [h.program_number for h in horses]
    cost = calculate_total_cost(bet_type, len(horses), amount)
    top = horses[0] if horses else None
    overlay_percent = top.overlay_percent if top else 0.0

    return GeneratedBet(
        type=bet_type,
        type_name=type_name or BET_TYPE_NAMES[bet_type],
        description=description,
        horses=horses,
        amount=amount,
        total_cost=cost,
        window_instruction=generate_window_instruction(bet_type, numbers, amount, race_number),
        potential_return=calculate_potential_return(bet_type, [h.odds for h in horses], cost),
        confidence=max(0, min(100, round_half_up(confidence))),
        icon=icon or BET_ICONS[bet_type],
        id=f"{tier}-{bet_type.value}-{'-'.join(str(n) for n in numbers)}",
        tier=tier,
        race_number=race_number,
        special_category=special_category,
        explanation=generate_bet_explanation(horses, bet_type.value),
        narrative=generate_bet_narrative(horses, bet_type.value, overlay_percent),
        scoring_sources=identify_scoring_sources(horses),
        ev_per_dollar=top.overlay.ev_per_dollar if top else 0.0,
        overlay_percent=overlay_percent,
        box_summary=box_summary,
        longshot_angle=longshot_angle,
        diamond_story=diamond_story,
    )


def _tier1_box(horses: List[ClassifiedHorse], kind: str,
               config: RecommendationConfig) -> BoxSelectionResult:
    box_config = replace(create_exotic_configs(config=config)[kind], max_horses=TIER1_BOX_SIZE)
    return select_box_horses(horses, box_config, config)


# ---------------------------------------------------------------------------
# Per-tier menus
# ---------------------------------------------------------------------------

def generate_tier1_bets(group: TierGroup, all_horses: List[ClassifiedHorse], race_number: int,
                        bankroll: BankrollSettings,
                        config: RecommendationConfig = DEFAULT_CONFIG) -> List[GeneratedBet]:
    horses = group.horses
    if not horses:
        return []
    top = horses[0]
    base = calculate_bet_amount(top.confidence, "tier1", bankroll)

    bets = [
        create_generated_bet(BetType.WIN, f"Win bet on top contender {top.name}", [top],
                             round_half_up(base * 2), "tier1", race_number, top.confidence),
        create_generated_bet(BetType.PLACE, f"Place bet on {top.name} for safety", [top],
                             base, "tier1", race_number, top.confidence + 10),
    ]

    if len(horses) >= 2:
        box = _tier1_box(horses, "exacta", config)
        if box.is_valid_box:
            picked = box.selected_horses
            bets.append(create_generated_bet(
                BetType.EXACTA_BOX, f"Exacta box with top {len(picked)} contenders", picked,
                round_half_up(base / 2), "tier1", race_number, average_confidence(picked),
                box_summary=box.summary,
            ))

    others = [h for h in all_horses
              if h.program_number != top.program_number and not h.score.is_scratched][:4]
    if others:
        bets.append(create_generated_bet(
            BetType.EXACTA_KEY_OVER, f"{top.name} over top {len(others)} others", [top] + others,
            round_half_up(base / 2), "tier1", race_number, top.confidence - 10,
        ))

    if len(horses) >= 3:
        box = _tier1_box(horses, "trifecta", config)
        if box.is_valid_box:
            picked = box.selected_horses
            bets.append(create_generated_bet(
                BetType.TRIFECTA_BOX, "Trifecta box with top 3 chalk", picked, 1, "tier1",
                race_number, average_confidence(picked) - 15, box_summary=box.summary,
            ))
    elif len(horses) == 2:
        tier1_numbers = {h.program_number for h in horses}
        outside = next((h for h in all_horses if h.program_number not in tier1_numbers), None)
        if outside is not None:
            bets.append(create_generated_bet(
                BetType.TRIFECTA_BOX, "Trifecta box: chalk with one alternative",
                horses[:2] + [outside], 1, "tier1", race_number, 55,
            ))
    return bets


def generate_tier2_bets(group: TierGroup, tier1: List[ClassifiedHorse], race_number: int,
                        bankroll: BankrollSettings) -> List[GeneratedBet]:
    horses = group.horses
    if not horses:
        return []
    top = horses[0]
    base = calculate_bet_amount(top.confidence, "tier2", bankroll)

    bets = [create_generated_bet(
        BetType.WIN, f"Value win on {top.name} at {top.odds_display}", [top],
        base, "tier2", race_number, top.confidence,
    )]

    if tier1:
        chalk = tier1[:2]
        half = round_half_up(base / 2)
        bets.append(create_generated_bet(
            BetType.EXACTA_KEY_OVER, f"{top.name} over chalk (upset special)", [top] + chalk,
            half, "tier2", race_number, top.confidence - 10,
        ))
        bets.append(create_generated_bet(
            BetType.EXACTA_KEY_UNDER, f"Chalk on top, {top.name} underneath", [top] + chalk,
            half, "tier2", race_number, top.confidence,
        ))

    tri, seen = [], set()
    for h in horses[:2] + tier1[:2]:
        if h.program_number not in seen:
            seen.add(h.program_number)
            tri.append(h)
    if len(tri) >= 3:
        bets.append(create_generated_bet(
            BetType.TRIFECTA_BOX, "Trifecta box: alternatives with chalk", tri[:3],
            1, "tier2", race_number, 45,
        ))

    if tier1:
        pair = [top, tier1[0]]
        bets.append(create_generated_bet(
            BetType.QUINELLA, "Quinella: alternative with favorite", pair,
            base, "tier2", race_number, average_confidence(pair) - 5,
        ))

    if top.overlay_percent >= TIER2_PLACE_MIN_OVERLAY:
        bets.append(create_generated_bet(
            BetType.PLACE, f"Place bet on value horse {top.name}", [top],
            base, "tier2", race_number, top.confidence + 10,
        ))
    return bets


def _longshot_bet(longshot: LongshotAnalysis, horse: ClassifiedHorse, race_number: int,
                  type_name: str, description_name: str, odds_display: str) -> GeneratedBet:
    nuclear = longshot.classification is LongshotClassification.NUCLEAR
    first = longshot.angles[0] if longshot.angles else None
    return create_generated_bet(
        BetType.VALUE_BOMB, f"{description_name} at {odds_display}: {longshot.angle_names}", [horse],
        NUCLEAR_STAKE if nuclear else LIVE_STAKE, "tier3", race_number,
        longshot.upset_probability * 100,
        type_name=type_name, special_category="nuclear",
        longshot_angle=first.evidence if first else None,
    )


def generate_tier3_bets(group: TierGroup, all_horses: List[ClassifiedHorse],
                        longshots: Dict[int, LongshotAnalysis], race_number: int,
                        bankroll: BankrollSettings) -> List[GeneratedBet]:
    horses = group.horses
    if not horses:
        return []
    bomb = horses[0]
    base = calculate_bet_amount(bomb.confidence, "tier3", bankroll)
    bets: List[GeneratedBet] = []

    for h in horses:
        ls = longshots.get(h.program_number)
        if ls is None or not ls.classification.is_live:
            continue
        label = "NUCLEAR" if ls.classification is LongshotClassification.NUCLEAR else "LIVE"
        bets.append(_longshot_bet(ls, h, race_number, f"{label} Value Bomb", h.name, h.odds_display))

    # A value bomb already covers the top horse's win
    if not any(bomb.program_number in b.horse_numbers for b in bets):
        bets.append(create_generated_bet(
            BetType.WIN, f"Lottery ticket: {bomb.name} at {bomb.odds_display}", [bomb],
            base, "tier3", race_number, bomb.confidence,
        ))

    others = [h for h in all_horses if h.program_number != bomb.program_number]
    if others:
        bets.append(create_generated_bet(
            BetType.EXACTA_KEY_OVER, "Bomb on top over field for huge exacta", [bomb] + others[:5],
            1, "tier3", race_number, bomb.confidence - 15,
        ))

    if len(all_horses) >= 4:
        bets.append(create_generated_bet(
            BetType.SUPERFECTA, "Superfecta box with bomb included", [bomb] + others[:3],
            0.1, "tier3", race_number, bomb.confidence - 25,
        ))

    contenders = [h for h in all_horses if h.tier in ("tier1", "tier2")][:3]
    if len(contenders) >= 2:
        bets.append(create_generated_bet(
            BetType.TRIFECTA_WHEEL, "Bomb trifecta wheel for jackpot", [bomb] + contenders,
            1, "tier3", race_number, bomb.confidence - 20,
        ))

    bets.append(create_generated_bet(
        BetType.PLACE, f"Place bet on {bomb.name} - better value", [bomb],
        base * 2, "tier3", race_number, bomb.confidence + 15,
    ))
    return bets


# ---------------------------------------------------------------------------
# Special categories
# ---------------------------------------------------------------------------

def _by_number(horses: Sequence[ClassifiedHorse]) -> Dict[int, ClassifiedHorse]:
    return {h.program_number: h for h in horses}


def generate_nuclear_longshot_bets(longshots: Sequence[LongshotAnalysis],
                                   all_horses: List[ClassifiedHorse],
                                   race_number: int) -> List[GeneratedBet]:
    lookup = _by_number(all_horses)
    bets = []
    for ls in live_longshots(longshots):
        horse = lookup.get(ls.program_number)
        if horse is None:
            continue
        label = "NUCLEAR" if ls.classification is LongshotClassification.NUCLEAR else "LIVE"
        bets.append(_longshot_bet(ls, horse, race_number, f"{label} Longshot",
                                  ls.horse_name, ls.odds_display))
    return bets


def generate_diamond_bets(diamonds: Sequence[DiamondAnalysis], all_horses: List[ClassifiedHorse],
                          race_number: int) -> List[GeneratedBet]:
    lookup = _by_number(all_horses)
    bets = []
    for d in validated_diamonds(diamonds):
        horse = lookup.get(d.program_number)
        if horse is None:
            continue
        stake = DIAMOND_STAKE_CONFIDENT if d.confidence >= DIAMOND_CONFIDENT_AT else DIAMOND_STAKE
        bets.append(create_generated_bet(
            BetType.HIDDEN_GEM, f"{d.horse_name} at {d.odds_display}: {d.story}", [horse],
            stake, "tier2", race_number, d.confidence,
            special_category="diamond", diamond_story=d.story,
        ))
        # place saver one dollar lighter
        bets.append(create_generated_bet(
            BetType.PLACE, f"Place saver on {d.horse_name}", [horse],
            stake - 1, "tier2", race_number, d.confidence + 15,
            special_category="diamond",
        ))
    return bets


def generate_value_bomb_bets(all_horses: List[ClassifiedHorse], race_number: int,
                             bankroll: BankrollSettings) -> List[GeneratedBet]:
    plays = [h for h in all_horses
             if h.overlay.is_positive_ev
             and h.overlay_percent >= VALUE_BOMB_MIN_OVERLAY
             and h.odds >= VALUE_BOMB_MIN_ODDS]

    bets = []
    for h in plays[:MAX_VALUE_BOMBS]:
        scaled = calculate_bet_amount(h.confidence, "tier2", bankroll) * (h.overlay.ev_per_dollar + 1)
        amount = max(VALUE_BOMB_MIN_AMOUNT, min(VALUE_BOMB_MAX_AMOUNT, round_half_up(scaled)))
        bets.append(create_generated_bet(
            BetType.VALUE_BOMB, f"{h.name} at {h.odds_display}: +{h.overlay_percent:.0f}% overlay",
            [h], amount, h.tier, race_number, h.confidence,
            type_name="EV Value Bomb", icon="trending_up", special_category="value_bomb",
        ))
    return bets


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------

def deduplicate_bets(bets: Sequence[GeneratedBet]) -> List[GeneratedBet]:
    seen, out = set(), []
    for bet in bets:
        key = (bet.type, frozenset(bet.horse_numbers))
        if key in seen:
            continue
        seen.add(key)
        out.append(bet)
    return out


def is_bet_recommended(bet: GeneratedBet, bankroll: BankrollSettings) -> bool:
    if bankroll.complexity_mode == "simple":
        style = bankroll.betting_style
        if style == "safe":
            return bet.tier == "tier1" or (bet.tier == "tier2" and bet.confidence >= 65)
        if style == "aggressive":
            return True
        return bet.tier in ("tier1", "tier2") or (bet.tier == "tier3" and bet.confidence >= 45)
    return bet.ev_per_dollar > 0 or bet.overlay_percent >= RECOMMEND_MIN_OVERLAY or bet.tier == "tier1"


def mark_recommended_bets(bets: Sequence[GeneratedBet], bankroll: BankrollSettings) -> List[GeneratedBet]:
    return [replace(b, is_recommended=is_bet_recommended(b, bankroll)) for b in bets]


def sanitize_bet_amounts(bets: Sequence[GeneratedBet]) -> List[GeneratedBet]:
    """Drop any bet left without a positive stake and cost."""
    return [b for b in bets if b.amount > 0 and b.total_cost > 0]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _build_result(race_number: int, groups: List[TierGroup], bets: List[GeneratedBet],
                  counts: Dict[str, int], scratch_count: int) -> GeneratorResult:
    tier_bets = [
        summarize_tier_bets(g, [b for b in bets if b.tier == g.tier and b.special_category is None])
        for g in groups
    ]
    specials = [b for b in bets if b.special_category is not None]
    special_bets = SpecialCategoryBets(
        nuclear_longshots=[b for b in specials if b.special_category == "nuclear"],
        diamonds=[b for b in specials if b.special_category == "diamond"],
        value_bombs=[b for b in specials if b.special_category == "value_bomb"],
        total_investment=round(sum(b.total_cost for b in specials), 2),
    )
    summary = GeneratorSummary(
        tier1_count=counts.get("tier1", 0),
        tier2_count=counts.get("tier2", 0),
        tier3_count=counts.get("tier3", 0),
        nuclear_count=len(special_bets.nuclear_longshots),
        diamond_count=len(special_bets.diamonds),
        positive_ev_count=sum(1 for b in bets if b.ev_per_dollar > 0),
        overlay_count=sum(1 for b in bets if b.overlay_percent >= RECOMMEND_MIN_OVERLAY),
        scratch_count=scratch_count,
    )
    return GeneratorResult(
        race_number=race_number,
        tier_bets=tier_bets,
        special_bets=special_bets,
        all_bets=bets,
        total_recommended_cost=round(sum(b.total_cost for b in bets if b.is_recommended), 2),
        total_max_cost=round(sum(b.total_cost for b in bets), 2),
        summary=summary,
        tier_groups=groups,
    )


def generate_recommendations(
    scored_horses: Sequence[ScoredHorse],
    race_number: int = 1,
    bankroll: BankrollSettings = DEFAULT_BANKROLL,
    config: RecommendationConfig = DEFAULT_CONFIG,
    longshots: Optional[Sequence[LongshotAnalysis]] = None,
    diamonds: Optional[Sequence[DiamondAnalysis]] = None,
    longshot_detector: Optional[LongshotDetector] = None,
    diamond_detector: Optional[DiamondDetector] = None,
    live_odds: Optional[Dict[int, str]] = None,
) -> GeneratorOutcome:
    """Full bet slate for one race.

    *longshots* / *diamonds* are pre-computed detector verdicts; pass the
    ``*_detector`` callables instead to have them run on *scored_horses*.
    Returns ``Ok(GeneratorResult)`` or ``Err`` naming the failed component.
    """
    component = "tier_classifier"
    try:
        groups = classify_horses(scored_horses, config, live_odds)
        all_horses = [h for g in groups for h in g.horses]

        component = "longshot_detector"
        if longshots is None:
            longshots = longshot_detector(scored_horses) if longshot_detector else []
        longshot_map = {ls.program_number: ls for ls in live_longshots(longshots)}

        component = "diamond_detector"
        if diamonds is None:
            diamonds = diamond_detector(scored_horses) if diamond_detector else []

        component = "bet_generator"
        tier1_group = find_group(groups, "tier1")
        tier2_group = find_group(groups, "tier2")
        tier3_group = find_group(groups, "tier3")
        tier1 = tier1_group.horses if tier1_group else []

        per_tier = {
            "tier1": generate_tier1_bets(tier1_group, all_horses, race_number, bankroll, config)
            if tier1_group else [],
            "tier2": generate_tier2_bets(tier2_group, tier1, race_number, bankroll)
            if tier2_group else [],
            "tier3": generate_tier3_bets(tier3_group, all_horses, longshot_map, race_number, bankroll)
            if tier3_group else [],
        }
        bets = (per_tier["tier1"] + per_tier["tier2"] + per_tier["tier3"]
                + generate_nuclear_longshot_bets(longshots, all_horses, race_number)
                + generate_diamond_bets(diamonds, all_horses, race_number)
                + generate_value_bomb_bets(all_horses, race_number, bankroll))

        bets = deduplicate_bets(bets)
        component = "bet_sizing"
        bets = scale_bets_by_bankroll(bets, bankroll)
        component = "bet_generator"
        bets = mark_recommended_bets(bets, bankroll)
        bets = sanitize_bet_amounts(bets)

        scratch_count = sum(1 for sh in scored_horses if sh.score.is_scratched)
        result = _build_result(race_number, groups, bets,
                               {t: len(b) for t, b in per_tier.items()}, scratch_count)
    except Exception as e:
        logger.exception(f"[{component}] Bet generation failed for race {race_number}: {e}")
        return Err(reason=str(e) or type(e).__name__, component=component, race_number=race_number)

    logger.info(
        f"[bet_generator] Race {race_number}: {len(result.all_bets)} bets, "
        f"{len(result.recommended_bets)} recommended, ${result.total_max_cost:.2f} max cost"
    )
    return Ok(result)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def generated_bet_to_dict(bet: GeneratedBet) -> dict:
    d = bet_to_dict(bet)
    d.update({
        "id": bet.id,
        "tier": bet.tier,
        "race_number": bet.race_number,
        "special_category": bet.special_category,
        "explanation": bet.explanation,
        "narrative": bet.narrative,
        "scoring_sources": bet.scoring_sources,
        "ev_per_dollar": round(bet.ev_per_dollar, 3),
        "overlay_percent": round(bet.overlay_percent, 1),
        "is_recommended": bet.is_recommended,
        "box_summary": bet.box_summary,
    })
    return d


def generator_result_to_dict(result: GeneratorResult) -> dict:
    """Convert GeneratorResult to a JSON-serializable dict."""
    s = result.summary
    tier_bets = []
    for rec in result.tier_bets:
        d = tier_bets_to_dict(rec)
        d["bets"] = [generated_bet_to_dict(b) for b in rec.bets]
        tier_bets.append(d)
    return {
        "race_number": result.race_number,
        "tier_bets": tier_bets,
        "special_bets": {
            "nuclear_longshots": [generated_bet_to_dict(b) for b in result.special_bets.nuclear_longshots],
            "diamonds": [generated_bet_to_dict(b) for b in result.special_bets.diamonds],
            "value_bombs": [generated_bet_to_dict(b) for b in result.special_bets.value_bombs],
            "total_investment": result.special_bets.total_investment,
        },
        "all_bets": [generated_bet_to_dict(b) for b in result.all_bets],
        "total_recommended_cost": result.total_recommended_cost,
        "total_max_cost": result.total_max_cost,
        "summary": {
            "tier1_count": s.tier1_count,
            "tier2_count": s.tier2_count,
            "tier3_count": s.tier3_count,
            "nuclear_count": s.nuclear_count,
            "diamond_count": s.diamond_count,
            "positive_ev_count": s.positive_ev_count,
            "overlay_count": s.overlay_count,
            "scratch_count": s.scratch_count,
        },
    }


def generator_result_to_text(result: GeneratorResult, recommended_only: bool = False) -> str:
    """Bet slip text for the window, recommended bets only if asked."""
    bets = result.recommended_bets if recommended_only else result.all_bets
    if not bets:
        return f"Race {result.race_number}: no bets recommended"
    total = sum(b.total_cost for b in bets)
    potential = (sum(b.potential_return[0] for b in bets), sum(b.potential_return[1] for b in bets))
    return format_bet_slip(bets, result.race_number, total, potential).full_text


def generator_result_to_frame(result: GeneratorResult) -> pd.DataFrame:
    columns = ["race", "tier", "category", "bet_type", "horses", "amount", "total_cost",
               "min_return", "max_return", "confidence", "recommended", "instruction"]
    rows = [
        {
            "race": result.race_number,
            "tier": b.tier,
            "category": b.special_category or "",
            "bet_type": b.type_name,
            "horses": "-".join(str(n) for n in b.horse_numbers),
            "amount": b.amount,
            "total_cost": round(b.total_cost, 2),
            "min_return": b.potential_return[0],
            "max_return": b.potential_return[1],
            "confidence": b.confidence,
            "recommended": b.is_recommended,
            "instruction": b.window_instruction.strip('"'),
        }
        for b in result.all_bets
    ]
    return pd.DataFrame(rows, columns=columns)


def generator_result_to_csv(result: GeneratorResult) -> str:
    """Export the slate as CSV."""
    buf = io.StringIO()
    generator_result_to_frame(result).to_csv(buf, index=False)
    return buf.getvalue()
