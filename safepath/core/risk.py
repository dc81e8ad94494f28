"""
Route risk composition for SafePath.

This module contains pure functions that turn a region path into a
composite risk score, escalate it through known dangerous corridors and
attach the tier's travel recommendations.
"""

import math
from typing import List, Sequence, Tuple
from safepath.core.formatting import display_name
from safepath.core.models import (
    CorridorAlert, DangerousCorridor, RecommendationBundle, RegionBreakdown,
    RegionData, RouteResult,
)

# tier -> default numeric score
TIER_SCORES = {
    "EXTREME": 100,
    "VERY HIGH": 80,
    "HIGH": 60,
    "MODERATE": 40,
    "LOW": 20,
}

# (floor, tier), highest first
TIER_THRESHOLDS = (
    (85, "EXTREME"),
    (70, "VERY HIGH"),
    (55, "HIGH"),
    (40, "MODERATE"),
)

HIGH_RISK_TIERS = frozenset({"EXTREME", "VERY HIGH"})

UNKNOWN_TIER = "MODERATE"
DEFAULT_PRECAUTION = "Take standard travel precautions."

MAX_WEIGHT = 0.6
AVG_WEIGHT = 0.3
HIGH_RISK_WEIGHT = 0.1
HIGH_RISK_PENALTY = 5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def tier_for_score(score: float) -> str:
    for floor, tier in TIER_THRESHOLDS:
        if score >= floor:
            return tier
    return "LOW"


def region_risk(region_id: str, data: RegionData) -> RegionBreakdown:
    """Static tier and numeric score of one region, with fallbacks for gaps."""
    region = data.regions.get(region_id)
    if region is None:
        return RegionBreakdown(
            id=region_id,
            name=display_name(region_id),
            tier=UNKNOWN_TIER,
            score=TIER_SCORES[UNKNOWN_TIER],
        )
    score = region.score if region.score is not None else TIER_SCORES[region.tier]
    return RegionBreakdown(id=region_id, name=region.name, tier=region.tier, score=score)


def composite_score(breakdown: Sequence[RegionBreakdown]) -> float:
    """
    Blends worst segment, average and the number of high-risk regions.

    composite = 0.6 * max + 0.3 * mean + 0.1 * (5 * high_risk_count)
    """
    if not breakdown:
        raise ValueError("empty path")
    scores = [r.score for r in breakdown]
    max_risk = max(scores)
    avg_risk = sum(scores) / len(scores)
    high_risk_count = sum(1 for r in breakdown if r.tier in HIGH_RISK_TIERS)
    return (
        MAX_WEIGHT * max_risk
        + AVG_WEIGHT * avg_risk
        + HIGH_RISK_WEIGHT * (HIGH_RISK_PENALTY * high_risk_count)
    )


def confidence_for(path_length: int) -> str:
    if path_length <= 4:
        return "VERIFIED"
    if path_length <= 6:
        return "ESTIMATED"
    return "LOW_CONFIDENCE"


def corridors_on_path(path: Sequence[str], data: RegionData) -> List[DangerousCorridor]:
    """Corridors whose exact ordered edge the path traverses."""
    found = []
    for a, b in zip(path, path[1:]):
        corridor = data.corridors.get((a, b))
        if corridor is not None:
            found.append(corridor)
    return found


def escalate(tier: str, score: int, corridors: Sequence[DangerousCorridor]) -> Tuple[str, int, bool]:
    """
    Raises the route tier to the worst corridor's tier if it scores higher.

    Returns:
        (tier, score, escalated); never lower than the input
    """
    worst = None
    worst_score = 0
    for corridor in corridors:
        corridor_score = TIER_SCORES.get(corridor.tier, TIER_SCORES[UNKNOWN_TIER])
        if corridor_score > worst_score:
            worst, worst_score = corridor, corridor_score

    if worst is not None and worst_score > score:
        return worst.tier, worst_score, True
    return tier, score, False


def recommendation_bundle(tier: str, data: RegionData) -> RecommendationBundle:
    rec = data.recommendations.get(tier)
    if rec is None:
        return RecommendationBundle(primary=DEFAULT_PRECAUTION)
    return RecommendationBundle(
        primary=rec.summary or DEFAULT_PRECAUTION,
        alternatives=list(rec.recommendations),
        if_must_travel=[rec.travel_advisory] if rec.travel_advisory else [],
    )


def _slug(name: str) -> str:
    return "-".join(name.lower().split())


def compose_route(from_token: str, to_token: str, path: Sequence[str], data: RegionData) -> RouteResult:
    """
    Builds the full route result bundle for a resolved path.

    Args:
        from_token: origin as the caller typed it
        to_token: destination as the caller typed it
        path: ordered region ids
        data: static region data

    Returns:
        RouteResult
    """
    breakdown = [region_risk(region_id, data) for region_id in path]
    composite = composite_score(breakdown)
    tier = tier_for_score(composite)
    score = round_half_up(composite)

    corridors = corridors_on_path(path, data)
    final_tier, final_score, escalated = escalate(tier, score, corridors)

    return RouteResult(
        from_token=from_token,
        to_token=to_token,
        path=list(path),
        route_display=" → ".join(r.name for r in breakdown),
        tier=final_tier,
        score=final_score,
        composite_score=round(composite, 2),
        confidence=confidence_for(len(path)),
        breakdown=breakdown,
        highest_risk=max(breakdown, key=lambda r: r.score),
        corridors=[
            CorridorAlert(
                name=c.name,
                road_id=_slug(c.name),
                from_id=c.from_id,
                to_id=c.to_id,
                tier=c.tier,
                score=TIER_SCORES.get(c.tier, TIER_SCORES[UNKNOWN_TIER]),
                danger_zones=list(c.danger_zones),
                recommendation=c.alternative,
            )
            for c in corridors
        ],
        escalated=escalated,
        recommendations=recommendation_bundle(final_tier, data),
    )
