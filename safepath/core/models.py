"""
Core domain models for SafePath.

This module defines the route-risk and live-intelligence models using
Pydantic v2, plus the immutable static region dataset the engine reads.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Literal, Mapping, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

RiskTier = Literal["EXTREME", "VERY HIGH", "HIGH", "MODERATE", "LOW"]
Confidence = Literal["VERIFIED", "ESTIMATED", "LOW_CONFIDENCE"]
RetrievalLevel = Literal["area", "zone", "state"]

RISK_TIERS: Tuple[str, ...] = ("EXTREME", "VERY HIGH", "HIGH", "MODERATE", "LOW")


class Region(BaseModel):
    """A node of the routing graph (state-level in the bundled data)."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    parent_state: Optional[str] = None
    tier: RiskTier = "MODERATE"
    score: Optional[int] = Field(default=None, ge=0, le=100)


class DangerousCorridor(BaseModel):
    """A known dangerous directed edge between two adjacent regions."""
    model_config = ConfigDict(frozen=True)

    from_id: str
    to_id: str
    name: str
    tier: RiskTier
    danger_zones: Tuple[str, ...] = ()
    alternative: str = ""


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str = ""
    recommendations: Tuple[str, ...] = ()
    travel_advisory: str = ""


@dataclass(frozen=True)
class RegionData:
    """Read-only static tables: adjacency, city lookup, risks, corridors, advice."""
    adjacency: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    cities: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    regions: Mapping[str, Region] = field(default_factory=lambda: MappingProxyType({}))
    corridors: Mapping[Tuple[str, str], DangerousCorridor] = field(default_factory=lambda: MappingProxyType({}))
    recommendations: Mapping[str, Recommendation] = field(default_factory=lambda: MappingProxyType({}))


# ---- route results ----

class RegionBreakdown(BaseModel):
    id: str
    name: str
    tier: RiskTier
    score: int


class CorridorAlert(BaseModel):
    name: str
    road_id: str
    from_id: str
    to_id: str
    tier: RiskTier
    score: int
    danger_zones: List[str] = Field(default_factory=list)
    recommendation: str = ""


class RecommendationBundle(BaseModel):
    primary: str
    alternatives: List[str] = Field(default_factory=list)
    if_must_travel: List[str] = Field(default_factory=list)


class RouteResult(BaseModel):
    from_token: str
    to_token: str
    path: List[str]
    route_display: str
    tier: RiskTier
    score: int
    composite_score: float
    confidence: Confidence
    breakdown: List[RegionBreakdown]
    highest_risk: RegionBreakdown
    corridors: List[CorridorAlert] = Field(default_factory=list)
    escalated: bool = False
    recommendations: RecommendationBundle
    cached: bool = False
    methodology: str = (
        "Risk calculated from region risk levels along the shortest path "
        "and known dangerous corridors."
    )


# ---- live intelligence ----

class RawArticle(BaseModel):
    title: str
    url: str
    seen_date: str
    domain: str = ""


class ClassifiedArticle(RawArticle):
    incident_score: int
    accepted: bool


class Segment(BaseModel):
    """A road or region segment queried separately during route retrieval."""
    id: str
    name: str
    query_terms: List[str]


class RetrievalResult(BaseModel):
    articles: List[ClassifiedArticle] = Field(default_factory=list)
    level: RetrievalLevel = "area"
    query: str = ""
    error: Optional[str] = None
    cached: bool = False
    stale: bool = False
    last_updated: str


class SegmentReport(BaseModel):
    segment_id: str
    name: str
    articles: List[ClassifiedArticle] = Field(default_factory=list)
    incident_count: int = 0


class RouteRetrievalResult(BaseModel):
    segments: List[SegmentReport] = Field(default_factory=list)
    total_incidents: int = 0
    error: Optional[str] = None
    cached: bool = False
    stale: bool = False
    partial: bool = False
    last_updated: str
