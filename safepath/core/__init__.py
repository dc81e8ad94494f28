"""
Core domain models and pure functions for SafePath.

This module contains the routing, risk composition, classification and
formatting logic, independent of external I/O and infrastructure concerns.
"""

from .models import (
    Region, DangerousCorridor, Recommendation, RegionData, RouteResult,
    RawArticle, ClassifiedArticle, RetrievalResult, RouteRetrievalResult,
)
from .errors import SafePathError, UnknownRegion, NoRoute, CollaboratorUnavailable, DataLoadError
from .router import route, find_path
from .risk import compose_route
from .classifier import IncidentClassifier, score

__all__ = [
    "Region", "DangerousCorridor", "Recommendation", "RegionData", "RouteResult",
    "RawArticle", "ClassifiedArticle", "RetrievalResult", "RouteRetrievalResult",
    "SafePathError", "UnknownRegion", "NoRoute", "CollaboratorUnavailable", "DataLoadError",
    "route", "find_path", "compose_route", "IncidentClassifier", "score",
]
