"""
Orchestrators for SafePath.

Request-scoped coordinators that combine the core functions with the
cache and the news search collaborator.
"""

from .route_checker import RouteSafetyService
from .live_reports import TieredRetrievalCoordinator

__all__ = ["RouteSafetyService", "TieredRetrievalCoordinator"]
