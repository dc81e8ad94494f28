"""
Route safety orchestrator for SafePath.

Resolves a from/to pair over the region graph, composes the route risk
and caches the result bundle.
"""

from typing import Optional, Protocol
from safepath.cache import ResultCache, keys
from safepath.core.errors import NoRoute, UnknownRegion
from safepath.core.models import RegionData, RouteResult
from safepath.core.risk import compose_route
from safepath.core.router import route
from safepath.observability import metrics
from safepath.observability.logging_setup import get_logger

log = get_logger("safepath.route")


class RegionDataSource(Protocol):
    def load(self) -> RegionData: ...


class RouteSafetyService:
    """Route query API"""

    def __init__(self, loader: RegionDataSource, cache: Optional[ResultCache] = None):
        """
        Args:
            loader: static region data source (loaded lazily, once)
            cache: result cache; None disables caching
        """
        self.loader = loader
        self.cache = cache

    def compute(self, from_token: str, to_token: str) -> RouteResult:
        """
        Pure route computation without the cache.

        Raises:
            UnknownRegion: a token resolves to no region
            NoRoute: the regions are disconnected
        """
        data = self.loader.load()
        try:
            _, _, path = route(from_token, to_token, data)
        except UnknownRegion as e:
            metrics.route_checks.labels(outcome="unknown_region").inc()
            log.info(f"route check rejected: unknown region token:{e.token!r}")
            raise
        except NoRoute as e:
            metrics.route_checks.labels(outcome="no_route").inc()
            log.info(f"route check rejected: no route {e.from_id} -> {e.to_id}")
            raise

        result = compose_route(from_token, to_token, path, data)
        metrics.route_checks.labels(outcome="ok").inc()
        log.info(
            f"route checked path:{'>'.join(path)} tier:{result.tier} "
            f"score:{result.score} confidence:{result.confidence}"
        )
        return result

    async def check_route(self, from_token: str, to_token: str, refresh: bool = False) -> RouteResult:
        """
        Cached route check.

        Args:
            from_token: origin city or region
            to_token: destination city or region
            refresh: drop any cached entry first

        Returns:
            RouteResult, flagged cached=True when served from a fresh entry
        """
        if self.cache is None:
            return self.compute(from_token, to_token)

        key = keys.route_check_key(from_token, to_token)
        if refresh:
            await self.cache.invalidate(key)
        else:
            payload, fresh = await self.cache.get(key)
            if payload is not None and fresh:
                return RouteResult.model_validate(payload).model_copy(update={"cached": True})

        result = self.compute(from_token, to_token)
        await self.cache.set(key, result.model_dump(mode="json"))
        return result
