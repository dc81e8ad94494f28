"""
HTTP endpoints for SafePath.

This module implements health, metrics and info endpoints plus the
caller-facing route and live-intelligence queries.
"""

from typing import Optional
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import Response, JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import time
import uuid
from safepath.adapters.static_data import RegionDataLoader
from safepath.core.errors import DataLoadError, NoRoute, UnknownRegion
from safepath.orchestrators.live_reports import TieredRetrievalCoordinator
from safepath.orchestrators.route_checker import RouteSafetyService
from safepath.settings import Settings
from safepath.observability.logging_setup import get_logger, with_context

log = get_logger("safepath.http")

def create_app(settings: Settings,
               route_service: Optional[RouteSafetyService] = None,
               coordinator: Optional[TieredRetrievalCoordinator] = None) -> FastAPI:
    """Builds the FastAPI application."""
    app = FastAPI(
        title=settings.observability.service_name,
        version=settings.observability.build_version,
        description="SafePath Route & Location Risk Intelligence Service"
    )
    
    if route_service is None:
        route_service = RouteSafetyService(RegionDataLoader(settings.data.data_dir))
    
    start_time = time.time()
    
    @app.middleware("http")
    async def request_context(request: Request, call_next):
        """Binds a request id to every log line emitted while serving the request."""
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        with with_context(request_id=request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
    
    @app.get("/health")
    async def health():
        return JSONResponse({
            "status": "ok",
            "service": settings.observability.service_name,
            "timestamp": time.time()
        })
    
    @app.get("/ready")
    async def ready():
        """Ready once the static region data is loadable."""
        try:
            data = route_service.loader.load()
        except DataLoadError as e:
            log.error(f"readiness check failed: {e}")
            raise HTTPException(status_code=503, detail="region data unavailable")
        return JSONResponse({
            "status": "ready",
            "service": settings.observability.service_name,
            "regions": len(data.adjacency),
            "intelligence": coordinator is not None,
            "timestamp": time.time()
        })
    
    @app.get("/metrics")
    async def metrics():
        if not settings.observability.metrics_enabled:
            raise HTTPException(status_code=503, detail="Metrics disabled")
        return Response(
            generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )
    
    @app.get("/info")
    async def info():
        uptime = time.time() - start_time
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "build_date": settings.observability.build_date,
            "uptime_seconds": int(uptime),
            "metrics_enabled": settings.observability.metrics_enabled,
            "log_level": settings.observability.log_level,
            "classifier_threshold": settings.classifier.threshold,
            "cache_ttl_sec": settings.cache.ttl_sec
        })
    
    @app.get("/route")
    async def check_route(from_token: str = Query(..., alias="from"),
                          to_token: str = Query(..., alias="to"),
                          refresh: bool = False):
        """Route risk between two cities or regions."""
        try:
            result = await route_service.check_route(from_token, to_token, refresh=refresh)
        except UnknownRegion as e:
            return JSONResponse(status_code=404, content={
                "error": "unknown_region", "token": e.token, "detail": str(e)
            })
        except NoRoute as e:
            return JSONResponse(status_code=409, content={
                "error": "no_route", "from": e.from_id, "to": e.to_id, "detail": str(e)
            })
        return result.model_dump(mode="json")
    
    def _require_coordinator() -> TieredRetrievalCoordinator:
        if coordinator is None:
            raise HTTPException(status_code=503, detail="live intelligence disabled")
        return coordinator
    
    @app.get("/intel/area")
    async def area_intel(location_id: str,
                         state: str,
                         zone: Optional[str] = None,
                         risk: Optional[str] = None,
                         refresh: bool = False):
        """Live incident feed for one location."""
        coord = _require_coordinator()
        result = await coord.fetch_area_reports(location_id, zone, state, risk_tier=risk, refresh=refresh)
        return result.model_dump(mode="json")
    
    @app.get("/intel/route")
    async def route_intel(regions: str,
                          risk: Optional[str] = None,
                          refresh: bool = False):
        """Live incident feed along a route; `regions` is a comma-separated id list."""
        coord = _require_coordinator()
        region_ids = [r.strip() for r in regions.split(",") if r.strip()]
        result = await coord.fetch_route_reports(region_ids, risk_tier=risk, refresh=refresh)
        return result.model_dump(mode="json")
    
    @app.get("/")
    async def root():
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "endpoints": {
                "health": "/health",
                "ready": "/ready",
                "metrics": "/metrics",
                "info": "/info",
                "route": "/route?from=&to=",
                "area_intel": "/intel/area?location_id=&state=&zone=&risk=",
                "route_intel": "/intel/route?regions=a,b,c&risk="
            }
        })
    
    return app
