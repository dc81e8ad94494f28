"""
Tiered live-intelligence retrieval for SafePath.

Area requests escalate area -> zone -> state until a level yields enough
accepted incidents; a broader level replaces, never merges with, the
narrower result. Route requests query one segment at a time through a
fixed-delay throttle, or fall back to a single state-disjunction query
when the route crosses no known corridor.
"""

import asyncio
import contextlib
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from safepath.cache import CacheEntry, ResultCache, keys
from safepath.common.throttle import FixedDelayThrottle
from safepath.core.classifier import IncidentClassifier, rank_key
from safepath.core.errors import CollaboratorUnavailable
from safepath.core.formatting import display_name
from safepath.core.models import (
    ClassifiedArticle, RetrievalResult, RouteRetrievalResult, Segment, SegmentReport,
)
from safepath.core.risk import corridors_on_path
from safepath.observability import metrics
from safepath.observability.logging_setup import get_logger
from safepath.orchestrators.route_checker import RegionDataSource
from safepath.ports.search import NewsSearchPort
from safepath.settings import RetrievalConfig, SearchConfig

log = get_logger("safepath.live")

INCIDENT_QUERY_TERMS = (
    "killed", "kidnapped", "attacked", "robbery", "gunmen", "bandits",
    "explosion", "kidnapping", "abducted", "shot", "shooting", "bombing",
    "cultists", "terrorists", "insurgents", "Boko Haram", "ISWAP",
    "murdered", "hostage", "ransom", "ambush", "clash", "violence",
)


def _quote(term: str) -> str:
    return f'"{term}"' if " " in term.strip() else term.strip()


def _disjunction(terms: Sequence[str]) -> str:
    quoted = [_quote(t) for t in terms if t and t.strip()]
    if len(quoted) == 1:
        return quoted[0]
    return "(" + " OR ".join(quoted) + ")"


def build_query(place_terms: Sequence[str], country: str = "Nigeria") -> str:
    """'(Kaduna OR Zaria) Nigeria (killed OR kidnapped OR ...)'."""
    parts = [_disjunction(place_terms)]
    if country:
        parts.append(country)
    parts.append(_disjunction(INCIDENT_QUERY_TERMS))
    return " ".join(parts)


def dedupe_by_url(articles: Sequence[ClassifiedArticle]) -> List[ClassifiedArticle]:
    """Keeps the first occurrence of each URL; input order is preserved."""
    seen = set()
    unique = []
    for article in articles:
        if article.url in seen:
            continue
        seen.add(article.url)
        unique.append(article)
    return unique


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TieredRetrievalCoordinator:
    """Live intelligence query API"""

    def __init__(self,
                 search: NewsSearchPort,
                 cache: ResultCache,
                 classifier: Optional[IncidentClassifier] = None,
                 loader: Optional[RegionDataSource] = None,
                 search_config: Optional[SearchConfig] = None,
                 retrieval_config: Optional[RetrievalConfig] = None,
                 throttle_factory: Optional[Callable[[], FixedDelayThrottle]] = None,
                 now: Callable[[], str] = _now_iso):
        """
        Args:
            search: news search collaborator
            cache: result cache
            classifier: incident classifier (default threshold when omitted)
            loader: region data, needed to map routes onto corridor segments
            search_config: query and throttle settings
            retrieval_config: budgets and display limits
            throttle_factory: builds one throttle per request
            now: ISO timestamp source for last_updated
        """
        self.search = search
        self.cache = cache
        self.classifier = classifier or IncidentClassifier()
        self.loader = loader
        self.search_config = search_config or SearchConfig()
        self.retrieval = retrieval_config or RetrievalConfig()
        self._throttle_factory = throttle_factory or (
            lambda: FixedDelayThrottle(self.search_config.request_delay_sec)
        )
        self._now = now

    # ---- shared ----

    async def _search_accepted(self, query: str, timespan: str, budget: int,
                               level: str) -> List[ClassifiedArticle]:
        try:
            raw = await self.search.search(query, timespan, budget)
        except CollaboratorUnavailable:
            metrics.search_requests.labels(level=level, outcome="error").inc()
            raise
        metrics.search_requests.labels(level=level, outcome="ok").inc()

        incidents = self.classifier.filter_incidents(raw)
        metrics.articles_classified.labels(accepted="true").inc(len(incidents))
        metrics.articles_classified.labels(accepted="false").inc(len(raw) - len(incidents))
        accepted = dedupe_by_url(incidents)
        log.info(f"search level:{level} raw:{len(raw)} accepted:{len(accepted)} query:{query!r}")
        return accepted

    async def _cached(self, key: str, refresh: bool) -> Tuple[Optional[Dict], Optional[CacheEntry]]:
        """
        Returns (fresh payload or None, entry removed by a refresh).

        A refresh invalidates before any network call; the removed entry is
        held back so a failed refresh can still fall back to it.
        """
        if refresh:
            return None, await self.cache.invalidate(key)
        payload, fresh = await self.cache.get(key)
        return (payload if fresh else None), None

    async def _stale_fallback(self, key: str, removed: Optional[CacheEntry]) -> Optional[Dict]:
        if removed is not None:
            payload, written_at = removed
            await self.cache.keep_stale(key, payload, written_at)
        else:
            payload, _ = await self.cache.get(key)
        if payload is not None:
            log.warning(f"serving stale cache after collaborator failure key:{key}")
        return payload

    # ---- area ----

    async def fetch_area_reports(self,
                                 location_id: str,
                                 zone: Optional[str],
                                 state: str,
                                 risk_tier: Optional[str] = None,
                                 refresh: bool = False) -> RetrievalResult:
        """
        Incident feed for one location, escalating area -> zone -> state.

        Args:
            location_id: local area name
            zone: broader zone name (optional)
            state: state name
            risk_tier: static risk tier, sizes the time window and budget
            refresh: invalidate the cached entry before fetching

        Returns:
            RetrievalResult; collaborator failures are annotated in `error`
        """
        key = keys.area_key(location_id, state)
        cached, removed = await self._cached(key, refresh)
        if cached is not None:
            return RetrievalResult.model_validate(cached).model_copy(update={"cached": True})

        timespan = self.retrieval.time_window_for(risk_tier)
        budget = self.retrieval.max_articles_for(risk_tier) * 2
        min_results = self.retrieval.min_level_results
        throttle = self._throttle_factory()

        levels: List[Tuple[str, str]] = [("area", location_id)]
        if zone:
            levels.append(("zone", zone))
        levels.append(("state", state))

        articles: List[ClassifiedArticle] = []
        level, query_label = "area", location_id
        failures: List[str] = []
        succeeded = 0

        for idx, (lvl, place) in enumerate(levels):
            if idx > 0 and len(articles) >= min_results:
                break
            await throttle.acquire()
            try:
                found = await self._search_accepted(
                    build_query([place], self.search_config.country), timespan, budget, lvl
                )
            except CollaboratorUnavailable as e:
                failures.append(f"{lvl}: {e}")
                continue
            succeeded += 1
            if idx == 0:
                articles = found
            elif len(found) >= min_results:
                articles, level, query_label = found, lvl, place

        if succeeded == 0:
            message = "collaborator_unavailable: " + "; ".join(failures)
            stale = await self._stale_fallback(key, removed)
            if stale is not None:
                return RetrievalResult.model_validate(stale).model_copy(
                    update={"cached": True, "stale": True, "error": message}
                )
            return RetrievalResult(level="area", query=location_id, error=message,
                                   last_updated=self._now())

        articles.sort(key=rank_key)
        result = RetrievalResult(
            articles=articles[:self.retrieval.area_display_limit],
            level=level,
            query=query_label,
            last_updated=self._now(),
        )
        metrics.retrieval_level.labels(level=level).inc()
        await self.cache.set(key, result.model_dump(mode="json"))
        return result

    # ---- route ----

    def segments_for(self, region_ids: Sequence[str]) -> List[Segment]:
        """One segment per named corridor the route traverses, in route order."""
        if self.loader is None:
            return []
        segments: Dict[str, Segment] = {}
        for corridor in corridors_on_path(region_ids, self.loader.load()):
            seg_id = "-".join(corridor.name.lower().split())
            terms = [corridor.name, *corridor.danger_zones[:2]]
            if seg_id in segments:
                known = segments[seg_id].query_terms
                known.extend(t for t in terms if t not in known)
            else:
                segments[seg_id] = Segment(id=seg_id, name=corridor.name, query_terms=list(dict.fromkeys(terms)))
        return list(segments.values())

    async def fetch_route_reports(self,
                                  region_ids: Sequence[str],
                                  risk_tier: Optional[str] = None,
                                  refresh: bool = False,
                                  cancel: Optional[asyncio.Event] = None) -> RouteRetrievalResult:
        """
        Incident feed along a route.

        Uses per-segment queries when the route crosses known corridors,
        otherwise one state-disjunction query.
        """
        if not region_ids:
            return RouteRetrievalResult(last_updated=self._now())
        segments = self.segments_for(region_ids)
        if segments:
            return await self.fetch_segment_reports(segments, risk_tier, refresh, cancel)
        return await self.fetch_state_reports(region_ids, risk_tier, refresh)

    async def _search_or_cancel(self, query: str, timespan: str, budget: int,
                                cancel: Optional[asyncio.Event]) -> Optional[List[ClassifiedArticle]]:
        """Runs a segment search; None means the caller cancelled first."""
        search = self._search_accepted(query, timespan, budget, "segment")
        if cancel is None:
            return await search

        search_task = asyncio.ensure_future(search)
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({search_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
        if search_task in done:
            return search_task.result()

        search_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await search_task
        return None

    async def fetch_segment_reports(self,
                                    segments: Sequence[Segment],
                                    risk_tier: Optional[str] = None,
                                    refresh: bool = False,
                                    cancel: Optional[asyncio.Event] = None) -> RouteRetrievalResult:
        """
        Queries each segment sequentially, spaced by the throttle delay.

        Args:
            segments: road segments to query
            risk_tier: highest static tier on the route
            refresh: invalidate the cached entry before fetching
            cancel: when set, stop and return a partial result

        Returns:
            RouteRetrievalResult; partial results are never cached
        """
        key = keys.route_segments_key(s.id for s in segments)
        cached, removed = await self._cached(key, refresh)
        if cached is not None:
            return RouteRetrievalResult.model_validate(cached).model_copy(update={"cached": True})

        timespan = self.retrieval.time_window_for(risk_tier)
        budget = self.retrieval.segment_fetch_budget
        limit = self.retrieval.segment_article_limit
        throttle = self._throttle_factory()

        reports: List[SegmentReport] = []
        failures: List[str] = []
        partial = False

        for segment in segments:
            if cancel is not None and cancel.is_set():
                partial = True
                break
            await throttle.acquire()
            query = build_query(segment.query_terms, self.search_config.country)
            try:
                found = await self._search_or_cancel(query, timespan, budget, cancel)
            except CollaboratorUnavailable as e:
                failures.append(f"{segment.id}: {e}")
                reports.append(SegmentReport(segment_id=segment.id, name=segment.name))
                continue
            if found is None:
                partial = True
                log.info(f"route retrieval cancelled after {len(reports)}/{len(segments)} segments")
                break
            kept = found[:limit]
            reports.append(SegmentReport(
                segment_id=segment.id, name=segment.name,
                articles=kept, incident_count=len(kept),
            ))

        error = None
        if failures:
            error = "collaborator_unavailable: " + "; ".join(failures)
            if len(failures) == len(reports) and not partial:
                stale = await self._stale_fallback(key, removed)
                if stale is not None:
                    return RouteRetrievalResult.model_validate(stale).model_copy(
                        update={"cached": True, "stale": True, "error": error}
                    )

        result = RouteRetrievalResult(
            segments=reports,
            total_incidents=sum(r.incident_count for r in reports),
            error=error,
            partial=partial,
            last_updated=self._now(),
        )
        if not partial and not failures:
            await self.cache.set(key, result.model_dump(mode="json"))
        elif removed is not None:
            await self.cache.keep_stale(key, *removed)
        return result

    def _region_name(self, region_id: str) -> str:
        if self.loader is not None:
            region = self.loader.load().regions.get(region_id)
            if region is not None:
                return region.name
        return display_name(region_id)

    async def fetch_state_reports(self,
                                  region_ids: Sequence[str],
                                  risk_tier: Optional[str] = None,
                                  refresh: bool = False) -> RouteRetrievalResult:
        """Single state-disjunction query for routes without corridor mapping."""
        ids = sorted(region_ids)
        key = keys.route_states_key(ids)
        cached, removed = await self._cached(key, refresh)
        if cached is not None:
            return RouteRetrievalResult.model_validate(cached).model_copy(update={"cached": True})

        timespan = self.retrieval.time_window_for(risk_tier)
        budget = self.retrieval.max_articles_for(risk_tier) * 2
        query = build_query([self._region_name(r) for r in region_ids], self.search_config.country)

        try:
            found = await self._search_accepted(query, timespan, budget, "route_states")
        except CollaboratorUnavailable as e:
            error = f"collaborator_unavailable: {e}"
            stale = await self._stale_fallback(key, removed)
            if stale is not None:
                return RouteRetrievalResult.model_validate(stale).model_copy(
                    update={"cached": True, "stale": True, "error": error}
                )
            return RouteRetrievalResult(error=error, last_updated=self._now())

        kept = found[:self.retrieval.states_display_limit]
        count = len(ids)
        name = f"{count} state{'s' if count > 1 else ''} along route"
        result = RouteRetrievalResult(
            segments=[SegmentReport(
                segment_id="states-" + "-".join(ids), name=name,
                articles=kept, incident_count=len(kept),
            )],
            total_incidents=len(kept),
            last_updated=self._now(),
        )
        await self.cache.set(key, result.model_dump(mode="json"))
        return result
