"""
Tiered retrieval coordinator unit tests

Area escalation (area -> zone -> state), per-segment route retrieval,
caching, stale fallback and cancellation.
"""

import asyncio
import pytest
from safepath.adapters.storage import InMemoryKVStore
from safepath.cache import ResultCache, keys
from safepath.common.throttle import FixedDelayThrottle
from safepath.core.errors import CollaboratorUnavailable
from safepath.orchestrators.live_reports import TieredRetrievalCoordinator, build_query, dedupe_by_url

NOW_ISO = "2025-03-10T12:00:00+00:00"


def incidents(make_article, place, n, start=1):
    """n accepted headlines about a place"""
    return [
        make_article(f"Gunmen kill {i} in {place} ambush", seen_date=f"202503{10 - i % 9:02d}T120000Z")
        for i in range(start, start + n)
    ]


class SleepRecorder:
    def __init__(self, clock):
        self.clock = clock
        self.waits = []

    async def __call__(self, seconds):
        self.waits.append(seconds)
        self.clock.advance(seconds)


@pytest.fixture
def sleeps(clock):
    return SleepRecorder(clock)


@pytest.fixture
def cache(clock):
    return ResultCache(InMemoryKVStore(clock=clock), ttl_sec=3600, retention_sec=86400, clock=clock)


@pytest.fixture
def make_coordinator(cache, clock, sleeps):
    def make(search, loader=None):
        return TieredRetrievalCoordinator(
            search,
            cache,
            loader=loader,
            throttle_factory=lambda: FixedDelayThrottle(0.3, clock=clock, sleep=sleeps),
            now=lambda: NOW_ISO,
        )
    return make


class TestBuildQuery:
    """Query string construction tests"""

    def test_single_place(self):
        query = build_query(["Kaduna"])
        assert query.startswith("Kaduna Nigeria (")
        assert '"Boko Haram"' in query

    def test_multiple_terms_quoted(self):
        query = build_query(["Abuja-Kaduna Highway", "Katari"], country="")
        assert query.startswith('("Abuja-Kaduna Highway" OR Katari) (')

    def test_dedupe_by_url_keeps_first(self, make_article):
        from safepath.core.classifier import IncidentClassifier
        clf = IncidentClassifier()
        first = clf.classify(make_article("Gunmen kill three in ambush", url="https://a.ng/1"))
        second = clf.classify(make_article("Gunmen kill 3 in ambush", url="https://a.ng/1"))
        assert dedupe_by_url([first, second]) == [first]


class TestAreaRetrieval:
    """Area -> zone -> state escalation tests"""

    @pytest.mark.asyncio
    async def test_zone_replaces_area(self, make_coordinator, fake_search, place_responder, make_article):
        search = fake_search(place_responder({
            "Kafanchan": incidents(make_article, "Kafanchan", 1),
            "Southern Kaduna": incidents(make_article, "Southern Kaduna", 3),
            "Kaduna": incidents(make_article, "Kaduna", 6),
        }))
        coordinator = make_coordinator(search)

        result = await coordinator.fetch_area_reports("Kafanchan", "Southern Kaduna", "Kaduna")

        assert result.level == "zone"
        assert result.query == "Southern Kaduna"
        assert len(result.articles) == 3
        assert all("Southern Kaduna" in a.title for a in result.articles)
        assert len(search.calls) == 2
        assert result.last_updated == NOW_ISO

    @pytest.mark.asyncio
    async def test_escalates_to_state(self, make_coordinator, fake_search, place_responder, make_article):
        search = fake_search(place_responder({
            "Kaduna": incidents(make_article, "Kaduna", 4),
        }))
        coordinator = make_coordinator(search)

        result = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        assert result.level == "state"
        assert len(result.articles) == 4
        assert len(search.calls) == 2

    @pytest.mark.asyncio
    async def test_area_sufficient_stops_early(self, make_coordinator, fake_search, place_responder, make_article):
        search = fake_search(place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 2)}))
        coordinator = make_coordinator(search)

        result = await coordinator.fetch_area_reports("Kafanchan", "Southern Kaduna", "Kaduna")

        assert result.level == "area"
        assert len(result.articles) == 2
        assert len(search.calls) == 1

    @pytest.mark.asyncio
    async def test_broader_levels_too_thin_keep_area(self, make_coordinator, fake_search, place_responder,
                                                     make_article):
        search = fake_search(place_responder({
            "Kafanchan": incidents(make_article, "Kafanchan", 1),
            "Southern Kaduna": incidents(make_article, "Southern Kaduna", 1),
            "Kaduna": incidents(make_article, "Kaduna", 1),
        }))
        coordinator = make_coordinator(search)

        result = await coordinator.fetch_area_reports("Kafanchan", "Southern Kaduna", "Kaduna")

        assert result.level == "area"
        assert [a.title for a in result.articles] == ["Gunmen kill 1 in Kafanchan ambush"]
        assert len(search.calls) == 3

    @pytest.mark.asyncio
    async def test_noise_filtered_and_display_limit(self, make_coordinator, fake_search, place_responder,
                                                    make_article):
        noise = [make_article("Governor inaugurates Kafanchan committee"), make_article("Kafanchan market day")]
        search = fake_search(place_responder({"Kafanchan": noise + incidents(make_article, "Kafanchan", 8)}))
        coordinator = make_coordinator(search)

        result = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        assert len(result.articles) == 5
        assert all(a.accepted for a in result.articles)
        dates = [a.seen_date for a in result.articles]
        assert dates == sorted(dates, reverse=True)

    @pytest.mark.asyncio
    async def test_duplicate_urls_collapsed(self, make_coordinator, fake_search, place_responder, make_article):
        dup = make_article("Gunmen kill three in Kafanchan", url="https://a.ng/x")
        again = make_article("Gunmen kill 3 in Kafanchan", url="https://a.ng/x")
        other = make_article("Bandits raid Kafanchan village", url="https://a.ng/y")
        search = fake_search(place_responder({"Kafanchan": [dup, again, other]}))
        coordinator = make_coordinator(search)

        result = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        assert [a.url for a in result.articles] == ["https://a.ng/x", "https://a.ng/y"]

    @pytest.mark.asyncio
    async def test_time_window_and_budget_follow_risk_tier(self, make_coordinator, fake_search, place_responder,
                                                           make_article):
        search = fake_search(place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 2)}))
        coordinator = make_coordinator(search)

        await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna", risk_tier="EXTREME")
        await coordinator.fetch_area_reports("Jos", None, "Plateau", risk_tier="MODERATE")

        assert search.calls[0][1:] == ("30d", 50)
        assert search.calls[1][1:] == ("7d", 20)

    @pytest.mark.asyncio
    async def test_levels_are_throttled(self, make_coordinator, fake_search, sleeps):
        search = fake_search(lambda q: [])
        coordinator = make_coordinator(search)

        await coordinator.fetch_area_reports("Kafanchan", "Southern Kaduna", "Kaduna")

        assert len(search.calls) == 3
        assert sleeps.waits == pytest.approx([0.3, 0.3])

    @pytest.mark.asyncio
    async def test_failed_level_skipped(self, make_coordinator, fake_search, place_responder, make_article):
        search = fake_search(place_responder({
            "Kafanchan": CollaboratorUnavailable("timeout"),
            "Southern Kaduna": incidents(make_article, "Southern Kaduna", 3),
        }))
        coordinator = make_coordinator(search)

        result = await coordinator.fetch_area_reports("Kafanchan", "Southern Kaduna", "Kaduna")

        assert result.level == "zone"
        assert result.error is None
        assert len(result.articles) == 3


class TestAreaCaching:
    """Area cache and fallback tests"""

    @pytest.mark.asyncio
    async def test_fresh_hit_skips_search(self, make_coordinator, fake_search, place_responder, make_article,
                                          clock):
        search = fake_search(place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 2)}))
        coordinator = make_coordinator(search)

        first = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")
        clock.advance(59 * 60)
        second = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        assert first.cached is False
        assert second.cached is True
        assert second.articles == first.articles
        assert len(search.calls) == 1

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(self, make_coordinator, fake_search, place_responder, make_article,
                                           clock):
        search = fake_search(place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 2)}))
        coordinator = make_coordinator(search)

        await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")
        clock.advance(61 * 60)
        result = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        assert result.cached is False
        assert len(search.calls) == 2

    @pytest.mark.asyncio
    async def test_refresh_invalidates(self, make_coordinator, fake_search, place_responder, make_article):
        search = fake_search(place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 2)}))
        coordinator = make_coordinator(search)

        await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")
        result = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna", refresh=True)

        assert result.cached is False
        assert len(search.calls) == 2

    @pytest.mark.asyncio
    async def test_refresh_during_outage_serves_previous_as_stale(self, make_coordinator, fake_search,
                                                                  place_responder, make_article, cache):
        search = fake_search(place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 3)}))
        coordinator = make_coordinator(search)
        first = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        entries_while_searching = []

        def down(query):
            entries_while_searching.append(len(cache.store))
            return CollaboratorUnavailable("down")

        search.responder = down
        refreshed = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna", refresh=True)

        assert entries_while_searching == [0, 0]
        assert refreshed.cached is True and refreshed.stale is True
        assert refreshed.error.startswith("collaborator_unavailable")
        assert refreshed.articles == first.articles

        later = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")
        assert later.stale is True
        assert later.articles == first.articles

    @pytest.mark.asyncio
    async def test_refreshed_entry_never_fresh_again(self, make_coordinator, fake_search, place_responder,
                                                     make_article):
        search = fake_search(place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 3)}))
        coordinator = make_coordinator(search)
        await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")
        search.responder = lambda q: CollaboratorUnavailable("down")
        await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna", refresh=True)

        search.responder = place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 2, start=10)})
        recovered = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        assert recovered.cached is False and recovered.stale is False
        assert len(recovered.articles) == 2

    @pytest.mark.asyncio
    async def test_stale_fallback_on_failure(self, make_coordinator, fake_search, place_responder, make_article,
                                             clock):
        search = fake_search(place_responder({"Kafanchan": incidents(make_article, "Kafanchan", 2)}))
        coordinator = make_coordinator(search)
        first = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        clock.advance(2 * 3600)
        search.responder = lambda q: CollaboratorUnavailable("down")
        result = await coordinator.fetch_area_reports("Kafanchan", None, "Kaduna")

        assert result.cached is True
        assert result.stale is True
        assert result.error.startswith("collaborator_unavailable")
        assert result.articles == first.articles

    @pytest.mark.asyncio
    async def test_failure_without_cache(self, make_coordinator, fake_search, cache):
        search = fake_search(lambda q: CollaboratorUnavailable("down"))
        coordinator = make_coordinator(search)

        result = await coordinator.fetch_area_reports("Kafanchan", "Southern Kaduna", "Kaduna")

        assert result.articles == []
        assert result.stale is False
        assert "area" in result.error and "state" in result.error
        assert await cache.get(keys.area_key("Kafanchan", "Kaduna")) == (None, False)


class TestSegments:
    """Corridor -> segment mapping tests"""

    def test_segments_in_route_order(self, make_coordinator, fake_search, bundled_loader):
        coordinator = make_coordinator(fake_search(lambda q: []), loader=bundled_loader)
        segments = coordinator.segments_for(["fct", "kaduna", "kano"])
        assert [s.id for s in segments] == ["abuja-kaduna-highway", "kaduna-kano-expressway"]
        assert segments[0].query_terms[0] == "Abuja-Kaduna Highway"

    def test_same_road_merged(self, make_coordinator, fake_search, bundled_loader):
        coordinator = make_coordinator(fake_search(lambda q: []), loader=bundled_loader)
        segments = coordinator.segments_for(["lagos", "ogun", "oyo"])
        assert len(segments) == 1
        assert segments[0].query_terms == [
            "Lagos-Ibadan Expressway", "Long Bridge", "Berger", "Ogere", "Sagamu Interchange",
        ]

    def test_no_loader_no_segments(self, make_coordinator, fake_search):
        assert make_coordinator(fake_search(lambda q: [])).segments_for(["fct", "kaduna"]) == []


class TestRouteRetrieval:
    """Per-segment and state-fallback route retrieval tests"""

    @pytest.mark.asyncio
    async def test_segments_queried_sequentially_with_delay(self, make_coordinator, fake_search, place_responder,
                                                            make_article, bundled_loader, sleeps):
        search = fake_search(place_responder({
            "Abuja-Kaduna Highway": incidents(make_article, "Katari", 5),
            "Kaduna-Kano Expressway": incidents(make_article, "Zaria", 1),
        }))
        coordinator = make_coordinator(search, loader=bundled_loader)

        result = await coordinator.fetch_route_reports(["fct", "kaduna", "kano"], risk_tier="EXTREME")

        assert [s.segment_id for s in result.segments] == ["abuja-kaduna-highway", "kaduna-kano-expressway"]
        assert [s.incident_count for s in result.segments] == [3, 1]
        assert result.total_incidents == 4
        assert result.partial is False
        assert sleeps.waits == pytest.approx([0.3])
        assert all(call[1:] == ("30d", 50) for call in search.calls)

    @pytest.mark.asyncio
    async def test_route_result_cached(self, make_coordinator, fake_search, place_responder, make_article,
                                       bundled_loader):
        search = fake_search(place_responder({"Abuja-Kaduna Highway": incidents(make_article, "Katari", 2)}))
        coordinator = make_coordinator(search, loader=bundled_loader)

        await coordinator.fetch_route_reports(["fct", "kaduna"])
        again = await coordinator.fetch_route_reports(["fct", "kaduna"])

        assert again.cached is True
        assert len(search.calls) == 1

    @pytest.mark.asyncio
    async def test_partial_segment_failure(self, make_coordinator, fake_search, place_responder, make_article,
                                           bundled_loader, cache):
        search = fake_search(place_responder({
            "Abuja-Kaduna Highway": CollaboratorUnavailable("timeout"),
            "Kaduna-Kano Expressway": incidents(make_article, "Zaria", 2),
        }))
        coordinator = make_coordinator(search, loader=bundled_loader)

        result = await coordinator.fetch_route_reports(["fct", "kaduna", "kano"])

        assert [s.incident_count for s in result.segments] == [0, 2]
        assert "abuja-kaduna-highway" in result.error
        key = keys.route_segments_key(["abuja-kaduna-highway", "kaduna-kano-expressway"])
        assert await cache.get(key) == (None, False)

    @pytest.mark.asyncio
    async def test_all_segments_failed_uses_stale(self, make_coordinator, fake_search, place_responder,
                                                  make_article, bundled_loader, clock):
        search = fake_search(place_responder({"Abuja-Kaduna Highway": incidents(make_article, "Katari", 2)}))
        coordinator = make_coordinator(search, loader=bundled_loader)
        await coordinator.fetch_route_reports(["fct", "kaduna"])

        clock.advance(2 * 3600)
        search.responder = lambda q: CollaboratorUnavailable("down")
        result = await coordinator.fetch_route_reports(["fct", "kaduna"])

        assert result.stale is True and result.cached is True
        assert result.total_incidents == 2

    @pytest.mark.asyncio
    async def test_segment_refresh_with_partial_failure_keeps_fallback(self, make_coordinator, fake_search,
                                                                       place_responder, make_article,
                                                                       bundled_loader):
        search = fake_search(place_responder({
            "Abuja-Kaduna Highway": incidents(make_article, "Katari", 2),
            "Kaduna-Kano Expressway": incidents(make_article, "Zaria", 1),
        }))
        coordinator = make_coordinator(search, loader=bundled_loader)
        await coordinator.fetch_route_reports(["fct", "kaduna", "kano"])

        search.responder = place_responder({
            "Abuja-Kaduna Highway": CollaboratorUnavailable("timeout"),
            "Kaduna-Kano Expressway": incidents(make_article, "Zaria", 2, start=5),
        })
        refreshed = await coordinator.fetch_route_reports(["fct", "kaduna", "kano"], refresh=True)
        assert refreshed.stale is False
        assert [s.incident_count for s in refreshed.segments] == [0, 2]

        search.responder = lambda q: CollaboratorUnavailable("down")
        later = await coordinator.fetch_route_reports(["fct", "kaduna", "kano"])
        assert later.stale is True and later.cached is True
        assert later.total_incidents == 3

    @pytest.mark.asyncio
    async def test_state_refresh_during_outage(self, make_coordinator, fake_search, make_article, line_loader):
        search = fake_search(lambda q: incidents(make_article, "Kwara", 4))
        coordinator = make_coordinator(search, loader=line_loader)
        first = await coordinator.fetch_route_reports(["kwara", "kaduna"])

        search.responder = lambda q: CollaboratorUnavailable("down")
        result = await coordinator.fetch_route_reports(["kwara", "kaduna"], refresh=True)

        assert result.cached is True and result.stale is True
        assert result.error.startswith("collaborator_unavailable")
        assert result.total_incidents == first.total_incidents == 4

    @pytest.mark.asyncio
    async def test_cancel_between_segments(self, make_coordinator, fake_search, make_article, bundled_loader, cache):
        cancel = asyncio.Event()

        def respond(query):
            cancel.set()
            return incidents(make_article, "Katari", 2)

        search = fake_search(respond)
        coordinator = make_coordinator(search, loader=bundled_loader)

        result = await coordinator.fetch_route_reports(["fct", "kaduna", "kano"], cancel=cancel)

        assert result.partial is True
        assert len(result.segments) == 1
        assert len(search.calls) == 1
        key = keys.route_segments_key(["abuja-kaduna-highway", "kaduna-kano-expressway"])
        assert await cache.get(key) == (None, False)

    @pytest.mark.asyncio
    async def test_cancel_interrupts_pending_search(self, make_coordinator, bundled_loader):
        class HangingSearch:
            async def search(self, query, timespan, max_results):
                await asyncio.sleep(3600)
                return []

        cancel = asyncio.Event()
        coordinator = make_coordinator(HangingSearch(), loader=bundled_loader)
        asyncio.get_running_loop().call_later(0.01, cancel.set)

        result = await asyncio.wait_for(
            coordinator.fetch_route_reports(["fct", "kaduna"], cancel=cancel), timeout=5
        )

        assert result.partial is True
        assert result.segments == []

    @pytest.mark.asyncio
    async def test_state_fallback_without_corridors(self, make_coordinator, fake_search, make_article, line_loader):
        search = fake_search(lambda q: incidents(make_article, "Kwara", 12))
        coordinator = make_coordinator(search, loader=line_loader)

        result = await coordinator.fetch_route_reports(["kwara", "kaduna"], risk_tier="HIGH")

        assert len(search.calls) == 1
        assert search.queries[0].startswith("(Kwara OR Kaduna) Nigeria")
        assert search.calls[0][1:] == ("14d", 30)
        [segment] = result.segments
        assert segment.segment_id == "states-kaduna-kwara"
        assert segment.name == "2 states along route"
        assert segment.incident_count == 10
        assert result.total_incidents == 10

    @pytest.mark.asyncio
    async def test_state_fallback_failure(self, make_coordinator, fake_search, line_loader):
        search = fake_search(lambda q: CollaboratorUnavailable("down"))
        coordinator = make_coordinator(search, loader=line_loader)

        result = await coordinator.fetch_route_reports(["kwara"])

        assert result.segments == []
        assert result.error.startswith("collaborator_unavailable")

    @pytest.mark.asyncio
    async def test_empty_route(self, make_coordinator, fake_search):
        search = fake_search(lambda q: [])
        result = await make_coordinator(search).fetch_route_reports([])
        assert result.segments == [] and result.total_incidents == 0
        assert search.calls == []
