"""
Test configuration and fixtures

This module provides shared pytest fixtures: small region datasets,
a scripted news-search fake and a controllable clock.
"""

import pytest
from typing import Callable, List, Optional, Tuple, Union
from safepath.adapters.static_data import RegionDataLoader, StaticRegionDataLoader, build_region_data
from safepath.core.models import RawArticle, RegionData
from safepath.settings import DEFAULT_DATA_DIR, Settings


LINE_ROUTING = {
    "state_adjacency": {
        "lagos": ["ogun"],
        "ogun": ["oyo"],
        "oyo": ["kwara"],
        "kwara": ["kaduna"],
    },
    "cities_to_states": {
        "ikeja": "lagos",
        "ibadan": "oyo",
        "zaria": "kaduna",
    },
}

LINE_RISKS = {
    "lagos": {"risk_level": "HIGH", "risk_score": 65},
    "ogun": {"risk_level": "MODERATE", "risk_score": 50},
    "oyo": {"risk_level": "MODERATE", "risk_score": 50},
    "kwara": {"risk_level": "MODERATE", "risk_score": 45},
    "kaduna": {"risk_level": "HIGH", "risk_score": 60},
}

LINE_CORRIDORS = {
    "ogun_oyo": {
        "name": "Lagos-Ibadan Expressway",
        "risk": "VERY HIGH",
        "danger_zones": ["Ogere", "Sagamu Interchange", "Ibafo"],
        "alternative": "Use the Lagos-Ibadan rail service.",
    },
}

RECOMMENDATIONS = {
    "EXTREME": {
        "summary": "Avoid road travel on this route.",
        "recommendations": ["Fly where possible"],
        "travel_advisory": "Move only in daylight and in convoy.",
    },
    "VERY HIGH": {
        "summary": "Travel only if essential.",
        "recommendations": ["Use rail or air alternatives", "Avoid night travel entirely"],
        "travel_advisory": "Leave early and avoid stopping between towns.",
    },
    "HIGH": {
        "summary": "Travel with heightened caution.",
        "recommendations": ["Check live reports before departure"],
        "travel_advisory": "Avoid isolated stretches after dark.",
    },
    "MODERATE": {
        "summary": "Normal precautions apply.",
        "recommendations": [],
        "travel_advisory": "",
    },
}


@pytest.fixture
def line_data() -> RegionData:
    """lagos -> ogun -> oyo -> kwara -> kaduna with one VERY HIGH corridor"""
    return build_region_data(LINE_ROUTING, LINE_RISKS, LINE_CORRIDORS, RECOMMENDATIONS)


@pytest.fixture
def line_loader(line_data) -> StaticRegionDataLoader:
    return StaticRegionDataLoader(line_data)


@pytest.fixture
def bundled_loader() -> RegionDataLoader:
    """Loader over the data files shipped with the package"""
    return RegionDataLoader(DEFAULT_DATA_DIR)


@pytest.fixture
def sample_settings() -> Settings:
    """Settings for tests"""
    settings = Settings()
    settings.observability.service_name = "test-service"
    settings.observability.build_version = "1.0.0"
    settings.observability.log_level = "INFO"
    settings.observability.http_port = 8080
    return settings


class FakeClock:
    """Manually advanced clock (seconds)"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def article(title: str, url: Optional[str] = None, seen_date: str = "20250101T120000Z",
            domain: str = "example.ng") -> RawArticle:
    """Builds a RawArticle with a URL derived from the title"""
    return RawArticle(
        title=title,
        url=url or "https://example.ng/" + "-".join(title.lower().split()),
        seen_date=seen_date,
        domain=domain,
    )


Response = Union[List[RawArticle], Exception]


class FakeSearch:
    """
    Scripted NewsSearchPort.

    `responder` maps a query string to a list of articles or an exception
    to raise; every call is recorded in `calls`.
    """

    def __init__(self, responder: Callable[[str], Response]):
        self.responder = responder
        self.calls: List[Tuple[str, str, int]] = []

    async def search(self, query: str, timespan: str, max_results: int) -> List[RawArticle]:
        self.calls.append((query, timespan, max_results))
        result = self.responder(query)
        if isinstance(result, Exception):
            raise result
        return list(result)[:max_results]

    @property
    def queries(self) -> List[str]:
        return [q for q, _, _ in self.calls]


def by_place(table: dict, default: Response = ()) -> Callable[[str], Response]:
    """Responder keyed on a place term contained in the query (first match wins)"""
    def respond(query: str) -> Response:
        for place, result in table.items():
            if place in query:
                return result
        return list(default)
    return respond


@pytest.fixture
def make_article():
    return article


@pytest.fixture
def fake_search():
    """FakeSearch factory: fake_search(responder)"""
    return FakeSearch


@pytest.fixture
def place_responder():
    return by_place
