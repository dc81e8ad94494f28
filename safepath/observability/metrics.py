"""
Metrics definitions for SafePath.

This module defines Prometheus metrics for monitoring route checks,
news searches, classification and the result cache.
"""

from prometheus_client import Counter, Histogram

route_checks = Counter(
    "route_checks_total",
    "Route safety checks by outcome",
    ["outcome"]
)

search_requests = Counter(
    "search_requests_total",
    "News search requests by geography level and outcome",
    ["level", "outcome"]
)

articles_classified = Counter(
    "articles_classified_total",
    "Headlines scored by the incident classifier",
    ["accepted"]
)

cache_lookups = Counter(
    "cache_lookups_total",
    "Result cache lookups",
    ["result"]
)

retrieval_level = Counter(
    "retrieval_level_total",
    "Geography level finally used for area retrieval",
    ["level"]
)

search_seconds = Histogram(
    "search_duration_seconds",
    "Latency of a single news search request",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)
