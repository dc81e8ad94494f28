"""
Cache key derivation for SafePath.

Keys are deterministic functions of every query-distinguishing parameter.
Route keys sort their id lists so equivalent inputs in any order share
one entry.
"""

from typing import Iterable
from safepath.core.router import normalize_token

PREFIX = "live-reports"


def area_key(location_id: str, state: str) -> str:
    return f"{PREFIX}:area:{normalize_token(location_id)}:{normalize_token(state)}"


def route_segments_key(segment_ids: Iterable[str]) -> str:
    ids = sorted(normalize_token(s) for s in segment_ids)
    return f"{PREFIX}:route-roads:{','.join(ids)}"


def route_states_key(region_ids: Iterable[str]) -> str:
    ids = sorted(normalize_token(r) for r in region_ids)
    return f"{PREFIX}:route-states:{','.join(ids)}"


def route_check_key(from_token: str, to_token: str) -> str:
    return f"route-check:{normalize_token(from_token)}:{normalize_token(to_token)}"
