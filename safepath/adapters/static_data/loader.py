"""
Static region data loader for SafePath.

Reads the routing graph, region risks, dangerous corridors and tier
recommendations from JSON files once, and hands out an immutable
RegionData snapshot.
"""

import json
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Optional, Tuple
from pydantic import ValidationError
from safepath.core.errors import DataLoadError
from safepath.core.formatting import display_name
from safepath.core.models import DangerousCorridor, Recommendation, Region, RegionData
from safepath.observability.logging_setup import get_logger

log = get_logger("safepath.data")

ROUTING_FILE = "routing.json"
RISKS_FILE = "state-risks.json"
CORRIDORS_FILE = "dangerous-roads-lookup.json"
RECOMMENDATIONS_FILE = "safety-recommendations.json"


def _read_json(path: Path) -> Any:
    try:
        with path.open(encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise DataLoadError(f"cannot read {path}: {e}") from e


def _split_corridor_key(key: str, known: set) -> Tuple[str, str]:
    """'kaduna_abuja' -> ('kaduna', 'abuja'); ids may themselves contain '_'."""
    parts = key.split("_")
    for i in range(1, len(parts)):
        a, b = "_".join(parts[:i]), "_".join(parts[i:])
        if a in known and b in known:
            return a, b
    if len(parts) != 2:
        raise DataLoadError(f"ambiguous corridor key: {key!r}")
    return parts[0], parts[1]


def build_region_data(routing: Dict[str, Any],
                      risks: Dict[str, Any],
                      corridors: Dict[str, Any],
                      recommendations: Dict[str, Any]) -> RegionData:
    """
    Validates raw tables and freezes them into RegionData.

    Neighbour lists keep file order; BFS tie-breaks depend on it.
    """
    adjacency = {
        region_id: tuple(neighbours)
        for region_id, neighbours in (routing.get("state_adjacency") or {}).items()
    }
    cities = dict(routing.get("cities_to_states") or {})

    known = set(adjacency)
    for neighbours in adjacency.values():
        known.update(neighbours)

    try:
        regions = {}
        for region_id, entry in risks.items():
            regions[region_id] = Region(
                id=region_id,
                name=entry.get("name") or display_name(region_id),
                parent_state=entry.get("parent_state"),
                tier=entry.get("risk_level", "MODERATE"),
                score=entry.get("risk_score"),
            )

        corridor_map = {}
        for key, entry in corridors.items():
            a, b = _split_corridor_key(key, known)
            corridor_map[(a, b)] = DangerousCorridor(
                from_id=a,
                to_id=b,
                name=entry["name"],
                tier=entry["risk"],
                danger_zones=tuple(entry.get("danger_zones") or ()),
                alternative=entry.get("alternative") or "",
            )

        recs = {
            tier: Recommendation(
                summary=entry.get("summary") or "",
                recommendations=tuple(entry.get("recommendations") or ()),
                travel_advisory=entry.get("travel_advisory") or "",
            )
            for tier, entry in recommendations.items()
        }
    except (ValidationError, KeyError, AttributeError) as e:
        raise DataLoadError(f"invalid region data: {e}") from e

    return RegionData(
        adjacency=MappingProxyType(adjacency),
        cities=MappingProxyType(cities),
        regions=MappingProxyType(regions),
        corridors=MappingProxyType(corridor_map),
        recommendations=MappingProxyType(recs),
    )


class RegionDataLoader:
    """Loads the static tables from a directory exactly once."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)
        self._data: Optional[RegionData] = None
        self._lock = threading.Lock()

    def load(self) -> RegionData:
        if self._data is not None:
            return self._data
        with self._lock:
            if self._data is None:
                self._data = build_region_data(
                    _read_json(self.data_dir / ROUTING_FILE),
                    _read_json(self.data_dir / RISKS_FILE),
                    _read_json(self.data_dir / CORRIDORS_FILE),
                    _read_json(self.data_dir / RECOMMENDATIONS_FILE),
                )
                log.info(
                    f"region data loaded dir:{self.data_dir} "
                    f"regions:{len(self._data.adjacency)} corridors:{len(self._data.corridors)}"
                )
        return self._data


class StaticRegionDataLoader:
    """Loader over an already-built RegionData (tests, embedding)."""

    def __init__(self, data: RegionData):
        self._data = data

    def load(self) -> RegionData:
        return self._data
