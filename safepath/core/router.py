"""
Region graph routing for SafePath.

Tokens are normalised and resolved to region ids through the city lookup,
then connected with an unweighted breadth-first search. Neighbours are
expanded in the order the static data lists them, so tie-breaks between
equal-length paths are stable across runs and interpreters.
"""

from collections import deque
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple
from safepath.core.errors import NoRoute, UnknownRegion
from safepath.core.models import RegionData


def normalize_token(token: str) -> str:
    """'Port Harcourt ' -> 'port-harcourt'."""
    return "-".join((token or "").strip().lower().split())


def known_regions(adjacency: Mapping[str, Sequence[str]]) -> Set[str]:
    """Every id that appears as a key or as a neighbour."""
    nodes = set(adjacency)
    for neighbours in adjacency.values():
        nodes.update(neighbours)
    return nodes


def resolve_region(token: str, data: RegionData, nodes: Optional[Set[str]] = None) -> str:
    """
    Resolves a city name or region id to a region id.

    Args:
        token: city name or region id as typed by the caller
        data: static region data
        nodes: precomputed node set (optional)

    Returns:
        region id

    Raises:
        UnknownRegion: the token maps to no graph node
    """
    norm = normalize_token(token)
    region_id = data.cities.get(norm, norm)
    if nodes is None:
        nodes = known_regions(data.adjacency)
    if region_id not in nodes:
        raise UnknownRegion(token)
    return region_id


def find_path(from_id: str, to_id: str, adjacency: Mapping[str, Sequence[str]]) -> Optional[List[str]]:
    """Shortest hop-count path from from_id to to_id, or None if disconnected."""
    if from_id == to_id:
        return [from_id]

    parents: Dict[str, Optional[str]] = {from_id: None}
    queue = deque([from_id])

    while queue:
        current = queue.popleft()
        for neighbour in adjacency.get(current, ()):
            if neighbour in parents:
                continue
            parents[neighbour] = current
            if neighbour == to_id:
                return _unwind(parents, neighbour)
            queue.append(neighbour)

    return None


def _unwind(parents: Dict[str, Optional[str]], node: str) -> List[str]:
    path = []
    cursor: Optional[str] = node
    while cursor is not None:
        path.append(cursor)
        cursor = parents[cursor]
    path.reverse()
    return path


def route(from_token: str, to_token: str, data: RegionData) -> Tuple[str, str, List[str]]:
    """
    Resolves both tokens and finds the shortest path between them.

    Returns:
        (from_id, to_id, path)

    Raises:
        UnknownRegion: either token is not a known region
        NoRoute: the regions are not connected
    """
    nodes = known_regions(data.adjacency)
    from_id = resolve_region(from_token, data, nodes)
    to_id = resolve_region(to_token, data, nodes)

    path = find_path(from_id, to_id, data.adjacency)
    if path is None:
        raise NoRoute(from_id, to_id)
    return from_id, to_id, path
