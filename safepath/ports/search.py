"""
News search port interface.

This module defines the protocol for the third-party news search
collaborator used by the retrieval coordinator.
"""

from typing import List, Protocol
from safepath.core.models import RawArticle

class NewsSearchPort(Protocol):
    """Black-box text search over recent news."""

    async def search(self, query: str, timespan: str, max_results: int) -> List[RawArticle]:
        """
        Runs one search query.

        Args:
            query: search expression
            timespan: lookback window such as "7d"
            max_results: upper bound on returned articles

        Returns:
            articles in collaborator order; malformed entries already dropped

        Raises:
            CollaboratorUnavailable: network, timeout or parse failure
        """
        ...
