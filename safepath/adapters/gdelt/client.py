"""
GDELT DOC API client for SafePath.

This module implements NewsSearchPort against the GDELT 2.0 DOC API
(article-list mode) with a bounded timeout and retry.
"""

import aiohttp
import asyncio
import time
from typing import Any, List, Optional
from urllib.parse import urlparse
from safepath.common.retry import retry_with_backoff
from safepath.core.errors import CollaboratorUnavailable
from safepath.core.models import RawArticle
from safepath.observability import metrics
from safepath.observability.logging_setup import get_logger

log = get_logger("safepath.gdelt")


def _domain_of(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host[4:] if host.startswith("www.") else host


def parse_articles(payload: Any, max_results: int) -> List[RawArticle]:
    """
    Converts a DOC API response body into articles.

    Entries without title, url or seendate are dropped.

    Args:
        payload: decoded JSON body
        max_results: upper bound on returned articles

    Returns:
        articles in response order
    """
    if not isinstance(payload, dict):
        return []
    raw = payload.get("articles")
    if not isinstance(raw, list):
        return []

    articles: List[RawArticle] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        title, url, seen = item.get("title"), item.get("url"), item.get("seendate")
        if not (title and url and seen):
            continue
        articles.append(RawArticle(
            title=str(title).strip(),
            url=str(url),
            seen_date=str(seen),
            domain=item.get("domain") or _domain_of(str(url)),
        ))
        if len(articles) >= max_results:
            break
    return articles


class GdeltSearchClient:
    """GDELT DOC API client"""

    def __init__(self,
                 base_url: str,
                 timeout: float = 10.0,
                 max_retries: int = 1,
                 backoff_initial: float = 0.5,
                 backoff_max: float = 5.0,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            base_url: DOC API endpoint
            timeout: total timeout per request (seconds)
            max_retries: retries after the first attempt
            backoff_initial: first retry delay (seconds)
            backoff_max: retry delay ceiling (seconds)
            session: externally managed session (optional)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.session = session
        self._owns_session = session is None

    async def open(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True

    async def close(self) -> None:
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def search(self, query: str, timespan: str, max_results: int) -> List[RawArticle]:
        """
        Runs one article-list query.

        Raises:
            CollaboratorUnavailable: network error, timeout or undecodable body
        """
        if self.session is None:
            raise RuntimeError("session not open; use 'async with' or call open()")

        params = {
            "query": query,
            "mode": "artlist",
            "maxrecords": str(max_results),
            "format": "json",
            "timespan": timespan,
        }

        async def _request():
            async with self.session.get(
                self.base_url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                response.raise_for_status()
                return await response.json(content_type=None)

        started = time.perf_counter()
        try:
            payload = await retry_with_backoff(
                _request,
                max_retries=self.max_retries,
                base_delay=self.backoff_initial,
                max_delay=self.backoff_max,
                retry_on=(aiohttp.ClientError, asyncio.TimeoutError),
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            log.warning(f"GDELT search failed query:{query!r} error:{e!r}")
            raise CollaboratorUnavailable(f"news search failed: {e!r}") from e
        finally:
            metrics.search_seconds.observe(time.perf_counter() - started)

        articles = parse_articles(payload, max_results)
        log.debug(f"GDELT search ok count:{len(articles)} timespan:{timespan}")
        return articles
