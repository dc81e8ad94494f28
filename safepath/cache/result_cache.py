"""
TTL result cache for SafePath.

Payloads are stored on any KVStorePort as a JSON envelope carrying the
write time. Freshness is judged from that timestamp, not from the store's
own expiry: the store keeps entries for a longer retention window so a
stale payload can still back a failed live fetch.
"""

import json
import time
from typing import Any, Callable, Dict, Optional, Tuple
from safepath.observability import metrics
from safepath.observability.logging_setup import get_logger
from safepath.ports.kvstore import KVStorePort

log = get_logger("safepath.cache")

# (payload, written_at)
CacheEntry = Tuple[Dict[str, Any], float]


class ResultCache:
    """Get/set/invalidate with a hard freshness TTL."""

    def __init__(self,
                 store: KVStorePort,
                 ttl_sec: int = 3600,
                 retention_sec: int = 86400,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            store: backing key-value store
            ttl_sec: age after which an entry is no longer fresh
            retention_sec: how long entries stay available as fallback
            clock: time source (seconds since epoch)
        """
        self.store = store
        self.ttl_sec = ttl_sec
        self.retention_sec = max(retention_sec, ttl_sec)
        self._clock = clock

    async def _read(self, key: str) -> Optional[CacheEntry]:
        raw = await self.store.get(key)
        if raw is None:
            return None
        try:
            envelope = json.loads(raw)
            return envelope["payload"], float(envelope["written_at"])
        except (ValueError, KeyError, TypeError):
            log.warning(f"corrupt cache entry dropped key:{key}")
            await self.store.delete(key)
            return None

    async def get(self, key: str) -> Tuple[Optional[Dict[str, Any]], bool]:
        """
        Reads an entry.

        Returns:
            (payload, is_fresh); (None, False) when absent. An entry strictly
            older than the TTL comes back with is_fresh=False.
        """
        entry = await self._read(key)
        if entry is None:
            metrics.cache_lookups.labels(result="miss").inc()
            return None, False

        payload, written_at = entry
        fresh = self._clock() - written_at <= self.ttl_sec
        metrics.cache_lookups.labels(result="fresh" if fresh else "stale").inc()
        return payload, fresh

    async def set(self, key: str, payload: Dict[str, Any]) -> None:
        envelope = {"written_at": self._clock(), "payload": payload}
        await self.store.set(key, json.dumps(envelope, ensure_ascii=False), ttl_sec=self.retention_sec)

    async def invalidate(self, key: str) -> Optional[CacheEntry]:
        """
        Deletes an entry.

        Returns:
            the removed (payload, written_at), or None if there was none
        """
        entry = await self._read(key)
        await self.store.delete(key)
        log.debug(f"cache invalidated key:{key}")
        return entry

    async def keep_stale(self, key: str, payload: Dict[str, Any], written_at: float) -> None:
        """
        Re-stores an invalidated payload as fallback only.

        The entry is aged past the TTL so it never reads as fresh again, and
        it still expires at the end of its original retention window.
        """
        now = self._clock()
        age = max(now - written_at, self.ttl_sec + 1)
        remaining = self.retention_sec - age
        if remaining <= 0:
            return
        envelope = {"written_at": now - age, "payload": payload}
        await self.store.set(key, json.dumps(envelope, ensure_ascii=False), ttl_sec=max(1, int(remaining)))
