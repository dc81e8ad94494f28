"""
In-memory key-value store for SafePath.

Process-local implementation of KVStorePort with lazy expiry; used in
development and tests, and whenever no persistent cache is configured.
Expired keys that are never read again are swept at most once per
`sweep_interval_sec`, and the store never holds more than `max_size` keys.
"""

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple

NEVER = float("inf")


class InMemoryKVStore:
    """Dict-backed store with per-key expiry and a size cap"""

    def __init__(self,
                 clock: Callable[[], float] = time.time,
                 max_size: int = 5000,
                 sweep_interval_sec: float = 60.0):
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._clock = clock
        self._lock = asyncio.Lock()
        self.max_size = max_size
        self.sweep_interval_sec = sweep_interval_sec
        self._last_sweep = clock()

    def _drop_expired(self, now: float) -> int:
        expired = [k for k, (_, exp) in self._data.items() if exp is not None and now > exp]
        for k in expired:
            del self._data[k]
        return len(expired)

    def _expiry_of(self, key: str) -> float:
        exp = self._data[key][1]
        return NEVER if exp is None else exp

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep < self.sweep_interval_sec:
            return
        self._last_sweep = now
        self._drop_expired(now)

    async def get(self, key: str) -> Optional[str]:
        now = self._clock()
        async with self._lock:
            self._maybe_sweep(now)
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and now > expires_at:
                del self._data[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl_sec: Optional[int] = None) -> None:
        now = self._clock()
        expires_at = now + ttl_sec if ttl_sec is not None else None
        async with self._lock:
            self._maybe_sweep(now)
            if key not in self._data and len(self._data) >= self.max_size:
                self._drop_expired(now)
                # still full: evict the earliest-expiring keys
                while len(self._data) >= self.max_size:
                    oldest = min(self._data, key=self._expiry_of)
                    del self._data[oldest]
            self._data[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def gc(self) -> int:
        """Drops expired keys; returns how many were removed."""
        now = self._clock()
        async with self._lock:
            self._last_sweep = now
            return self._drop_expired(now)

    def __len__(self) -> int:
        return len(self._data)
