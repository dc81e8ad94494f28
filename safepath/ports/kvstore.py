"""
Storage port behind the result cache.

Values are opaque strings (the cache writes JSON envelopes). Expiry is the
store's job; freshness is judged by the cache from the envelope timestamp.
"""

from typing import Protocol, Optional

class KVStorePort(Protocol):
    """Async string store with optional per-key expiry.

    Implementations treat storage failures as a miss or a no-op; none of
    these calls raise for backend errors.
    """

    async def get(self, key: str) -> Optional[str]:
        """The stored value, or None when absent, expired or unreadable."""
        ...

    async def set(self, key: str, value: str, ttl_sec: Optional[int] = None) -> None:
        """Writes or replaces `key`; `ttl_sec=None` keeps it until deleted."""
        ...

    async def delete(self, key: str) -> None:
        """Removes `key`; deleting a missing key is not an error."""
        ...
