"""
Request throttling for SafePath.

Sequential searches against the news collaborator are spaced by a fixed
delay so a route with many segments does not burst the upstream rate limit.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional


class FixedDelayThrottle:
    """Guarantees at least `delay_sec` between consecutive acquisitions.

    The first acquisition never waits. Instances are request-scoped; one
    coordinator call owns one throttle.
    """

    def __init__(
        self,
        delay_sec: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delay_sec = delay_sec
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    async def acquire(self) -> None:
        if self._last is not None:
            wait = self.delay_sec - (self._clock() - self._last)
            if wait > 0:
                await self._sleep(wait)
        self._last = self._clock()
