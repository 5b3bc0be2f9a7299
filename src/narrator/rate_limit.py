"""
Fixed-interval gate for provider calls.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger("narrator")


class RateLimitGate:
    """
    Spaces call starts at least `min_interval` seconds apart and allows at
    most `max_concurrent` calls in flight. Use as `async with gate: ...`.
    """

    def __init__(
        self,
        min_interval: float = 0.1,
        max_concurrent: int = 1,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.min_interval = min_interval
        self.max_concurrent = max_concurrent
        self._clock = clock
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._next_slot: float | None = None
        self.calls = 0

    def _reserve_slot(self) -> float:
        """Claim the next start slot and return how long to wait for it."""
        now = self._clock()
        slot = now if self._next_slot is None else max(now, self._next_slot)
        self._next_slot = slot + self.min_interval
        return slot - now

    async def __aenter__(self) -> "RateLimitGate":
        await self._semaphore.acquire()
        wait = self._reserve_slot()
        if wait > 0:
            logger.debug(f"Rate gate: waiting {wait * 1000:.0f}ms before next request")
            try:
                await self._sleep(wait)
            except BaseException:
                self._semaphore.release()
                raise
        self.calls += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._semaphore.release()
