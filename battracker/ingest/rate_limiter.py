"""Per-source request spacing with fixed and jittered minimum intervals."""

import asyncio
import logging
import random
import time
from collections import defaultdict
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Serializes calls per source and enforces a minimum gap between them.

    The clock and sleep functions are injectable so tests can drive time.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.clock = clock
        self.sleep = sleep
        self.locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.last_request: dict[str, float] = {}

    async def acquire(self, domain: str, min_interval: float) -> float:
        """
        Wait until at least ``min_interval`` seconds have passed since the
        previous call for this domain.

        Args:
            domain: Source name (e.g. 'amazon')
            min_interval: Minimum seconds between calls

        Returns:
            Seconds waited
        """
        return await self.acquire_with_interval(domain, min_interval, min_interval)

    async def acquire_with_interval(
        self,
        domain: str,
        min_interval: float,
        max_interval: float,
    ) -> float:
        """
        Acquire with a random interval drawn from [min_interval, max_interval].

        Returns:
            Seconds waited
        """
        async with self.locks[domain]:
            now = self.clock()
            last_time = self.last_request.get(domain)

            wait_needed = 0.0
            if last_time is not None:
                interval = (
                    random.uniform(min_interval, max_interval)
                    if max_interval > min_interval
                    else min_interval
                )
                wait_needed = max(0.0, interval - (now - last_time))

            if wait_needed > 0:
                logger.debug(f"Rate limit for {domain}: waiting {wait_needed:.2f}s")
                await self.sleep(wait_needed)

            self.last_request[domain] = self.clock()
            return wait_needed

    async def pause(self, seconds: float) -> None:
        """Unconditional politeness pause."""
        if seconds > 0:
            await self.sleep(seconds)


# Global rate limiter instance
rate_limiter = RateLimiter()
