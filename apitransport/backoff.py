"""
Randomized exponential backoff ("full jitter") used between retry attempts
"""

import asyncio
import random
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

# Past this exponent the ceiling is always the cap
_MAX_EXPONENT = 62


class BackoffPolicy:
    """Samples retry delays uniformly from [0, min(cap, base * 2**attempt))."""

    def __init__(
        self,
        base_delay: float = 0.5,
        max_delay: float = 5.0,
        rng: Optional[random.Random] = None,
        sleep: Callable = asyncio.sleep,
    ):
        if base_delay < 0 or max_delay < 0:
            raise ValueError("Backoff delays must be non-negative")
        self.base_delay = base_delay
        self.max_delay = max_delay
        # random.Random methods are safe to call from concurrent tasks
        self._rng = rng or random.Random()
        self._sleep = sleep

    def ceiling(self, attempt: int) -> float:
        """Upper bound (exclusive) of the delay for a given attempt index."""
        attempt = max(0, attempt)
        if attempt > _MAX_EXPONENT:
            return self.max_delay
        return min(self.max_delay, self.base_delay * (2 ** attempt))

    def compute_delay(self, attempt: int) -> float:
        """Pick a delay in seconds for the retry following `attempt` retries."""
        return self._rng.random() * self.ceiling(attempt)

    async def wait(self, attempt: int) -> float:
        """Suspend the calling task for a full-jitter delay and return it."""
        delay = self.compute_delay(attempt)
        logger.debug("backoff_wait", attempt=attempt, delay_seconds=round(delay, 3))
        await self._sleep(delay)
        return delay
