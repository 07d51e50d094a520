"""Token bucket rate limiter for outbound API calls.

Each adapter instance owns one bucket. The bucket holds at most ``capacity``
tokens and refills continuously at ``refill_rate`` tokens per second. Every
call debits one token; when the bucket is empty the caller sleeps for exactly
the deficit before proceeding.

Example:
    >>> bucket = TokenBucket(capacity=5, refill_rate=5.0)
    >>> await bucket.acquire()
"""

import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TokenBucket:
    """Async token bucket.

    Attributes:
        capacity: Maximum number of stored tokens (burst size).
        refill_rate: Tokens added per second.
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be positive")

        self.capacity = float(capacity)
        self.refill_rate = float(refill_rate)
        self._clock = clock or time.monotonic
        self._tokens = self.capacity
        self._last_refill = self._clock()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        """Tokens currently available, after refilling."""
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
            self._last_refill = now

    async def acquire(self) -> None:
        """Take one token, waiting for the refill if the bucket is empty."""
        async with self._lock:
            self._refill()
            while self._tokens < 1:
                wait = (1 - self._tokens) / self.refill_rate
                logger.debug("Rate limit reached, waiting %.3fs", wait)
                await asyncio.sleep(wait)
                self._refill()
            self._tokens -= 1
