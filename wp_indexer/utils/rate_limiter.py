"""Token-bucket rate limiter for outbound API calls.

Each downstream dependency (embedding API, vector store API) gets its own
limiter instance sized to that dependency's limits.  The bucket holds at
most ``capacity`` tokens and refills continuously at
``refill_rate_per_second``; bursts are therefore bounded by the capacity
while the long-run average is bounded by the refill rate.

The refill-check-deduct sequence runs under an :class:`asyncio.Lock` so
that two coroutines suspended at the same moment cannot both spend the
last token.  Waiting happens outside the lock.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

from wp_indexer.utils.logging import get_logger

_logger = get_logger(__name__)

# Upper bound on a single wait so a waiter re-checks the bucket regularly.
_POLL_INTERVAL_SECONDS = 0.1


class TokenBucketRateLimiter:
    """Bounds the request rate to one downstream dependency.

    Parameters
    ----------
    refill_rate_per_second:
        Tokens added per second; the sustained request rate.
    capacity:
        Maximum tokens the bucket can hold.  Defaults to one second's
        worth of refill, and never less than one token.
    name:
        Label used in log events.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        refill_rate_per_second: float,
        capacity: float | None = None,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if refill_rate_per_second <= 0:
            raise ValueError("refill_rate_per_second must be positive")
        self._rate = float(refill_rate_per_second)
        self._capacity = float(capacity) if capacity is not None else max(1.0, self._rate)
        if self._capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._name = name
        self._clock = clock
        self._tokens = self._capacity
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def refill_rate(self) -> float:
        return self._rate

    @property
    def available_tokens(self) -> float:
        """Current token count after applying any pending refill."""
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
            self._last_refill = now

    async def acquire(self, tokens: float = 1) -> None:
        """Wait until *tokens* are available, then deduct them.

        Raises
        ------
        ValueError
            If *tokens* exceeds the bucket capacity (it could never be granted).
        """
        if tokens > self._capacity:
            raise ValueError(
                f"Cannot acquire {tokens} tokens from a bucket of capacity {self._capacity}"
            )

        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return
                shortfall = tokens - self._tokens

            wait = min(shortfall / self._rate, _POLL_INTERVAL_SECONDS)
            _logger.debug("rate_limit_wait", limiter=self._name, wait_seconds=round(wait, 4))
            await asyncio.sleep(wait)
