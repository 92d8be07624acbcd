"""Retry with exponential backoff and jitter.

Only failures classified as transient by :func:`is_retryable` are
repeated.  A :class:`CircuitOpenError` is handled separately: it does not
consume the retry budget, and is retried once after a cooldown so that a
breaker which has just opened gets a chance to reach half-open.

The operations wrapped here (embedding requests, vector upserts keyed by
deterministic ids) are safe to repeat.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

import httpx

from wp_indexer.utils.errors import CircuitOpenError, PermanentError, TransientError
from wp_indexer.utils.logging import get_logger

_T = TypeVar("_T")

_logger = get_logger(__name__)

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_BASE_DELAY = 1.0
_DEFAULT_MAX_DELAY = 60.0
_DEFAULT_JITTER = 0.25
_DEFAULT_CIRCUIT_COOLDOWN = 5.0


def is_retryable(exc: BaseException) -> bool:
    """Return True when *exc* describes a failure worth repeating.

    Rate limiting (429), server errors (>= 500), and network resets or
    timeouts are retryable.  Other client errors are not.
    """
    if isinstance(exc, TransientError):
        return True
    if isinstance(exc, (PermanentError, CircuitOpenError)):
        return False
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status == 429 or status >= 500
    return False


class RetryPolicy:
    """Exponential-backoff executor for a fallible async operation.

    The delay before retry ``n`` (0-based) is
    ``min(base_delay * 2**n, max_delay)`` scaled by a random factor in
    ``[1 - jitter, 1 + jitter]``.  ``max_retries`` counts repeats, so an
    operation is attempted at most ``max_retries + 1`` times.
    """

    def __init__(
        self,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        base_delay: float = _DEFAULT_BASE_DELAY,
        max_delay: float = _DEFAULT_MAX_DELAY,
        jitter: float = _DEFAULT_JITTER,
        circuit_cooldown: float = _DEFAULT_CIRCUIT_COOLDOWN,
        name: str = "default",
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._jitter = jitter
        self._circuit_cooldown = circuit_cooldown
        self._name = name

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds to wait after the failed *attempt* (0-based)."""
        delay = min(self._base_delay * (2 ** attempt), self._max_delay)
        if self._jitter:
            delay *= 1 + random.uniform(-self._jitter, self._jitter)
        return max(delay, 0.0)

    async def run(self, operation: Callable[[], Awaitable[_T]]) -> _T:
        """Invoke *operation* until it succeeds or the failure is final."""
        attempt = 0
        circuit_retried = False
        while True:
            try:
                return await operation()
            except CircuitOpenError:
                if circuit_retried:
                    raise
                circuit_retried = True
                _logger.warning(
                    "retry_circuit_open",
                    operation=self._name,
                    cooldown_s=self._circuit_cooldown,
                )
                await asyncio.sleep(self._circuit_cooldown)
            except Exception as exc:
                if not is_retryable(exc) or attempt >= self._max_retries:
                    raise
                delay = self.backoff_delay(attempt)
                attempt += 1
                _logger.warning(
                    "retry_scheduled",
                    operation=self._name,
                    attempt=attempt,
                    max_retries=self._max_retries,
                    delay_s=round(delay, 3),
                    error=str(exc),
                )
                await asyncio.sleep(delay)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[_T]],
    max_retries: int = _DEFAULT_MAX_RETRIES,
    base_delay: float = _DEFAULT_BASE_DELAY,
    max_delay: float = _DEFAULT_MAX_DELAY,
) -> _T:
    """One-off convenience wrapper around :class:`RetryPolicy`."""
    policy = RetryPolicy(max_retries=max_retries, base_delay=base_delay, max_delay=max_delay)
    return await policy.run(operation)
