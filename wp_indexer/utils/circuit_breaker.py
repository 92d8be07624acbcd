"""Circuit breaker protecting a downstream dependency.

State machine::

    CLOSED --(failure_threshold consecutive failures)--> OPEN
    OPEN   --(reset_timeout elapsed)-------------------> HALF_OPEN
    HALF_OPEN --(trial call succeeds)------------------> CLOSED
    HALF_OPEN --(trial call fails)---------------------> OPEN

While open, every call fails immediately with :class:`CircuitOpenError`
without invoking the wrapped operation.  In half-open state exactly one
trial call is let through; concurrent callers arriving while the trial is
in flight are rejected as if the breaker were still open.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from wp_indexer.utils.errors import CircuitOpenError
from wp_indexer.utils.logging import get_logger

_T = TypeVar("_T")

_logger = get_logger(__name__)


class CircuitState(str, Enum):  # noqa: UP042
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Failure-threshold breaker around async operations."""

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self._failure_threshold = failure_threshold
        self._reset_timeout = reset_timeout
        self._name = name
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        """Current state, promoting OPEN to HALF_OPEN once the timeout elapsed."""
        if (
            self._state is CircuitState.OPEN
            and self._clock() - self._opened_at >= self._reset_timeout
        ):
            self._transition(CircuitState.HALF_OPEN)
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    async def call(self, operation: Callable[[], Awaitable[_T]]) -> _T:
        """Invoke *operation* through the breaker.

        Raises
        ------
        CircuitOpenError
            If the breaker is open, or half-open with a trial already running.
        """
        state = self.state
        if state is CircuitState.OPEN:
            raise CircuitOpenError(
                f"Circuit '{self._name}' is open; retry after {self._reset_timeout}s",
                provider_name=self._name,
            )
        if state is CircuitState.HALF_OPEN:
            if self._trial_in_flight:
                raise CircuitOpenError(
                    f"Circuit '{self._name}' is half-open; trial call in progress",
                    provider_name=self._name,
                )
            self._trial_in_flight = True

        is_trial = state is CircuitState.HALF_OPEN
        try:
            result = await operation()
        except Exception:
            self._on_failure(is_trial)
            raise
        finally:
            if is_trial:
                self._trial_in_flight = False

        self._on_success()
        return result

    def reset(self) -> None:
        self._failure_count = 0
        self._trial_in_flight = False
        self._transition(CircuitState.CLOSED)

    # ------------------------------------------------------------------
    # Internal state transitions
    # ------------------------------------------------------------------

    def _on_success(self) -> None:
        if self._state is not CircuitState.CLOSED:
            _logger.info("circuit_closed", circuit=self._name)
        self._failure_count = 0
        self._transition(CircuitState.CLOSED)

    def _on_failure(self, is_trial: bool) -> None:
        self._failure_count += 1
        if is_trial or self._failure_count >= self._failure_threshold:
            self._opened_at = self._clock()
            if self._state is not CircuitState.OPEN:
                _logger.warning(
                    "circuit_opened",
                    circuit=self._name,
                    failures=self._failure_count,
                    reset_timeout=self._reset_timeout,
                )
            self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        if new_state is not self._state:
            _logger.debug(
                "circuit_state_change",
                circuit=self._name,
                from_state=self._state.value,
                to_state=new_state.value,
            )
            self._state = new_state
