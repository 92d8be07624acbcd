"""Unit tests for the circuit breaker."""

from __future__ import annotations

import asyncio

import pytest

from wp_indexer.utils.circuit_breaker import CircuitBreaker, CircuitState
from wp_indexer.utils.errors import CircuitOpenError, TransientError


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


async def _fail() -> None:
    raise TransientError("upstream down", provider_name="test")


async def _succeed() -> str:
    return "ok"


async def _trip(breaker: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        with pytest.raises(TransientError):
            await breaker.call(_fail)


class TestCircuitBreaker:
    @pytest.fixture()
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture()
    def breaker(self, clock: FakeClock) -> CircuitBreaker:
        return CircuitBreaker(failure_threshold=3, reset_timeout=60.0, name="test", clock=clock)

    @pytest.mark.asyncio
    async def test_closed_passes_calls_through(self, breaker: CircuitBreaker) -> None:
        assert await breaker.call(_succeed) == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker, 3)
        assert breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_open_rejects_without_calling(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker, 3)
        calls = 0

        async def _counted() -> str:
            nonlocal calls
            calls += 1
            return "ok"

        with pytest.raises(CircuitOpenError):
            await breaker.call(_counted)
        assert calls == 0

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker, 2)
        await breaker.call(_succeed)
        await _trip(breaker, 2)
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 2

    @pytest.mark.asyncio
    async def test_half_open_after_timeout(
        self, breaker: CircuitBreaker, clock: FakeClock
    ) -> None:
        await _trip(breaker, 3)
        clock.now = 59.9
        assert breaker.state == CircuitState.OPEN
        clock.now = 60.0
        assert breaker.state == CircuitState.HALF_OPEN

    @pytest.mark.asyncio
    async def test_trial_success_closes(self, breaker: CircuitBreaker, clock: FakeClock) -> None:
        await _trip(breaker, 3)
        clock.now = 61.0
        assert await breaker.call(_succeed) == "ok"
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_trial_failure_reopens(self, breaker: CircuitBreaker, clock: FakeClock) -> None:
        await _trip(breaker, 3)
        clock.now = 61.0
        await _trip(breaker, 1)
        assert breaker.state == CircuitState.OPEN
        clock.now = 100.0
        assert breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_half_open_allows_single_trial(
        self, breaker: CircuitBreaker, clock: FakeClock
    ) -> None:
        await _trip(breaker, 3)
        clock.now = 61.0
        release = asyncio.Event()

        async def _slow() -> str:
            await release.wait()
            return "ok"

        trial = asyncio.create_task(breaker.call(_slow))
        await asyncio.sleep(0)

        with pytest.raises(CircuitOpenError):
            await breaker.call(_succeed)

        release.set()
        assert await trial == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_reset(self, breaker: CircuitBreaker) -> None:
        await _trip(breaker, 3)
        breaker.reset()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    def test_invalid_threshold(self) -> None:
        with pytest.raises(ValueError):
            CircuitBreaker(failure_threshold=0)
