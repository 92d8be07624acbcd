"""Bounded-concurrency execution over a list of items.

:func:`run_bounded` is the single mechanism the indexer uses for
concurrent work: fetching paginated content, processing documents, and
embedding batch groups.

A fixed pool of worker tasks pulls ``(index, item)`` pairs from a shared
queue and writes each outcome into a preallocated, index-addressed slot.
Results therefore come back in input order regardless of completion
order, and one item's failure never cancels the others.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

import structlog

from wp_indexer.utils.logging import get_logger

_T = TypeVar("_T")
_R = TypeVar("_R")

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass(frozen=True)
class Outcome(Generic[_R]):
    """Result of one item: either ``value`` or ``error`` is meaningful."""

    value: _R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_bounded(
    items: Sequence[_T],
    worker: Callable[[_T], Awaitable[_R]],
    concurrency: int,
) -> list[Outcome[_R]]:
    """Run *worker* over *items* with at most *concurrency* calls in flight.

    Parameters
    ----------
    items:
        Inputs, processed in queue order.
    worker:
        Async callable applied to each item.
    concurrency:
        Maximum number of simultaneously running worker calls.

    Returns
    -------
    list[Outcome]
        One outcome per input item, in input order.  Exceptions raised by
        *worker* are captured in ``Outcome.error``; cancellation is not.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    if not items:
        return []

    results: list[Outcome[_R] | None] = [None] * len(items)
    queue: asyncio.Queue[tuple[int, _T]] = asyncio.Queue()
    for index, item in enumerate(items):
        queue.put_nowait((index, item))

    async def _worker_loop() -> None:
        while True:
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                results[index] = Outcome(value=await worker(item))
            except Exception as exc:
                _logger.debug("bounded_item_failed", index=index, error=str(exc))
                results[index] = Outcome(error=exc)

    pool_size = min(concurrency, len(items))
    await asyncio.gather(*(_worker_loop() for _ in range(pool_size)))

    return [outcome if outcome is not None else Outcome() for outcome in results]
