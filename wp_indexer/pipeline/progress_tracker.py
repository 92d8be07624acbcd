"""Run progress tracking with listener notification.

The tracker is the single owner of a run's mutable counters and phase.
Callers only ever see :class:`~wp_indexer.models.run.RunProgress`
snapshots, so nothing outside the tracker can change the counts.

Phase changes are broadcast to registered listeners (Observer pattern);
the CLI uses this to print phase banners.  A listener that raises is
logged and skipped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from wp_indexer.models.run import TERMINAL_PHASES, RunPhase, RunProgress
from wp_indexer.utils.logging import get_logger


@dataclass
class _Counters:
    """Mutable run counters; never handed out."""

    total_documents: int = 0
    processed_documents: int = 0
    total_chunks: int = 0
    processed_chunks: int = 0
    error_count: int = 0


class RunProgressTracker:
    """Tracks one run's phase and counters."""

    def __init__(self) -> None:
        self._phase = RunPhase.IDLE
        self._counters = _Counters()
        self._listeners: list[Callable] = []
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def phase(self) -> RunPhase:
        return self._phase

    def snapshot(self) -> RunProgress:
        counters = self._counters
        return RunProgress(
            total_documents=counters.total_documents,
            processed_documents=counters.processed_documents,
            total_chunks=counters.total_chunks,
            processed_chunks=counters.processed_chunks,
            error_count=counters.error_count,
        )

    def reset(self) -> None:
        self._phase = RunPhase.IDLE
        self._counters = _Counters()

    async def set_phase(self, phase: RunPhase) -> None:
        """Move to *phase* and notify listeners."""
        previous = self._phase
        self._phase = phase
        self._logger.debug("run_phase_change", from_phase=previous.value, to_phase=phase.value)
        if phase in TERMINAL_PHASES:
            self._logger.info("run_finished", phase=phase.value, **self.snapshot().model_dump())
        await self._notify_listeners(phase)

    def set_total_documents(self, total: int) -> None:
        self._counters.total_documents = total

    def record_document(self, chunk_count: int) -> None:
        """Count a processed document and its upserted chunks."""
        self._counters.processed_documents += 1
        self._counters.total_chunks += chunk_count
        self._counters.processed_chunks += chunk_count

    def record_error(self) -> None:
        self._counters.error_count += 1

    def register_listener(self, callback: Callable) -> None:
        """Register a sync or async callable accepting ``(phase, progress)``."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unregister_listener(self, callback: Callable) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, phase: RunPhase) -> None:
        if not self._listeners:
            return
        progress = self.snapshot()
        for callback in list(self._listeners):
            try:
                result = callback(phase, progress)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    phase=phase.value,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
