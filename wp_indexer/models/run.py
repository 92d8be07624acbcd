"""Run lifecycle models for the indexing pipeline.

The orchestrator advances a run through :class:`RunPhase` and returns
immutable snapshots (:class:`RunProgress`) to callers.  Errors are
recorded as :class:`RunError` entries rather than raised, so a failing
document never stops the rest of the batch.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from wp_indexer.models.vector import IndexStats


class RunPhase(str, Enum):  # noqa: UP042
    """Phases of an index run.

    IDLE → LOADING_SETTINGS → FETCHING → PROCESSING → REPORTING →
    SUCCEEDED | FAILED
    """

    IDLE = "IDLE"
    LOADING_SETTINGS = "LOADING_SETTINGS"
    FETCHING = "FETCHING"
    PROCESSING = "PROCESSING"
    REPORTING = "REPORTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


TERMINAL_PHASES = frozenset({RunPhase.SUCCEEDED, RunPhase.FAILED})


class RunProgress(BaseModel):
    """Snapshot of the run counters."""

    model_config = ConfigDict(frozen=True)

    total_documents: int = 0
    processed_documents: int = 0
    total_chunks: int = 0
    processed_chunks: int = 0
    error_count: int = 0


class RunError(BaseModel):
    """One failure recorded during a run.

    ``document_id`` is set for per-document failures and ``None`` for a
    fatal error that aborted the run.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    document_id: int | None = None
    fatal: bool = False
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


class RunResult(BaseModel):
    """Outcome of :meth:`IndexingPipeline.index`."""

    model_config = ConfigDict(frozen=True)

    success: bool
    stats: RunProgress
    errors: list[RunError] = Field(default_factory=list)
    store_stats: IndexStats | None = None
    elapsed_seconds: float = 0.0


class CleanResult(BaseModel):
    """Outcome of a reconciliation pass."""

    model_config = ConfigDict(frozen=True)

    skipped: bool = False
    live_document_count: int = 0
    stored_vector_count: int = 0
    orphaned_document_ids: list[int] = Field(default_factory=list)
    deleted_vector_count: int = 0


class DeleteAllResult(BaseModel):
    """Outcome of deleting every vector for the current domain."""

    model_config = ConfigDict(frozen=True)

    deleted_vector_count: int = 0
    before: IndexStats | None = None
    after: IndexStats | None = None
