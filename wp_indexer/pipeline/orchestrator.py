"""Pipeline orchestrator for the WordPress indexer.

Composes the content fetcher, chunker, embedding generator and vector
store gateway into three operations:

* :meth:`IndexingPipeline.index` -- fetch every document, chunk, embed and
  upsert it; never raises, always returns a :class:`RunResult`;
* :meth:`IndexingPipeline.clean` -- delete vectors whose documents no
  longer exist at the source;
* :meth:`IndexingPipeline.delete_all` -- delete every vector of the domain.

Run phases::

    IDLE → LOADING_SETTINGS → FETCHING → PROCESSING → REPORTING →
    SUCCEEDED | FAILED

Settings are only known after LOADING_SETTINGS, so the run-scoped
components are built by an injected factory at that point.  The
composition root in :mod:`wp_indexer.main` provides the real factory;
tests provide fakes.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Protocol

import structlog

from wp_indexer.models.run import (
    CleanResult,
    DeleteAllResult,
    RunError,
    RunPhase,
    RunProgress,
    RunResult,
)
from wp_indexer.models.vector import Vector, VectorIdScheme
from wp_indexer.pipeline.progress_tracker import RunProgressTracker
from wp_indexer.utils.concurrency import run_bounded
from wp_indexer.utils.errors import ContentSourceError, VectorStoreError
from wp_indexer.utils.logging import get_logger
from wp_indexer.utils.text_normalizer import content_hash

if TYPE_CHECKING:
    from wp_indexer.models.document import Chunk, Document
    from wp_indexer.models.settings import IndexerSettings
    from wp_indexer.services.chunker import TextChunker
    from wp_indexer.services.content_fetcher import WordPressContentFetcher
    from wp_indexer.services.embedding_generator import EmbeddingGenerator
    from wp_indexer.services.vector_store_gateway import VectorStoreGateway

_DEFAULT_CONCURRENCY = 2
_ERROR_LOG_LIMIT = 10
_PROPAGATION_DELAY = 2.0


class SettingsSource(Protocol):
    async def load(self) -> IndexerSettings: ...

    def clear_cache(self) -> None: ...


@dataclass(frozen=True)
class PipelineComponents:
    """Run-scoped collaborators built once settings are known."""

    fetcher: WordPressContentFetcher
    chunker: TextChunker
    embedder: EmbeddingGenerator
    store: VectorStoreGateway
    id_scheme: VectorIdScheme


ComponentsFactory = Callable[["IndexerSettings", datetime | None], PipelineComponents]


class IndexingPipeline:
    """Runs index, clean and delete-all against one WordPress site.

    Parameters
    ----------
    settings_loader:
        Source of the run's :class:`IndexerSettings`.
    components_factory:
        Builds the run-scoped components from loaded settings.
    concurrency:
        Documents processed concurrently during an index run.
    propagation_delay:
        Seconds to wait after a delete-all before re-reading index stats.
    """

    def __init__(
        self,
        settings_loader: SettingsSource,
        components_factory: ComponentsFactory,
        concurrency: int = _DEFAULT_CONCURRENCY,
        propagation_delay: float = _PROPAGATION_DELAY,
    ) -> None:
        self._settings_loader = settings_loader
        self._components_factory = components_factory
        self._concurrency = concurrency
        self._propagation_delay = propagation_delay
        self._tracker = RunProgressTracker()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def tracker(self) -> RunProgressTracker:
        return self._tracker

    @property
    def phase(self) -> RunPhase:
        return self._tracker.phase

    def get_progress(self) -> RunProgress:
        """Snapshot of the current run's counters."""
        return self._tracker.snapshot()

    # ------------------------------------------------------------------
    # index
    # ------------------------------------------------------------------

    async def index(self, modified_after: datetime | None = None) -> RunResult:
        """Index every published document; never raises.

        Per-document failures are recorded and the remaining documents
        still run.  Any other failure ends the run with a single fatal
        error entry and whatever progress had accumulated.
        """
        started = time.monotonic()
        self._tracker.reset()
        errors: list[RunError] = []
        store_stats = None

        try:
            await self._tracker.set_phase(RunPhase.LOADING_SETTINGS)
            # Each index run picks up the current settings document.
            self._settings_loader.clear_cache()
            settings = await self._settings_loader.load()
            components = self._components_factory(settings, modified_after)
            await components.store.initialize()

            await self._tracker.set_phase(RunPhase.FETCHING)
            documents = [document async for document in components.fetcher.fetch_all()]
            self._tracker.set_total_documents(len(documents))
            self._logger.info("documents_fetched", count=len(documents))

            await self._tracker.set_phase(RunPhase.PROCESSING)

            async def _run_document(document: Document) -> int:
                try:
                    chunk_count = await self._process_document(document, components, settings)
                except Exception:
                    self._tracker.record_error()
                    raise
                self._tracker.record_document(chunk_count)
                return chunk_count

            outcomes = await run_bounded(documents, _run_document, self._concurrency)

            await self._tracker.set_phase(RunPhase.REPORTING)
            for document, outcome in zip(documents, outcomes):
                if not outcome.ok:
                    errors.append(
                        RunError(
                            document_id=document.id,
                            message=f"Failed to process document {document.id}: {outcome.error}",
                        )
                    )
            self._log_document_errors(errors)

            try:
                store_stats = await components.store.get_stats()
            except VectorStoreError as exc:
                self._logger.warning("final_stats_unavailable", error=str(exc))

        except Exception as exc:
            self._logger.error("index_run_failed", error=str(exc), phase=self._tracker.phase.value)
            errors.append(RunError(message=f"Fatal error: {exc}", fatal=True))

        success = not errors
        await self._tracker.set_phase(RunPhase.SUCCEEDED if success else RunPhase.FAILED)
        result = RunResult(
            success=success,
            stats=self._tracker.snapshot(),
            errors=errors,
            store_stats=store_stats,
            elapsed_seconds=round(time.monotonic() - started, 2),
        )
        self._logger.info(
            "index_run_complete",
            success=result.success,
            documents=result.stats.processed_documents,
            chunks=result.stats.processed_chunks,
            errors=result.stats.error_count,
            elapsed_s=result.elapsed_seconds,
        )
        return result

    async def _process_document(
        self,
        document: Document,
        components: PipelineComponents,
        settings: IndexerSettings,
    ) -> int:
        """Chunk, embed and upsert one document; returns its chunk count."""
        chunks = components.chunker.split(document.full_text)
        if not chunks:
            self._logger.debug("document_without_chunks", document_id=document.id)
            return 0

        embeddings = await components.embedder.embed_batch([chunk.text for chunk in chunks])
        if len(embeddings) != len(chunks):
            raise ValueError(
                f"received {len(embeddings)} embeddings for {len(chunks)} chunks"
            )

        vectors = build_vectors(document, chunks, embeddings, settings, components.id_scheme)
        await components.store.upsert(vectors)
        self._logger.debug(
            "document_indexed", document_id=document.id, chunks=len(chunks)
        )
        return len(chunks)

    def _log_document_errors(self, errors: list[RunError]) -> None:
        for error in errors[:_ERROR_LOG_LIMIT]:
            self._logger.warning(
                "document_failed", document_id=error.document_id, error=error.message
            )
        if len(errors) > _ERROR_LOG_LIMIT:
            self._logger.warning(
                "document_failures_truncated", shown=_ERROR_LOG_LIMIT, total=len(errors)
            )

    # ------------------------------------------------------------------
    # clean
    # ------------------------------------------------------------------

    async def clean(self) -> CleanResult:
        """Delete the vectors of documents that no longer exist at the source.

        Returns immediately when reconciliation is disabled in settings.

        Raises
        ------
        ContentSourceError
            If the live document set could not be read completely; nothing
            is deleted in that case.
        """
        settings = await self._settings_loader.load()
        if not settings.clean_deleted:
            self._logger.info("clean_disabled")
            return CleanResult(skipped=True)

        components = self._components_factory(settings, None)
        await components.store.initialize()

        try:
            live_ids = await components.fetcher.live_document_ids()
        except ContentSourceError as exc:
            self._logger.error("clean_aborted_incomplete_source", error=str(exc))
            raise
        stored_ids = await components.store.enumerate_domain_vector_ids()
        if not live_ids and stored_ids:
            self._logger.warning("clean_no_live_documents", stored_vectors=len(stored_ids))

        orphans: dict[int, list[str]] = {}
        for vector_id in stored_ids:
            document_id = components.id_scheme.document_id(vector_id)
            if document_id is None:
                self._logger.debug("clean_unrecognized_vector_id", vector_id=vector_id)
                continue
            if document_id not in live_ids:
                orphans.setdefault(document_id, []).append(vector_id)

        orphan_vector_ids = [vector_id for ids in orphans.values() for vector_id in ids]
        deleted = await components.store.delete_by_ids(orphan_vector_ids)

        self._logger.info(
            "clean_complete",
            live_documents=len(live_ids),
            stored_vectors=len(stored_ids),
            orphaned_documents=len(orphans),
            deleted_vectors=deleted,
        )
        return CleanResult(
            live_document_count=len(live_ids),
            stored_vector_count=len(stored_ids),
            orphaned_document_ids=sorted(orphans),
            deleted_vector_count=deleted,
        )

    # ------------------------------------------------------------------
    # delete_all
    # ------------------------------------------------------------------

    async def delete_all(self) -> DeleteAllResult:
        """Delete every vector of the current domain, regardless of the source."""
        settings = await self._settings_loader.load()
        components = self._components_factory(settings, None)

        before = await components.store.initialize()
        deleted = await components.store.delete_all_for_domain()
        if deleted:
            await asyncio.sleep(self._propagation_delay)
        after = await components.store.get_stats()

        self._logger.info(
            "delete_all_complete",
            deleted_vectors=deleted,
            before=before.total_vector_count,
            after=after.total_vector_count,
        )
        return DeleteAllResult(deleted_vector_count=deleted, before=before, after=after)


def build_vectors(
    document: Document,
    chunks: list[Chunk],
    embeddings: list[list[float]],
    settings: IndexerSettings,
    id_scheme: VectorIdScheme,
) -> list[Vector]:
    """Pair each chunk with its embedding and the document's metadata."""
    base_metadata: dict[str, Any] = {
        "post_id": document.id,
        "post_type": document.category,
        "title": document.title,
        "url": document.url,
        "domain": settings.domain,
        "schema_version": settings.schema_version,
        "post_date": document.created_at.isoformat() if document.created_at else "",
        "post_modified": document.modified_at.isoformat() if document.modified_at else "",
        "author_id": document.author_id,
        "category_ids": ",".join(str(ref) for ref in document.category_ids),
        "tag_ids": ",".join(str(ref) for ref in document.tag_ids),
        "content_hash": content_hash(document.full_text),
    }
    return [
        Vector(
            id=id_scheme.format(document.id, chunk.sequence_index),
            values=values,
            metadata={**base_metadata, "chunk": chunk.text, "chunk_index": chunk.sequence_index},
        )
        for chunk, values in zip(chunks, embeddings)
    ]
