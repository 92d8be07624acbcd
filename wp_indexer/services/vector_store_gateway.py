"""Batched, domain-scoped access to the vector index.

Every vector written by the indexer carries ``domain`` metadata, which is
how several WordPress sites share one index.  The gateway turns the
low-level :class:`~wp_indexer.interfaces.vector_index.IVectorIndex` calls
into the operations the pipeline needs:

* batched upserts (100 per request) under the retry policy;
* batched id deletes (1000 per request) with a pause between batches;
* a metadata-filtered delete for a set of document ids;
* domain-scoped enumeration: ``list_ids`` returns bare ids, so each page
  is followed by a ``fetch_metadata`` call and filtered on ``domain``.

Every backend failure surfaces as :class:`VectorStoreError`.  Batches that
completed before a failure stay written; re-running ``index`` heals the
partial state because vector ids are deterministic.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from wp_indexer.utils.errors import FatalError, VectorStoreError
from wp_indexer.utils.logging import get_logger

if TYPE_CHECKING:
    from wp_indexer.interfaces.vector_index import IVectorIndex
    from wp_indexer.models.vector import IndexStats, QueryMatch, Vector
    from wp_indexer.utils.rate_limiter import TokenBucketRateLimiter
    from wp_indexer.utils.retry import RetryPolicy

_T = TypeVar("_T")

UPSERT_BATCH_SIZE = 100
DELETE_BATCH_SIZE = 1000
LIST_PAGE_SIZE = 100
_DELETE_BATCH_DELAY = 0.1


class VectorStoreGateway:
    """Domain-scoped operations over one vector index namespace.

    Parameters
    ----------
    index:
        Backend implementation (Pinecone, ChromaDB).
    domain:
        Hostname of the WordPress site; scopes enumeration and deletes.
    rate_limiter:
        Token bucket shared by all store requests.
    retry_policy:
        Backoff policy applied to every store request.
    expected_dimension:
        Embedding dimension the index must report; ``None`` skips the check.
    delete_batch_delay:
        Seconds to pause between id-delete batches.
    """

    def __init__(
        self,
        index: IVectorIndex,
        domain: str,
        rate_limiter: TokenBucketRateLimiter,
        retry_policy: RetryPolicy,
        expected_dimension: int | None = None,
        delete_batch_delay: float = _DELETE_BATCH_DELAY,
    ) -> None:
        self._index = index
        self._domain = domain
        self._rate_limiter = rate_limiter
        self._retry_policy = retry_policy
        self._expected_dimension = expected_dimension
        self._delete_batch_delay = delete_batch_delay
        self._upserted_count = 0
        self._deleted_count = 0
        self._logger = get_logger(__name__)

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def upserted_count(self) -> int:
        return self._upserted_count

    @property
    def deleted_count(self) -> int:
        return self._deleted_count

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> IndexStats:
        """Verify the index is reachable and has the expected dimension.

        Raises
        ------
        FatalError
            If the index cannot be described or its dimension differs.
        """
        try:
            stats = await self.get_stats()
        except VectorStoreError as exc:
            raise FatalError(
                message=f"Failed to initialize vector store: {exc}",
                provider_name=self._index.get_provider_name(),
            ) from exc

        expected = self._expected_dimension
        if expected and stats.dimension and stats.dimension != expected:
            raise FatalError(
                message=(
                    f"Vector index dimension {stats.dimension} does not match "
                    f"embedding dimension {expected}"
                ),
                provider_name=self._index.get_provider_name(),
            )

        self._logger.info(
            "vector_store_initialized",
            provider=self._index.get_provider_name(),
            total_vectors=stats.total_vector_count,
            dimension=stats.dimension,
        )
        return stats

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def upsert(self, vectors: list[Vector]) -> int:
        """Write *vectors* in batches; returns the number written."""
        if not vectors:
            return 0

        written = 0
        for start in range(0, len(vectors), UPSERT_BATCH_SIZE):
            batch = vectors[start : start + UPSERT_BATCH_SIZE]
            count = await self._call("upsert", lambda batch=batch: self._index.upsert(batch))
            written += count
            self._upserted_count += count
            self._logger.debug(
                "upsert_batch_complete",
                batch=start // UPSERT_BATCH_SIZE + 1,
                size=len(batch),
            )
        return written

    async def delete_by_ids(self, ids: list[str]) -> int:
        """Delete vectors by id in batches; returns the number requested."""
        if not ids:
            return 0

        for start in range(0, len(ids), DELETE_BATCH_SIZE):
            if start:
                await asyncio.sleep(self._delete_batch_delay)
            batch = ids[start : start + DELETE_BATCH_SIZE]
            await self._call("delete", lambda batch=batch: self._index.delete_ids(batch))
            self._deleted_count += len(batch)
            self._logger.info(
                "delete_batch_complete",
                batch=start // DELETE_BATCH_SIZE + 1,
                size=len(batch),
            )
        return len(ids)

    async def delete_by_document_ids(self, document_ids: list[int]) -> None:
        """Delete every vector of *document_ids* within the current domain."""
        if not document_ids:
            return
        filter = {
            "post_id": {"$in": list(document_ids)},
            "domain": {"$eq": self._domain},
        }
        await self._call("delete", lambda: self._index.delete_where(filter))
        self._logger.info("delete_by_documents_complete", documents=len(document_ids))

    async def delete_all_for_domain(self) -> int:
        """Delete every vector belonging to the current domain."""
        ids = await self.enumerate_domain_vector_ids()
        if not ids:
            self._logger.info("delete_all_nothing_to_delete", domain=self._domain)
            return 0
        return await self.delete_by_ids(ids)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def enumerate_domain_vector_ids(self) -> list[str]:
        """List every vector id whose ``domain`` metadata is the current domain."""
        domain_ids: list[str] = []
        token: str | None = None
        pages = 0
        while True:
            page = await self._call(
                "list",
                lambda token=token: self._index.list_ids(
                    limit=LIST_PAGE_SIZE, pagination_token=token
                ),
            )
            pages += 1
            if page.ids:
                metadata = await self._call(
                    "fetch", lambda ids=page.ids: self._index.fetch_metadata(ids)
                )
                domain_ids.extend(
                    vector_id
                    for vector_id in page.ids
                    if metadata.get(vector_id, {}).get("domain") == self._domain
                )
            token = page.next_token
            if not token:
                break

        self._logger.info(
            "domain_vectors_enumerated",
            domain=self._domain,
            pages=pages,
            vectors=len(domain_ids),
        )
        return domain_ids

    async def get_stats(self) -> IndexStats:
        return await self._call("describe_stats", self._index.describe_stats)

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[QueryMatch]:
        """Similarity search restricted to the current domain."""
        scoped = {"domain": {"$eq": self._domain}, **(filter or {})}
        return await self._call(
            "query", lambda: self._index.query(vector, top_k=top_k, filter=scoped)
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _call(self, operation: str, request: Callable[[], Awaitable[_T]]) -> _T:
        async def _attempt() -> _T:
            await self._rate_limiter.acquire()
            return await request()

        try:
            return await self._retry_policy.run(_attempt)
        except Exception as exc:
            raise VectorStoreError(
                message=f"Vector store {operation} failed: {exc}",
                provider_name=self._index.get_provider_name(),
            ) from exc
