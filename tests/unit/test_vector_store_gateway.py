"""Unit tests for VectorStoreGateway batching and domain scoping."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from tests.conftest import TEST_DOMAIN, InMemoryVectorIndex, stored_vector
from wp_indexer.models.vector import IndexStats, Vector
from wp_indexer.services.vector_store_gateway import VectorStoreGateway
from wp_indexer.utils.errors import FatalError, PermanentError, TransientError, VectorStoreError
from wp_indexer.utils.rate_limiter import TokenBucketRateLimiter
from wp_indexer.utils.retry import RetryPolicy


def _gateway(index: InMemoryVectorIndex, **kwargs: Any) -> VectorStoreGateway:
    return VectorStoreGateway(
        index=index,
        domain=TEST_DOMAIN,
        rate_limiter=TokenBucketRateLimiter(10_000),
        retry_policy=RetryPolicy(base_delay=0.001, jitter=0),
        delete_batch_delay=0,
        **kwargs,
    )


def _vectors(count: int, document_id: int = 1) -> list[Vector]:
    return [stored_vector(document_id, i) for i in range(count)]


class TestInitialize:
    @pytest.mark.asyncio
    async def test_returns_stats(self, memory_index: InMemoryVectorIndex) -> None:
        stats = await _gateway(memory_index, expected_dimension=8).initialize()
        assert stats.dimension == 8

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_fatal(self, memory_index: InMemoryVectorIndex) -> None:
        with pytest.raises(FatalError, match="dimension"):
            await _gateway(memory_index, expected_dimension=1536).initialize()

    @pytest.mark.asyncio
    async def test_unreachable_store_is_fatal(self, memory_index: InMemoryVectorIndex) -> None:
        memory_index.describe_stats = AsyncMock(
            side_effect=PermanentError("unauthorized", status_code=401)
        )
        with pytest.raises(FatalError, match="Failed to initialize vector store"):
            await _gateway(memory_index).initialize()


class TestUpsert:
    @pytest.mark.asyncio
    async def test_batches_of_one_hundred(self, memory_index: InMemoryVectorIndex) -> None:
        gateway = _gateway(memory_index)

        written = await gateway.upsert(_vectors(250))

        assert written == 250
        assert memory_index.upsert_calls == 3
        assert len(memory_index.vectors) == 250
        assert gateway.upserted_count == 250

    @pytest.mark.asyncio
    async def test_empty_is_noop(self, memory_index: InMemoryVectorIndex) -> None:
        assert await _gateway(memory_index).upsert([]) == 0
        assert memory_index.upsert_calls == 0

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, memory_index: InMemoryVectorIndex) -> None:
        memory_index.upsert = AsyncMock(side_effect=[TransientError("503", status_code=503), 3])

        assert await _gateway(memory_index).upsert(_vectors(3)) == 3
        assert memory_index.upsert.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_surfaces_as_vector_store_error(
        self, memory_index: InMemoryVectorIndex
    ) -> None:
        memory_index.upsert = AsyncMock(side_effect=PermanentError("bad vector", status_code=400))
        with pytest.raises(VectorStoreError, match="upsert failed"):
            await _gateway(memory_index).upsert(_vectors(1))


class TestDeletes:
    @pytest.mark.asyncio
    async def test_delete_by_ids_in_batches(self, memory_index: InMemoryVectorIndex) -> None:
        await memory_index.upsert([stored_vector(n, 0) for n in range(2500)])
        ids = list(memory_index.vectors)

        with patch(
            "wp_indexer.services.vector_store_gateway.asyncio.sleep", new_callable=AsyncMock
        ) as sleep:
            deleted = await _gateway(memory_index).delete_by_ids(ids)

        assert deleted == 2500
        assert [len(batch) for batch in memory_index.delete_calls] == [1000, 1000, 500]
        assert sleep.await_count == 2
        assert memory_index.vectors == {}

    @pytest.mark.asyncio
    async def test_delete_by_document_ids_scoped_to_domain(
        self, memory_index: InMemoryVectorIndex
    ) -> None:
        await memory_index.upsert(
            [
                stored_vector(1, 0),
                stored_vector(2, 0),
                stored_vector(2, 1),
                stored_vector(2, 0, domain="other.org").model_copy(update={"id": "other-2"}),
            ]
        )

        await _gateway(memory_index).delete_by_document_ids([2])

        assert sorted(memory_index.vectors) == ["doc-1-chunk-0", "other-2"]

    @pytest.mark.asyncio
    async def test_delete_all_for_domain(self, memory_index: InMemoryVectorIndex) -> None:
        await memory_index.upsert(_vectors(3, document_id=1))
        await memory_index.upsert(
            [Vector(id="foreign", values=[0.0] * 8, metadata={"domain": "other.org"})]
        )

        deleted = await _gateway(memory_index).delete_all_for_domain()

        assert deleted == 3
        assert list(memory_index.vectors) == ["foreign"]

    @pytest.mark.asyncio
    async def test_delete_all_with_nothing_stored(self, memory_index: InMemoryVectorIndex) -> None:
        assert await _gateway(memory_index).delete_all_for_domain() == 0
        assert memory_index.delete_calls == []


class TestReads:
    @pytest.mark.asyncio
    async def test_enumeration_follows_pagination_and_filters_domain(
        self, memory_index: InMemoryVectorIndex
    ) -> None:
        mine = [stored_vector(n, 0) for n in range(150)]
        theirs = [
            Vector(id=f"theirs-{n}", values=[0.0] * 8, metadata={"domain": "other.org"})
            for n in range(120)
        ]
        await memory_index.upsert(mine + theirs)

        ids = await _gateway(memory_index).enumerate_domain_vector_ids()

        assert ids == [v.id for v in mine]

    @pytest.mark.asyncio
    async def test_query_adds_domain_filter(self, memory_index: InMemoryVectorIndex) -> None:
        memory_index.query = AsyncMock(return_value=[])

        await _gateway(memory_index).query(
            [0.1] * 8, top_k=3, filter={"post_type": {"$eq": "post"}}
        )

        _, kwargs = memory_index.query.call_args
        assert kwargs["top_k"] == 3
        assert kwargs["filter"] == {
            "domain": {"$eq": TEST_DOMAIN},
            "post_type": {"$eq": "post"},
        }

    @pytest.mark.asyncio
    async def test_get_stats(self, memory_index: InMemoryVectorIndex) -> None:
        await memory_index.upsert(_vectors(2))
        stats = await _gateway(memory_index).get_stats()
        assert stats == IndexStats(total_vector_count=2, dimension=8, namespaces={"": 2})
