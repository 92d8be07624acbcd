"""Shared pytest fixtures for the wp-ai-indexer test suite."""

from __future__ import annotations

import hashlib
from typing import Any

import pytest

from wp_indexer.config.settings import Settings
from wp_indexer.interfaces.embedding_provider import IEmbeddingProvider
from wp_indexer.interfaces.vector_index import IVectorIndex
from wp_indexer.models.settings import IndexerSettings
from wp_indexer.models.vector import IndexStats, QueryMatch, Vector, VectorIdPage

# ---------------------------------------------------------------------------
# Settings fixtures
# ---------------------------------------------------------------------------

TEST_DOMAIN = "example.com"
TEST_API_BASE = f"https://{TEST_DOMAIN}"


def settings_document(**overrides: Any) -> dict[str, Any]:
    """A valid indexer settings document as the WordPress plugin serves it."""
    document: dict[str, Any] = {
        "schema_version": 1,
        "post_types": ["posts", "pages"],
        "post_types_exclude": [],
        "auto_discover": False,
        "clean_deleted": True,
        "embedding_model": "text-embedding-3-small",
        "embedding_dimension": _EMBEDDING_DIM,
        "chunk_size": 100,
        "chunk_overlap": 10,
        "vector_index_host": "https://test-index.svc.pinecone.io",
        "vector_index_name": "test-index",
    }
    document.update(overrides)
    return document


def make_app_settings(**overrides: Any) -> Settings:
    defaults: dict[str, Any] = {
        "wp_api_base": TEST_API_BASE,
        "openai_api_key": "sk-test",
        "pinecone_api_key": "pc-test",
        "wp_ai_indexer_key": "indexer-key",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def app_settings() -> Settings:
    return make_app_settings()


@pytest.fixture
def indexer_settings() -> IndexerSettings:
    return IndexerSettings.model_validate({**settings_document(), "domain": TEST_DOMAIN})


# ---------------------------------------------------------------------------
# Embedding fixtures
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 8


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Deterministic vector derived from the SHA-256 of *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [digest[i % len(digest)] / 255.0 - 0.5 for i in range(dim)]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    ``failures`` is a list of exceptions raised, in order, by the next
    ``embed`` calls before it starts succeeding.
    """

    def __init__(self, failures: list[Exception] | None = None) -> None:
        self.failures = list(failures or [])
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.failures:
            raise self.failures.pop(0)
        return [_hash_to_vector(t) for t in texts]

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Vector index fixtures
# ---------------------------------------------------------------------------


class InMemoryVectorIndex(IVectorIndex):
    """Dict-backed vector index with real pagination and filter deletes.

    Ids are listed in insertion order; the pagination token is the offset
    of the next page.  ``delete_where`` understands ``$eq`` and ``$in``.
    """

    def __init__(self, dimension: int = _EMBEDDING_DIM) -> None:
        self._dimension = dimension
        self.vectors: dict[str, Vector] = {}
        self.upsert_calls = 0
        self.delete_calls: list[list[str]] = []

    async def upsert(self, vectors: list[Vector]) -> int:
        self.upsert_calls += 1
        for vector in vectors:
            self.vectors[vector.id] = vector
        return len(vectors)

    async def delete_ids(self, ids: list[str]) -> None:
        self.delete_calls.append(list(ids))
        for vector_id in ids:
            self.vectors.pop(vector_id, None)

    async def delete_where(self, filter: dict[str, Any]) -> None:
        doomed = [
            vector_id
            for vector_id, vector in self.vectors.items()
            if _matches(vector.metadata, filter)
        ]
        for vector_id in doomed:
            del self.vectors[vector_id]

    async def list_ids(self, limit: int = 100, pagination_token: str | None = None) -> VectorIdPage:
        ids = list(self.vectors)
        offset = int(pagination_token) if pagination_token else 0
        page = ids[offset : offset + limit]
        next_offset = offset + len(page)
        return VectorIdPage(
            ids=page, next_token=str(next_offset) if next_offset < len(ids) else None
        )

    async def fetch_metadata(self, ids: list[str]) -> dict[str, dict[str, Any]]:
        return {
            vector_id: dict(self.vectors[vector_id].metadata)
            for vector_id in ids
            if vector_id in self.vectors
        }

    async def describe_stats(self) -> IndexStats:
        return IndexStats(
            total_vector_count=len(self.vectors),
            dimension=self._dimension,
            namespaces={"": len(self.vectors)},
        )

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[QueryMatch]:
        scored = [
            QueryMatch(
                id=stored.id,
                score=sum(a * b for a, b in zip(vector, stored.values)),
                metadata=dict(stored.metadata),
            )
            for stored in self.vectors.values()
            if not filter or _matches(stored.metadata, filter)
        ]
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:top_k]

    def get_provider_name(self) -> str:
        return "in-memory"


def _matches(metadata: dict[str, Any], filter: dict[str, Any]) -> bool:
    for field, condition in filter.items():
        value = metadata.get(field)
        if isinstance(condition, dict):
            if "$eq" in condition and value != condition["$eq"]:
                return False
            if "$in" in condition and value not in condition["$in"]:
                return False
        elif value != condition:
            return False
    return True


def stored_vector(document_id: int, chunk_index: int, domain: str = TEST_DOMAIN) -> Vector:
    """A vector as the indexer would have written it for *document_id*."""
    return Vector(
        id=f"doc-{document_id}-chunk-{chunk_index}",
        values=[0.1] * _EMBEDDING_DIM,
        metadata={"post_id": document_id, "domain": domain, "chunk_index": chunk_index},
    )


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def memory_index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()
