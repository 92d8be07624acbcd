"""ChromaDB vector index adapter.

Wraps a ``chromadb.PersistentClient`` collection to implement
:class:`IVectorIndex`, giving the indexer a fully local backend for
development and offline runs.  Uses cosine distance.

Pinecone concepts map onto ChromaDB as follows:

* namespace -> a separate collection named ``{index_name}-{namespace}``
* list pagination token -> the row offset, as a string
* Mongo-style filters -> ``where`` clauses, multi-key filters as ``$and``
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Callable

# Must be set before chromadb is imported to keep telemetry off.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog

from wp_indexer.interfaces.vector_index import IVectorIndex
from wp_indexer.models.vector import IndexStats, QueryMatch, Vector, VectorIdPage
from wp_indexer.utils.errors import PermanentError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    The indexer always passes pre-computed embeddings, so ChromaDB's
    built-in embedding is never invoked.  Without this, ChromaDB downloads
    its default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "Embeddings are pre-computed; ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaVectorIndex(IVectorIndex):
    """Vector index backed by a local ChromaDB collection.

    Parameters
    ----------
    index_name:
        Base collection name (the settings ``vector_index_name``).
    namespace:
        Optional namespace, appended to the collection name.
    persist_directory:
        On-disk location of the ChromaDB database.
    client:
        Pre-built ChromaDB client (e.g. ``chromadb.EphemeralClient()`` in tests).
    """

    def __init__(
        self,
        index_name: str,
        namespace: str = "",
        persist_directory: str = "./data/chromadb",
        client: Any | None = None,
    ) -> None:
        self._collection_name = f"{index_name}-{namespace}" if namespace else index_name
        if client is None:
            client = chromadb.PersistentClient(
                path=persist_directory,
                settings=chromadb.config.Settings(anonymized_telemetry=False),
            )
        self._client = client
        # Collections created by other tools may carry a different persisted
        # embedding function; newer ChromaDB versions reject the mismatch.
        try:
            self._collection = self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    @property
    def collection_name(self) -> str:
        return self._collection_name

    # ------------------------------------------------------------------
    # IVectorIndex implementation
    # ------------------------------------------------------------------

    async def upsert(self, vectors: list[Vector]) -> int:
        if not vectors:
            return 0
        await self._call(
            "upsert",
            self._collection.upsert,
            ids=[vector.id for vector in vectors],
            embeddings=[vector.values for vector in vectors],
            metadatas=[_clean_metadata(vector.metadata) for vector in vectors],
            documents=[str(vector.metadata.get("chunk", "")) for vector in vectors],
        )
        return len(vectors)

    async def delete_ids(self, ids: list[str]) -> None:
        if ids:
            await self._call("delete", self._collection.delete, ids=ids)

    async def delete_where(self, filter: dict[str, Any]) -> None:
        await self._call("delete", self._collection.delete, where=translate_filter(filter))

    async def list_ids(self, limit: int = 100, pagination_token: str | None = None) -> VectorIdPage:
        offset = int(pagination_token) if pagination_token else 0
        page = await self._call(
            "get", self._collection.get, limit=limit, offset=offset, include=[]
        )
        ids = list(page.get("ids") or [])
        next_token = str(offset + len(ids)) if len(ids) == limit else None
        return VectorIdPage(ids=ids, next_token=next_token)

    async def fetch_metadata(self, ids: list[str]) -> dict[str, dict[str, Any]]:
        if not ids:
            return {}
        page = await self._call("get", self._collection.get, ids=ids, include=["metadatas"])
        metadatas = page.get("metadatas") or []
        return {
            vector_id: dict(metadata or {})
            for vector_id, metadata in zip(page.get("ids") or [], metadatas)
        }

    async def describe_stats(self) -> IndexStats:
        count = await self._call("count", self._collection.count)
        dimension = 0
        if count:
            sample = await self._call("peek", self._collection.peek, limit=1)
            embeddings = sample.get("embeddings") if sample else None
            if embeddings is not None and len(embeddings) > 0:
                dimension = len(embeddings[0])
        return IndexStats(
            total_vector_count=count,
            dimension=dimension,
            namespaces={self._collection_name: count},
        )

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[QueryMatch]:
        count = await self._call("count", self._collection.count)
        if count == 0:
            return []
        kwargs: dict[str, Any] = {
            "query_embeddings": [vector],
            "n_results": min(top_k, count),
            "include": ["metadatas", "distances"],
        }
        if filter:
            kwargs["where"] = translate_filter(filter)
        results = await self._call("query", self._collection.query, **kwargs)

        ids = (results.get("ids") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0]
        return [
            QueryMatch(id=vector_id, score=1.0 - float(distance), metadata=dict(metadata or {}))
            for vector_id, distance, metadata in zip(ids, distances, metadatas)
        ]

    def get_provider_name(self) -> str:
        return "chromadb"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, **kwargs)
        except Exception as exc:
            raise PermanentError(
                message=f"ChromaDB {operation} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc


def translate_filter(filter: dict[str, Any]) -> dict[str, Any]:
    """Translate the common filter syntax to a ChromaDB ``where`` clause.

    ChromaDB accepts a single field condition per clause, so filters with
    more than one field are wrapped in ``$and``.  Bare values become ``$eq``.
    """
    clauses: list[dict[str, Any]] = []
    for field, condition in filter.items():
        if not isinstance(condition, dict):
            condition = {"$eq": condition}
        clauses.append({field: condition})

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _clean_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Keep only scalar values; ChromaDB rejects ``None`` and lists."""
    return {
        key: value
        for key, value in metadata.items()
        if isinstance(value, (str, int, float, bool))
    }
