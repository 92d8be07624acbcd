"""Pinecone vector index adapter.

Wraps a ``pinecone.Index`` data-plane client to implement
:class:`IVectorIndex`.  The SDK is synchronous, so every call runs in a
worker thread via :func:`asyncio.to_thread` to keep the event loop free.

All operations are scoped to one namespace (``WP_AI_NAMESPACE``; the
empty string is Pinecone's default namespace).
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import structlog
from pinecone import Pinecone
from pinecone.exceptions import PineconeApiException, PineconeException

from wp_indexer.interfaces.vector_index import IVectorIndex
from wp_indexer.models.vector import IndexStats, QueryMatch, Vector, VectorIdPage
from wp_indexer.utils.errors import PermanentError, TransientError

logger = structlog.get_logger(logger_name=__name__)


class PineconeVectorIndex(IVectorIndex):
    """Vector index backed by a hosted Pinecone index.

    Parameters
    ----------
    api_key:
        Pinecone API key.
    index_name:
        Name of the index.
    index_host:
        Data-plane host of the index; skips the control-plane lookup.
    namespace:
        Namespace all operations are scoped to.
    index:
        Pre-built ``pinecone.Index`` (or test double).  When omitted one is
        created from *api_key*, *index_name* and *index_host*.
    """

    def __init__(
        self,
        api_key: str = "",
        index_name: str = "",
        index_host: str = "",
        namespace: str = "",
        index: Any | None = None,
    ) -> None:
        self._namespace = namespace
        self._index_name = index_name
        if index is None:
            client = Pinecone(api_key=api_key)
            index = client.Index(name=index_name, host=index_host or None)
        self._index = index

    @property
    def namespace(self) -> str:
        return self._namespace

    # ------------------------------------------------------------------
    # IVectorIndex implementation
    # ------------------------------------------------------------------

    async def upsert(self, vectors: list[Vector]) -> int:
        payload = [
            {
                "id": vector.id,
                "values": vector.values,
                "metadata": _clean_metadata(vector.metadata),
            }
            for vector in vectors
        ]
        response = await self._call(
            "upsert", self._index.upsert, vectors=payload, namespace=self._namespace
        )
        return int(getattr(response, "upserted_count", None) or len(payload))

    async def delete_ids(self, ids: list[str]) -> None:
        await self._call("delete", self._index.delete, ids=ids, namespace=self._namespace)

    async def delete_where(self, filter: dict[str, Any]) -> None:
        await self._call("delete", self._index.delete, filter=filter, namespace=self._namespace)

    async def list_ids(self, limit: int = 100, pagination_token: str | None = None) -> VectorIdPage:
        kwargs: dict[str, Any] = {"limit": limit, "namespace": self._namespace}
        if pagination_token:
            kwargs["pagination_token"] = pagination_token
        response = await self._call("list_paginated", self._index.list_paginated, **kwargs)

        ids = [item.id for item in (getattr(response, "vectors", None) or [])]
        pagination = getattr(response, "pagination", None)
        next_token = getattr(pagination, "next", None) if pagination is not None else None
        return VectorIdPage(ids=ids, next_token=next_token or None)

    async def fetch_metadata(self, ids: list[str]) -> dict[str, dict[str, Any]]:
        if not ids:
            return {}
        response = await self._call("fetch", self._index.fetch, ids=ids, namespace=self._namespace)
        vectors = getattr(response, "vectors", None) or {}
        return {
            vector_id: dict(getattr(vector, "metadata", None) or {})
            for vector_id, vector in vectors.items()
        }

    async def describe_stats(self) -> IndexStats:
        response = await self._call("describe_index_stats", self._index.describe_index_stats)
        namespaces = {
            name: int(getattr(summary, "vector_count", 0) or 0)
            for name, summary in (getattr(response, "namespaces", None) or {}).items()
        }
        return IndexStats(
            total_vector_count=int(getattr(response, "total_vector_count", 0) or 0),
            dimension=int(getattr(response, "dimension", 0) or 0),
            namespaces=namespaces,
        )

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[QueryMatch]:
        kwargs: dict[str, Any] = {
            "vector": vector,
            "top_k": top_k,
            "include_metadata": True,
            "namespace": self._namespace,
        }
        if filter:
            kwargs["filter"] = filter
        response = await self._call("query", self._index.query, **kwargs)
        return [
            QueryMatch(
                id=match.id,
                score=float(match.score or 0.0),
                metadata=dict(getattr(match, "metadata", None) or {}),
            )
            for match in (getattr(response, "matches", None) or [])
        ]

    def get_provider_name(self) -> str:
        return "pinecone"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        """Run a blocking SDK call in a thread, translating vendor errors."""
        try:
            return await asyncio.to_thread(fn, **kwargs)
        except PineconeApiException as exc:
            status = getattr(exc, "status", None)
            transient = status is None or status == 429 or status >= 500
            error_cls = TransientError if transient else PermanentError
            raise error_cls(
                message=f"Pinecone {operation} failed ({status}): {exc}",
                provider_name=self.get_provider_name(),
                status_code=status,
            ) from exc
        except (ConnectionError, TimeoutError) as exc:
            raise TransientError(
                message=f"Pinecone {operation} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except PineconeException as exc:
            raise PermanentError(
                message=f"Pinecone {operation} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc


def _clean_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values, which Pinecone rejects."""
    return {key: value for key, value in metadata.items() if value is not None}
