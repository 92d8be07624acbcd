"""Abstract base class for vector index backends.

Defines the low-level, namespace-scoped operations the
:class:`~wp_indexer.services.vector_store_gateway.VectorStoreGateway`
composes into batched upserts, domain-scoped enumeration and
reconciliation deletes.  Implementations make one backend request per
call and translate vendor exceptions into
:class:`~wp_indexer.utils.errors.TransientError` /
:class:`~wp_indexer.utils.errors.PermanentError`.

**Filter syntax** (used by :meth:`IVectorIndex.delete_where` and
:meth:`IVectorIndex.query`): a dict of metadata field to operator dict,
all conditions AND-ed::

    {"post_id": {"$in": [1, 2]}, "domain": {"$eq": "example.com"}}

Supported operators are ``$eq`` and ``$in``.  Backends translate this into
their native query language.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from wp_indexer.models.vector import IndexStats, QueryMatch, Vector, VectorIdPage


# Concrete implementations (wp_indexer/providers/vector_store/):
#   PineconeVectorIndex: hosted Pinecone index, production backend
#   ChromaVectorIndex  : local ChromaDB collection, offline development
class IVectorIndex(ABC):
    """Contract for one namespace of a vector index."""

    @abstractmethod
    async def upsert(self, vectors: list[Vector]) -> int:
        """Insert or overwrite *vectors* by id; return the number written."""

    @abstractmethod
    async def delete_ids(self, ids: list[str]) -> None:
        """Delete the vectors with the given ids (missing ids are ignored)."""

    @abstractmethod
    async def delete_where(self, filter: dict[str, Any]) -> None:
        """Delete every vector whose metadata matches *filter*."""

    @abstractmethod
    async def list_ids(self, limit: int = 100, pagination_token: str | None = None) -> VectorIdPage:
        """Return one page of bare vector ids.

        Listing carries no metadata and cannot be filtered server-side;
        follow ``next_token`` until it is ``None``.
        """

    @abstractmethod
    async def fetch_metadata(self, ids: list[str]) -> dict[str, dict[str, Any]]:
        """Return metadata for each of *ids* that exists in the index."""

    @abstractmethod
    async def describe_stats(self) -> IndexStats:
        """Return vector counts and dimension."""

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filter: dict[str, Any] | None = None,
    ) -> list[QueryMatch]:
        """Return the *top_k* nearest vectors matching *filter*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this backend."""
