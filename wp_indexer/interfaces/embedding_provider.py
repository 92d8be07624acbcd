"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into embedding vectors.  A provider
makes exactly one API request per :meth:`IEmbeddingProvider.embed` call;
batching, rate limiting, circuit breaking and retries are layered on top
by :class:`~wp_indexer.services.embedding_generator.EmbeddingGenerator`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation:
#   OpenAIEmbeddingProvider: text-embedding-3-* via the OpenAI API
# Located in: wp_indexer/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the indexer."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for *texts* in a single request.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  A
            misbehaving backend may return fewer vectors than requested;
            callers check the count.

        Raises
        ------
        wp_indexer.utils.errors.TransientError
            Rate limiting, server errors, network failures.
        wp_indexer.utils.errors.PermanentError
            Any other rejected request.
        """

    async def embed_single(self, text: str) -> list[float]:
        """Embed one text; raises :class:`IndexError` on an empty response."""
        return (await self.embed([text]))[0]

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
