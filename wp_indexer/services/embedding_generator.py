"""Resilient embedding generation.

Layers the indexer's failure policy over a raw
:class:`~wp_indexer.interfaces.embedding_provider.IEmbeddingProvider`:

* every request first takes a token from the embedding rate limiter;
* every request goes through the embedding circuit breaker;
* single-text requests are wrapped in the retry policy;
* batch requests that fail, or return the wrong number of vectors, fall
  back to one retried single-text request per input.

Counters are private and exposed through read-only properties.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from wp_indexer.utils.concurrency import run_bounded
from wp_indexer.utils.errors import EmbeddingError, PermanentError
from wp_indexer.utils.logging import get_logger

if TYPE_CHECKING:
    from wp_indexer.interfaces.embedding_provider import IEmbeddingProvider
    from wp_indexer.utils.circuit_breaker import CircuitBreaker
    from wp_indexer.utils.rate_limiter import TokenBucketRateLimiter
    from wp_indexer.utils.retry import RetryPolicy

_DEFAULT_BATCH_SIZE = 500
_BATCH_CONCURRENCY = 3


class EmbeddingGenerator:
    """Converts chunk texts into embedding vectors.

    Parameters
    ----------
    provider:
        Raw embedding backend; one request per ``embed`` call.
    rate_limiter:
        Token bucket shared by all embedding requests.
    circuit_breaker:
        Breaker guarding the embedding API.
    retry_policy:
        Backoff policy for single-text requests.
    batch_size:
        Maximum texts per batch request.
    batch_concurrency:
        Maximum concurrent batch requests.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        rate_limiter: TokenBucketRateLimiter,
        circuit_breaker: CircuitBreaker,
        retry_policy: RetryPolicy,
        batch_size: int = _DEFAULT_BATCH_SIZE,
        batch_concurrency: int = _BATCH_CONCURRENCY,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._provider = provider
        self._rate_limiter = rate_limiter
        self._circuit_breaker = circuit_breaker
        self._retry_policy = retry_policy
        self._batch_size = batch_size
        self._batch_concurrency = batch_concurrency
        self._request_count = 0
        self._embedded_text_count = 0
        self._fallback_count = 0
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def request_count(self) -> int:
        """Embedding API requests issued, including failed ones."""
        return self._request_count

    @property
    def embedded_text_count(self) -> int:
        return self._embedded_text_count

    @property
    def fallback_count(self) -> int:
        """Batches that fell back to per-text requests."""
        return self._fallback_count

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed one text with rate limiting, circuit breaking and retries.

        Raises
        ------
        EmbeddingError
            When every attempt failed.
        """
        try:
            return await self._retry_policy.run(lambda: self._request_single(text))
        except Exception as exc:
            raise EmbeddingError(
                message=f"Failed to embed text after retries: {exc}",
                provider_name=self._provider.get_provider_name(),
            ) from exc

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, preserving order.

        Raises
        ------
        EmbeddingError
            When any text could not be embedded.
        """
        if not texts:
            return []

        groups = [
            texts[start : start + self._batch_size]
            for start in range(0, len(texts), self._batch_size)
        ]
        outcomes = await run_bounded(groups, self._embed_group, self._batch_concurrency)

        vectors: list[list[float]] = []
        for outcome in outcomes:
            if not outcome.ok:
                error = outcome.error
                if isinstance(error, EmbeddingError):
                    raise error
                raise EmbeddingError(
                    message=f"Batch embedding failed: {error}",
                    provider_name=self._provider.get_provider_name(),
                ) from error
            vectors.extend(outcome.value or [])

        if not vectors:
            raise EmbeddingError(
                message=f"No embeddings returned for {len(texts)} texts",
                provider_name=self._provider.get_provider_name(),
            )
        return vectors

    # ------------------------------------------------------------------
    # Request paths
    # ------------------------------------------------------------------

    async def _request(self, texts: list[str]) -> list[list[float]]:
        await self._rate_limiter.acquire()
        self._request_count += 1
        vectors = await self._circuit_breaker.call(lambda: self._provider.embed(texts))
        self._embedded_text_count += len(vectors)
        return vectors

    async def _request_single(self, text: str) -> list[float]:
        vectors = await self._request([text])
        if not vectors:
            raise PermanentError(
                message="Embedding response contained no data",
                provider_name=self._provider.get_provider_name(),
            )
        return vectors[0]

    async def _embed_group(self, group: list[str]) -> list[list[float]]:
        try:
            vectors = await self._request(group)
        except Exception as exc:
            self._logger.warning(
                "embedding_batch_failed_fallback",
                batch_size=len(group),
                error=str(exc),
            )
            return await self._embed_individually(group)

        if len(vectors) != len(group):
            self._logger.warning(
                "embedding_batch_count_mismatch",
                requested=len(group),
                received=len(vectors),
            )
            return await self._embed_individually(group)
        return vectors

    async def _embed_individually(self, group: list[str]) -> list[list[float]]:
        self._fallback_count += 1
        return [await self.embed(text) for text in group]
