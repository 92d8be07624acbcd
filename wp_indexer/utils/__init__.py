"""Utility modules for the WordPress indexer.

- **errors** -- Exception hierarchy rooted at IndexerError.  Transient and
  permanent failures are separate classes so the retry layer can tell them
  apart without inspecting messages.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **rate_limiter** / **circuit_breaker** / **retry** -- the resilience
  primitives wrapped around every external call.
- **concurrency** -- bounded worker pool that keeps per-item outcomes in
  input order.
- **text_normalizer** -- HTML stripping, whitespace normalization and
  content hashing.
"""

from wp_indexer.utils.circuit_breaker import CircuitBreaker, CircuitState
from wp_indexer.utils.concurrency import Outcome, run_bounded
from wp_indexer.utils.errors import (
    CircuitOpenError,
    ConfigurationError,
    ContentSourceError,
    EmbeddingError,
    FatalError,
    IndexerError,
    PermanentError,
    SettingsError,
    TransientError,
    VectorStoreError,
)
from wp_indexer.utils.logging import configure_logging, get_logger
from wp_indexer.utils.rate_limiter import TokenBucketRateLimiter
from wp_indexer.utils.retry import RetryPolicy, is_retryable, retry_with_backoff
from wp_indexer.utils.text_normalizer import content_hash, normalize_whitespace, strip_html

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "ConfigurationError",
    "ContentSourceError",
    "EmbeddingError",
    "FatalError",
    "IndexerError",
    "Outcome",
    "PermanentError",
    "RetryPolicy",
    "SettingsError",
    "TokenBucketRateLimiter",
    "TransientError",
    "VectorStoreError",
    "configure_logging",
    "content_hash",
    "get_logger",
    "is_retryable",
    "normalize_whitespace",
    "retry_with_backoff",
    "run_bounded",
    "strip_html",
]
