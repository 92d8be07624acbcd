"""Custom exception hierarchy for the WordPress AI indexer.

All application exceptions inherit from :class:`IndexerError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "pinecone", "wordpress") caused the failure.

The hierarchy is organized by how the pipeline reacts to the failure:

    IndexerError  (base -- catch-all for any indexer error)
    +-- TransientError       (429 / 5xx / network reset -- retried with backoff)
    +-- PermanentError       (other 4xx, malformed data -- never retried)
    +-- CircuitOpenError     (dependency deemed unhealthy by a circuit breaker)
    +-- FatalError           (aborts the whole run)
    |   +-- SettingsError        (remote settings fetch / validation)
    |   +-- ConfigurationError   (missing or invalid environment config)
    +-- ContentSourceError   (WordPress REST API failure)
    +-- EmbeddingError       (embedding failed after retries)
    +-- VectorStoreError     (vector store failed after retries)

Per-document failures (embedding, vector store) are recorded and counted
by the orchestrator; only :class:`FatalError` aborts a run.
"""


class IndexerError(Exception):
    """Base exception for all indexer errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Retry classification
# ---------------------------------------------------------------------------

class TransientError(IndexerError):
    """Raised for failures that may succeed when repeated.

    Rate limiting (HTTP 429), server errors (5xx) and network resets or
    timeouts.  The retry policy backs off and tries again.
    """

    def __init__(
        self,
        message: str = "Transient failure",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.status_code = status_code


class PermanentError(IndexerError):
    """Raised for failures that will not succeed on retry (4xx other than 429)."""

    def __init__(
        self,
        message: str = "Permanent failure",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.status_code = status_code


class CircuitOpenError(IndexerError):
    """Raised by an open circuit breaker without invoking the protected call."""

    def __init__(
        self,
        message: str = "Circuit breaker is open",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Run-aborting errors
# ---------------------------------------------------------------------------

class FatalError(IndexerError):
    """Raised when the run cannot continue (settings, store initialization)."""

    def __init__(
        self,
        message: str = "Fatal error",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SettingsError(FatalError):
    """Raised when the indexer settings cannot be fetched or fail validation."""

    def __init__(
        self,
        message: str = "Failed to load indexer settings",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(FatalError):
    """Raised when environment configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Collaborator errors
# ---------------------------------------------------------------------------

class ContentSourceError(IndexerError):
    """Raised when the WordPress REST API returns an error response."""

    def __init__(
        self,
        message: str = "Content source request failed",
        provider_name: str | None = "wordpress",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.status_code = status_code


class EmbeddingError(IndexerError):
    """Raised when embedding generation fails after retries are exhausted."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(IndexerError):
    """Raised when a vector store operation fails after retries are exhausted."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
