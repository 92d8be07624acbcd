"""OpenAI embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
The SDK's own retry loop is disabled (``max_retries=0``); retrying is the
job of :class:`~wp_indexer.utils.retry.RetryPolicy`, which needs to see
every failure to drive the circuit breaker.
"""

from __future__ import annotations

from typing import Any

import openai
import structlog

from wp_indexer.interfaces.embedding_provider import IEmbeddingProvider
from wp_indexer.utils.errors import PermanentError, TransientError

logger = structlog.get_logger(logger_name=__name__)

# Models that reject the ``dimensions`` request parameter.
_FIXED_DIMENSION_MODELS = frozenset({"text-embedding-ada-002"})


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the OpenAI embeddings API.

    One :meth:`embed` call is one ``embeddings.create`` request.  Vendor
    exceptions are translated into the retry taxonomy:

    * 429 and 5xx responses, connection failures, timeouts -> ``TransientError``
    * any other rejected request -> ``PermanentError``
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        timeout: float = 30.0,
        base_url: str = "",
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._dimension = dimension

        client_kwargs: dict[str, Any] = {
            "api_key": api_key,
            "timeout": timeout,
            "max_retries": 0,
        }
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        request: dict[str, Any] = {"model": self._model, "input": texts}
        if self._model not in _FIXED_DIMENSION_MODELS:
            request["dimensions"] = self._dimension

        try:
            response = await self._client.embeddings.create(**request)
        except openai.APIConnectionError as exc:
            raise TransientError(
                message=f"Embedding request failed to connect: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIStatusError as exc:
            error_cls = TransientError if _is_transient_status(exc.status_code) else PermanentError
            raise error_cls(
                message=f"Embedding request rejected ({exc.status_code}): {exc.message}",
                provider_name=self.get_provider_name(),
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise PermanentError(
                message=f"Embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        items = sorted(response.data, key=lambda item: item.index)
        logger.debug(
            "openai_embedding_batch",
            model=self._model,
            batch_size=len(texts),
            returned=len(items),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [list(item.embedding) for item in items]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "openai"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)


def _is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500
