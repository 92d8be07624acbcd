"""Composition root for the WordPress indexer.

Wires environment settings, the shared HTTP client, providers and
services into an :class:`IndexingPipeline`.  Components that depend on
the remote indexer settings (chunk sizes, embedding model, index
identity) are built by :func:`build_components` once those settings are
loaded, inside the pipeline run.
"""

from __future__ import annotations

from datetime import datetime

import httpx

from wp_indexer import __version__
from wp_indexer.config.loader import SettingsLoader
from wp_indexer.config.settings import Settings
from wp_indexer.interfaces.embedding_provider import IEmbeddingProvider
from wp_indexer.interfaces.vector_index import IVectorIndex
from wp_indexer.models.settings import IndexerSettings
from wp_indexer.models.vector import id_scheme_for
from wp_indexer.pipeline.orchestrator import IndexingPipeline, PipelineComponents
from wp_indexer.services.chunker import TextChunker
from wp_indexer.services.content_fetcher import WordPressContentFetcher
from wp_indexer.services.embedding_generator import EmbeddingGenerator
from wp_indexer.services.vector_store_gateway import VectorStoreGateway
from wp_indexer.utils.circuit_breaker import CircuitBreaker
from wp_indexer.utils.errors import ConfigurationError
from wp_indexer.utils.logging import get_logger
from wp_indexer.utils.rate_limiter import TokenBucketRateLimiter
from wp_indexer.utils.retry import RetryPolicy

logger = get_logger(__name__)

USER_AGENT = f"wp-ai-indexer/{__version__}"

# Upserts get a shorter backoff ceiling than embedding calls.
_UPSERT_MAX_DELAY = 30.0


def build_http_client(app_settings: Settings) -> httpx.AsyncClient:
    """Shared client for WordPress requests: auth, user agent, timeout."""
    auth = None
    if app_settings.wp_api_username and app_settings.wp_api_password:
        auth = httpx.BasicAuth(app_settings.wp_api_username, app_settings.wp_api_password)
    return httpx.AsyncClient(
        auth=auth,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        timeout=app_settings.timeout_seconds,
        follow_redirects=True,
    )


def build_embedding_provider(
    app_settings: Settings, settings: IndexerSettings
) -> IEmbeddingProvider:
    from wp_indexer.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

    return OpenAIEmbeddingProvider(
        api_key=app_settings.openai_api_key,
        model=settings.embedding_model,
        dimension=settings.embedding_dimension,
        timeout=app_settings.timeout_seconds,
    )


def build_vector_index(app_settings: Settings, settings: IndexerSettings) -> IVectorIndex:
    """Select the vector backend named by ``VECTOR_STORE_BACKEND``.

    Backend modules are imported lazily so the unused SDK is never loaded.
    """
    if app_settings.vector_store_backend == "chromadb":
        from wp_indexer.providers.vector_store.chromadb_provider import ChromaVectorIndex

        return ChromaVectorIndex(
            index_name=settings.vector_index_name,
            namespace=app_settings.wp_ai_namespace,
            persist_directory=app_settings.chromadb_persist_dir,
        )

    if not app_settings.pinecone_api_key:
        raise ConfigurationError("PINECONE_API_KEY is required for the pinecone backend")

    from wp_indexer.providers.vector_store.pinecone_provider import PineconeVectorIndex

    return PineconeVectorIndex(
        api_key=app_settings.pinecone_api_key,
        index_name=settings.vector_index_name,
        index_host=settings.vector_index_host,
        namespace=app_settings.wp_ai_namespace,
    )


def build_components(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
    settings: IndexerSettings,
    modified_after: datetime | None = None,
) -> PipelineComponents:
    """Build the run-scoped components for loaded *settings*."""
    embedder = EmbeddingGenerator(
        provider=build_embedding_provider(app_settings, settings),
        rate_limiter=TokenBucketRateLimiter(app_settings.wp_ai_embedding_rps, name="embedding"),
        circuit_breaker=CircuitBreaker(failure_threshold=5, reset_timeout=60.0, name="embedding"),
        retry_policy=RetryPolicy(name="embedding"),
        batch_size=settings.batch_size,
    )
    store = VectorStoreGateway(
        index=build_vector_index(app_settings, settings),
        domain=settings.domain,
        rate_limiter=TokenBucketRateLimiter(
            app_settings.wp_ai_vector_store_rps, name="vector_store"
        ),
        retry_policy=RetryPolicy(max_delay=_UPSERT_MAX_DELAY, name="vector_store"),
        expected_dimension=settings.embedding_dimension,
    )
    fetcher = WordPressContentFetcher(
        http_client=http_client,
        api_base=app_settings.wp_api_base,
        settings=settings,
        modified_after=modified_after,
    )
    logger.debug(
        "components_built",
        backend=app_settings.vector_store_backend,
        domain=settings.domain,
        batch_size=settings.batch_size,
    )
    return PipelineComponents(
        fetcher=fetcher,
        chunker=TextChunker(settings.chunk_size, settings.chunk_overlap),
        embedder=embedder,
        store=store,
        id_scheme=id_scheme_for(settings.schema_version),
    )


def build_pipeline(app_settings: Settings, http_client: httpx.AsyncClient) -> IndexingPipeline:
    """Assemble an :class:`IndexingPipeline` from environment settings.

    Raises
    ------
    ConfigurationError
        If required environment variables are missing.
    """
    missing = app_settings.missing_required()
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    def _factory(settings: IndexerSettings, modified_after: datetime | None) -> PipelineComponents:
        return build_components(app_settings, http_client, settings, modified_after)

    return IndexingPipeline(
        settings_loader=SettingsLoader(app_settings, http_client),
        components_factory=_factory,
        concurrency=app_settings.wp_ai_concurrency,
    )
