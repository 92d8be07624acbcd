"""Embedding provider implementations.

OpenAIEmbeddingProvider calls the OpenAI embeddings endpoint
(text-embedding-3-small by default, 1536 dims) and maps SDK errors onto
TransientError / PermanentError for the retry layer.
"""

from wp_indexer.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
