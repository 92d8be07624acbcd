"""Abstract interfaces for the indexer's external services.

The pipeline only talks to embedding models and vector indexes through
these ABCs; concrete adapters live in ``wp_indexer/providers/`` and are
selected in ``wp_indexer/main.py``.

    Interface            ->  Concrete implementations
    -----------------------------------------------------------------
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider
    IVectorIndex         ->  PineconeVectorIndex, ChromaVectorIndex
"""

from wp_indexer.interfaces.embedding_provider import IEmbeddingProvider
from wp_indexer.interfaces.vector_index import IVectorIndex

__all__ = ["IEmbeddingProvider", "IVectorIndex"]
