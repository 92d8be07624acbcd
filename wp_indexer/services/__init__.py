"""Indexing services: fetch, chunk, embed, store."""

from wp_indexer.services.chunker import TextChunker, chunk_stats, split_text
from wp_indexer.services.content_fetcher import WordPressContentFetcher
from wp_indexer.services.embedding_generator import EmbeddingGenerator
from wp_indexer.services.vector_store_gateway import VectorStoreGateway

__all__ = [
    "EmbeddingGenerator",
    "TextChunker",
    "VectorStoreGateway",
    "WordPressContentFetcher",
    "chunk_stats",
    "split_text",
]
