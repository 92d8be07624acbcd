"""wp_indexer -- index WordPress content into a vector store for semantic search."""

__version__ = "1.0.0"
