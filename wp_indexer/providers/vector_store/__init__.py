"""Vector index implementations.

- PineconeVectorIndex -- hosted Pinecone index (default backend).
- ChromaVectorIndex   -- local persistent ChromaDB collection, for
  development and offline runs.

Nothing is re-exported here: main.py imports the selected backend
lazily so the other SDK is never loaded.
"""
