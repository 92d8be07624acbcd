"""Domain models for the WordPress indexer.

- document.py -- source documents, chunks and chunk statistics
- vector.py   -- vectors, index stats and the versioned vector id schemes
- settings.py -- the remote indexer settings document
- run.py      -- run phases, progress snapshots and operation results
"""

from wp_indexer.models.document import Chunk, ChunkStats, Document
from wp_indexer.models.run import (
    CleanResult,
    DeleteAllResult,
    RunError,
    RunPhase,
    RunProgress,
    RunResult,
)
from wp_indexer.models.settings import IndexerSettings
from wp_indexer.models.vector import (
    IndexStats,
    QueryMatch,
    Vector,
    VectorIdPage,
    VectorIdScheme,
    id_scheme_for,
)

__all__ = [
    "Chunk",
    "ChunkStats",
    "CleanResult",
    "DeleteAllResult",
    "Document",
    "IndexStats",
    "IndexerSettings",
    "QueryMatch",
    "RunError",
    "RunPhase",
    "RunProgress",
    "RunResult",
    "Vector",
    "VectorIdPage",
    "VectorIdScheme",
    "id_scheme_for",
]
