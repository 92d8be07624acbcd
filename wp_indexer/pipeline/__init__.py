"""Pipeline orchestration for index, clean and delete-all runs."""

from wp_indexer.pipeline.orchestrator import IndexingPipeline, PipelineComponents, build_vectors
from wp_indexer.pipeline.progress_tracker import RunProgressTracker

__all__ = [
    "IndexingPipeline",
    "PipelineComponents",
    "RunProgressTracker",
    "build_vectors",
]
