"""Command-line interface for the WordPress AI indexer.

Usage::

    wp-ai-indexer index [--since 2024-01-01] [--debug]
    wp-ai-indexer clean
    wp-ai-indexer delete-all [--yes]
    wp-ai-indexer config

Configuration comes from environment variables (or a ``.env`` file); run
``wp-ai-indexer config`` to see which are set.  Exit code is 0 on success
and 1 on any failure.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime
from typing import TYPE_CHECKING

from wp_indexer.config.settings import ENVIRONMENT_VARIABLES, Settings
from wp_indexer.utils.errors import IndexerError
from wp_indexer.utils.logging import configure_logging

if TYPE_CHECKING:
    from wp_indexer.models.run import RunPhase, RunProgress
    from wp_indexer.pipeline.orchestrator import IndexingPipeline

_DELETE_CONFIRMATION = "DELETE"
_ERRORS_SHOWN = 10


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_index(args: argparse.Namespace, pipeline: IndexingPipeline) -> int:
    """Run a full index and print the summary."""
    since = args.since
    print("Indexing WordPress content" + (f" modified after {since.isoformat()}" if since else ""))
    print()

    def _print_phase(phase: RunPhase, progress: RunProgress) -> None:
        print(f"  -> {phase.value.replace('_', ' ').lower()}")

    pipeline.tracker.register_listener(_print_phase)
    result = await pipeline.index(modified_after=since)

    stats = result.stats
    print()
    print("Index Summary")
    print("=" * 40)
    print(f"  Documents:        {stats.processed_documents}/{stats.total_documents}")
    print(f"  Chunks upserted:  {stats.processed_chunks}")
    print(f"  Errors:           {len(result.errors)}")
    if result.store_stats is not None:
        print(f"  Vectors in index: {result.store_stats.total_vector_count}")
    print(f"  Elapsed:          {result.elapsed_seconds:.1f}s")

    if result.errors:
        print("\n  Errors:")
        for error in result.errors[:_ERRORS_SHOWN]:
            prefix = f"[document {error.document_id}] " if error.document_id is not None else ""
            print(f"    - {prefix}{error.message}")
        if len(result.errors) > _ERRORS_SHOWN:
            print(f"    ... and {len(result.errors) - _ERRORS_SHOWN} more")

    return 0 if result.success else 1


async def _handle_clean(pipeline: IndexingPipeline) -> int:
    """Delete vectors of documents that no longer exist."""
    result = await pipeline.clean()
    if result.skipped:
        print("Cleanup is disabled in the indexer settings (clean_deleted). Nothing to do.")
        return 0

    print("Cleanup Summary")
    print("=" * 40)
    print(f"  Live documents:     {result.live_document_count}")
    print(f"  Stored vectors:     {result.stored_vector_count}")
    print(f"  Orphaned documents: {len(result.orphaned_document_ids)}")
    print(f"  Vectors deleted:    {result.deleted_vector_count}")
    return 0


async def _handle_delete_all(args: argparse.Namespace, pipeline: IndexingPipeline) -> int:
    """Delete every vector for this site, after confirmation."""
    if not args.yes:
        print("This will delete ALL vectors for this site from the vector index.")
        answer = input(f"Type {_DELETE_CONFIRMATION} to confirm: ").strip()
        if answer != _DELETE_CONFIRMATION:
            print("Aborted.")
            return 0

    result = await pipeline.delete_all()
    print(f"\n  Deleted {result.deleted_vector_count} vectors.")
    if result.before is not None and result.after is not None:
        print(
            f"  Index vectors: {result.before.total_vector_count} -> "
            f"{result.after.total_vector_count}"
        )
    return 0


def _handle_config(app_settings: Settings) -> int:
    """Print the environment configuration, masking secrets."""
    print("Environment Configuration")
    print("=" * 40)
    for name, secret in ENVIRONMENT_VARIABLES:
        value = getattr(app_settings, name.lower(), "")
        is_set = name.lower() in app_settings.model_fields_set
        if secret and value:
            shown = "********"
        else:
            shown = str(value) if value not in ("", None) else "-"
        marker = "set" if is_set else "default"
        print(f"  {name:<24} {marker:<8} {shown}")

    missing = app_settings.missing_required()
    print()
    if missing:
        print("Missing required variables: " + ", ".join(missing))
        return 1
    print(f"All required variables are set. Domain: {app_settings.domain}")
    return 0


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    """Build the pipeline around a shared HTTP client and dispatch."""
    from wp_indexer.main import build_http_client, build_pipeline

    async with build_http_client(app_settings) as http_client:
        pipeline = build_pipeline(app_settings, http_client)
        if args.command == "index":
            return await _handle_index(args, pipeline)
        if args.command == "clean":
            return await _handle_clean(pipeline)
        return await _handle_delete_all(args, pipeline)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _parse_since(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid date {value!r}; expected ISO format such as 2024-01-31"
        ) from None


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the indexer CLI."""
    parser = argparse.ArgumentParser(
        prog="wp-ai-indexer",
        description="Index WordPress content into a vector store for semantic search.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Indexer commands")

    debug_parent = argparse.ArgumentParser(add_help=False)
    debug_parent.add_argument("--debug", action="store_true", help="Enable debug logging")

    index_parser = subparsers.add_parser(
        "index", parents=[debug_parent], help="Index all published content"
    )
    index_parser.add_argument(
        "--since",
        type=_parse_since,
        default=None,
        help="Only index content modified after this ISO date",
    )

    subparsers.add_parser(
        "clean", parents=[debug_parent], help="Remove vectors for deleted content"
    )

    delete_parser = subparsers.add_parser(
        "delete-all", parents=[debug_parent], help="Delete every vector for this site"
    )
    delete_parser.add_argument(
        "--yes", "-y", action="store_true", help="Skip the confirmation prompt"
    )

    subparsers.add_parser("config", help="Show environment configuration")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point; exits with the command's status code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    log_level = "DEBUG" if getattr(args, "debug", False) else app_settings.effective_log_level
    configure_logging(log_level=log_level)

    if args.command == "config":
        sys.exit(_handle_config(app_settings))

    try:
        exit_code = asyncio.run(_run(args, app_settings))
    except IndexerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
