# =============================================================================
# wp_indexer/cli/__init__.py -- CLI Module Overview
# =============================================================================
#
# Command-line entry point for operators.  One module, four commands:
#
#   index       Fetch all published content, chunk, embed and upsert.
#               --since limits the run to content modified after a date.
#   clean       Delete vectors whose source documents no longer exist.
#   delete-all  Delete every vector of the site (asks for confirmation).
#   config      Show which environment variables are set, secrets masked.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Heavy imports (provider SDKs, the composition root) are deferred
#     inside functions so ``config`` runs without loading them.
#   - Handlers take the pipeline as a parameter and return an exit code,
#     which keeps them testable with mocks.
# =============================================================================

"""CLI for the WordPress indexer (``python -m wp_indexer.cli``)."""
