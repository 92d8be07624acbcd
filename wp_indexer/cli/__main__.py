# =============================================================================
# wp_indexer/cli/__main__.py -- Package Entry Point
# =============================================================================
#
# Enables running the CLI package itself as a module:
#     python -m wp_indexer.cli index
#
# Delegates to the indexer CLI (indexer.py), which is also installed as
# the ``wp-ai-indexer`` console script.
# =============================================================================

"""Allow ``python -m wp_indexer.cli`` execution."""

from wp_indexer.cli.indexer import main

main()
