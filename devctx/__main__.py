"""Main entry point when executing devctx as a package.

This allows running the package using python -m devctx.
"""

from devctx.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
