"""CLI package for safecmd.

This package contains the Typer application and all subcommands.
"""

from safecmd.cli.main import app

__all__ = ["app"]
