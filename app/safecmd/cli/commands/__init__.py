"""CLI commands for safecmd.

This package contains all subcommand implementations.
"""

from safecmd.cli.commands import config, cp, rm

__all__ = ["config", "cp", "rm"]
