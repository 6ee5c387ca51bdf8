"""Trash-first rm command.

Moves files and directories to the trash after scope and protection
checks. Flags mirror rm: -r, -f and -d.
"""

from pathlib import Path
from typing import Annotated

import typer

from safecmd.cli.display import create_results_table, print_results_summary
from safecmd.core.config import require_config
from safecmd.policy.errors import SafecmdError
from safecmd.policy.models import TrashResult, invocation_succeeded
from safecmd.policy.remover import Remover
from safecmd.utils.formatting import console, print_error


def remove(
    ctx: typer.Context,
    paths: Annotated[
        list[Path],
        typer.Argument(help="Paths to files or directories to trash."),
    ],
    recursive: Annotated[
        bool,
        typer.Option("--recursive", "-r", help="Recursively remove directories."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Ignore non-existent files and skip protected entries inside directories.",
        ),
    ] = False,
    allow_dir: Annotated[
        bool,
        typer.Option("--dir", "-d", help="Allow removing empty directories."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be moved to the trash."),
    ] = False,
) -> None:
    """Move files or directories to the trash."""
    obj = ctx.obj or {}
    config = require_config()

    try:
        remover = Remover(
            config.to_scope_config(),
            config.resolution_context(),
            dry_run=dry_run,
        )
        results = remover.delete(
            paths,
            recursive=recursive,
            force=force,
            allow_empty_dirs=allow_dir,
        )
    except SafecmdError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    _print_failures(results)

    if (dry_run or obj.get("verbose")) and not obj.get("quiet"):
        console.print(create_results_table(results, dry_run=dry_run))
        print_results_summary(results)

    if not invocation_succeeded(results):
        raise typer.Exit(code=1)


# === Private helper functions ===


def _print_failures(results: list[TrashResult]) -> None:
    """Print one error line per failed path."""
    for result in results:
        if result.failed:
            print_error(result.error or f"failed to remove '{result.path}'")
