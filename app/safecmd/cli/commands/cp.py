"""Trash-first cp command.

Copies files and directories within the allowed scope. Existing targets
are moved to the trash before they are overwritten.
"""

from pathlib import Path
from typing import Annotated

import typer

from safecmd.cli.display import create_copy_table
from safecmd.core.config import require_config
from safecmd.policy.copier import Copier
from safecmd.policy.errors import SafecmdError
from safecmd.policy.models import invocation_succeeded
from safecmd.utils.formatting import console, print_error


def copy(
    ctx: typer.Context,
    paths: Annotated[
        list[Path],
        typer.Argument(
            help="Source paths followed by the target path.",
            metavar="SOURCE... TARGET",
        ),
    ],
    recursive: Annotated[
        bool,
        typer.Option("--recursive", "-r", "-R", help="Copy directories recursively."),
    ] = False,
    no_clobber: Annotated[
        bool,
        typer.Option("--no-clobber", "-n", help="Do not overwrite existing files."),
    ] = False,
) -> None:
    """Copy files, moving replaced targets to the trash."""
    obj = ctx.obj or {}
    if len(paths) < 2:
        print_error(f"missing destination file operand after '{paths[0]}'")
        raise typer.Exit(code=1)

    config = require_config()
    *sources, target = paths

    try:
        copier = Copier(config.to_scope_config(), config.resolution_context())
        results = copier.copy(sources, target, recursive=recursive, no_clobber=no_clobber)
    except SafecmdError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    for result in results:
        if result.failed:
            print_error(result.error or f"cannot copy '{result.source}'")

    if obj.get("verbose") and not obj.get("quiet"):
        console.print(create_copy_table(results))

    if not invocation_succeeded(results):
        raise typer.Exit(code=1)
