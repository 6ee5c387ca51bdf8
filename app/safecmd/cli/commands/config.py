"""Config inspection commands.

Provides commands to locate, create and display the safecmd config file.
"""

from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from safecmd.core.config import ConfigError, create_default_config, require_config
from safecmd.core.paths import get_config_path, is_scope_disabled
from safecmd.utils.formatting import console, print_error, print_info, print_success, print_warning

app = typer.Typer(
    help="Inspect the safecmd config file.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def path() -> None:
    """Print the config file location."""
    console.print(escape(str(get_config_path())))


@app.command()
def init(
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", help="Replace an existing config file."),
    ] = False,
) -> None:
    """Create a default config file."""
    config_path = get_config_path()
    if config_path.exists() and not overwrite:
        print_info(f"Config already exists: {config_path}")
        return

    try:
        create_default_config(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {config_path}")


@app.command()
def show() -> None:
    """Show allowed directories and globally allowed patterns."""
    config = require_config()

    table = Table(
        title=f"safecmd config ({escape(str(get_config_path()))})",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Setting", width=30)
    table.add_column("Value")

    for directory in config.additional_allowed_directories.paths:
        table.add_row("additional_allowed_directories", escape(str(directory)))
    for pattern in config.allowed_gitignores.patterns:
        table.add_row("allowed_gitignores", escape(pattern))

    if table.row_count == 0:
        print_info("No additional directories or allowed patterns configured.")
    else:
        console.print(table)

    if is_scope_disabled():
        print_warning("Directory scope restriction is disabled by SAFECMD_DISABLE_SCOPE.")
