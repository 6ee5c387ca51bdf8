"""Shared Rich display functions for trash and copy results."""

from rich.markup import escape
from rich.table import Table

from safecmd.policy.models import CopyResult, TrashResult
from safecmd.utils.formatting import console, print_success


def create_results_table(results: list[TrashResult], dry_run: bool = False) -> Table:
    """Create a Rich table displaying trash results.

    Builds a formatted table with Status, Path and Details columns. Moved
    entries show how they were moved, skipped entries the reason, and
    failed entries the error message.

    Args:
        results: List of trash results to display.
        dry_run: Whether this is a dry-run (changes table title).

    Returns:
        Rich Table configured for results display.
    """
    title = "Trash Results (Dry Run)" if dry_run else "Trash Results"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=9, justify="center")
    table.add_column("Path", no_wrap=True)
    table.add_column("Details")

    for result in results:
        if result.failed:
            status = "[error]FAIL[/error]"
            detail = result.error or "Unknown error"
        elif result.skipped:
            status = "[skipped]skip[/skipped]"
            detail = result.reason or ""
        elif result.dry_run:
            status = "[info]dry-run[/info]"
            detail = result.reason or "Would move to trash"
        else:
            status = "[moved]moved[/moved]"
            detail = result.reason or ""

        table.add_row(status, escape(str(result.path)), f"[muted]{escape(detail)}[/muted]")

    return table


def print_results_summary(results: list[TrashResult]) -> None:
    """Print a summary of trash results.

    Shows a success message when nothing failed, or the counts of moved,
    skipped and failed paths otherwise.

    Args:
        results: List of trash results.
    """
    moved = sum(1 for r in results if r.moved)
    skipped = sum(1 for r in results if r.skipped)
    failed = sum(1 for r in results if r.failed)

    if failed == 0:
        print_success(f"{moved} path(s) moved to trash, {skipped} skipped.")
    else:
        console.print(
            f"\n[moved]{moved} moved[/moved], [skipped]{skipped} skipped[/skipped], "
            f"[error]{failed} failed[/error]"
        )


def create_copy_table(results: list[CopyResult]) -> Table:
    """Create a Rich table displaying copy results.

    Args:
        results: List of copy results to display.

    Returns:
        Rich Table with Status, Source, Target and Details columns.
    """
    table = Table(
        title="Copy Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=9, justify="center")
    table.add_column("Source", no_wrap=True)
    table.add_column("Target", no_wrap=True)
    table.add_column("Details")

    for result in results:
        if result.failed:
            status = "[error]FAIL[/error]"
            detail = result.error or "Unknown error"
        elif result.skipped:
            status = "[skipped]skip[/skipped]"
            detail = result.reason or ""
        else:
            status = "[moved]copied[/moved]"
            detail = f"replaced {result.replaced} (moved to trash)" if result.replaced else ""

        table.add_row(
            status,
            escape(str(result.source)),
            escape(str(result.target)),
            f"[muted]{escape(detail)}[/muted]",
        )

    return table
