"""History command for viewing past cleanup runs."""

import json
from datetime import datetime
from typing import Annotated

import typer
from rich.table import Table

from moleguard.core.state import RunHistory
from moleguard.models.history import RunHistoryEntry
from moleguard.utils.formatting import console, format_size, print_info

app = typer.Typer(
    name="history",
    help="View past cleanup runs.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of entries to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show recent cleanup runs, newest first.

    Examples:
        moleguard history           # Show last 20 runs
        moleguard history --json    # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    entries = RunHistory().entries(limit=limit)
    if not entries:
        print_info("No cleanup runs recorded yet.")
        return

    if json_output:
        console.print(json.dumps([e.to_dict() for e in entries], indent=2))
    else:
        _print_table(entries)


def _print_table(entries: list[RunHistoryEntry]) -> None:
    """Print history as Rich table."""
    table = Table(title="Cleanup History", header_style="bold_header", border_style="border")
    table.add_column("ID", style="muted")
    table.add_column("Timestamp", style="info")
    table.add_column("Freed", justify="right", style="success")
    table.add_column("Items", justify="right")
    table.add_column("Categories")
    table.add_column("Errors", justify="right", style="warning")

    for entry in entries:
        table.add_row(
            entry.id[:8],
            _format_timestamp(entry.timestamp),
            format_size(entry.freed_bytes),
            str(entry.items_cleaned),
            ", ".join(entry.categories),
            str(entry.errors) if entry.errors else "",
        )

    console.print(table)


def _format_timestamp(iso_timestamp: str) -> str:
    """Format an ISO timestamp as YYYY-MM-DD HH:MM."""
    dt = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    return dt.strftime("%Y-%m-%d %H:%M")
