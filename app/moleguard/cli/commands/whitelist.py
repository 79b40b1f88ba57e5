"""Whitelist commands: protect paths from cleanup."""

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from moleguard.core.errors import WhitelistError
from moleguard.safety.whitelist import WhitelistStore
from moleguard.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage protected paths.",
    no_args_is_help=True,
)


def _load_store() -> WhitelistStore:
    try:
        return WhitelistStore().load()
    except WhitelistError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


@app.command()
def add(
    path: Annotated[Path, typer.Argument(help="Path to protect (and everything below it).")],
    label: Annotated[
        str,
        typer.Option("--label", "-l", help="Why the path is protected."),
    ] = "",
) -> None:
    """Protect a path from cleanup."""
    store = _load_store()
    try:
        entry = store.add(path, label)
    except (ValueError, WhitelistError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Protected {entry.path} ({entry.id})")


@app.command()
def remove(
    entry_id: Annotated[str, typer.Argument(help="Entry ID shown by 'whitelist list'.")],
) -> None:
    """Remove a whitelist entry."""
    store = _load_store()
    try:
        removed = store.remove(entry_id)
    except WhitelistError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    if not removed:
        print_error(f"No whitelist entry with ID {entry_id}")
        raise typer.Exit(code=1)
    print_success(f"Removed whitelist entry {entry_id}")


@app.command("list")
def list_entries() -> None:
    """List protected paths."""
    entries = _load_store().list()
    if not entries:
        print_info("No protected paths.")
        return

    table = Table(title="Protected Paths", header_style="bold_header", border_style="border")
    table.add_column("ID", style="muted")
    table.add_column("Path", style="protected", overflow="fold")
    table.add_column("Label")
    table.add_column("Added", style="muted")

    for entry in entries:
        table.add_row(entry.id, entry.path, entry.label, entry.created_at[:10])

    console.print(table)
