"""Scan command: list cleanup candidates without touching anything."""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from moleguard.cli.types import load_engine_config, print_summary
from moleguard.core.engine import CleanupRun
from moleguard.core.errors import RunLevelFault
from moleguard.models.candidate import Category, ScanSummary
from moleguard.safety.whitelist import WhitelistStore
from moleguard.system.facts import MacSystemFacts
from moleguard.utils.formatting import console, format_size, print_error

app = typer.Typer(
    name="scan",
    help="Scan for reclaimable space.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def scan(
    ctx: typer.Context,
    categories: Annotated[
        list[Category] | None,
        typer.Option(
            "--category",
            "-c",
            help="Category to scan (repeatable). Default: all.",
            case_sensitive=False,
        ),
    ] = None,
    root: Annotated[
        Path | None,
        typer.Option("--root", help="Scan below this directory instead of the defaults."),
    ] = None,
    details: Annotated[
        bool,
        typer.Option("--details", "-d", help="List every candidate."),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
) -> None:
    """Scan cleanup categories and show what could be reclaimed.

    Examples:
        moleguard scan                      # All categories
        moleguard scan -c user_cache -d     # One category, itemized
        moleguard scan --json               # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_engine_config()
    facts = MacSystemFacts(timeout=config.timeouts.probe_seconds)
    run = CleanupRun(facts, config=config, whitelist=WhitelistStore(), dry_run=True)

    try:
        summary = run.scan(categories, root=root)
    except RunLevelFault as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if json_output:
        _print_json(summary)
        return

    print_summary(summary)
    if details:
        _print_candidates(summary)


def _print_candidates(summary: ScanSummary) -> None:
    """Print every candidate as a Rich table."""
    table = Table(title="Candidates", header_style="bold_header", border_style="border")
    table.add_column("Name", no_wrap=True)
    table.add_column("Category", style="muted")
    table.add_column("Size", style="info", justify="right")
    table.add_column("Path", style="muted", overflow="fold")

    for c in summary.candidates:
        name = f"[protected]{c.name}[/] (protected)" if c.protected else (c.name or c.path)
        table.add_row(name, c.category.value, format_size(c.size_bytes), c.path)

    console.print(table)


def _print_json(summary: ScanSummary) -> None:
    """Print scan results as JSON."""
    data = [
        {
            "category": s.category.value,
            "status": s.status.value,
            "detail": s.detail,
            "total_bytes": s.total_bytes,
            "candidates": [
                {
                    "path": c.path,
                    "name": c.name,
                    "size_bytes": c.size_bytes,
                    "protected": c.protected,
                    "protection_reason": c.protection_reason,
                    "last_accessed": c.last_accessed.isoformat() if c.last_accessed else None,
                }
                for c in s.candidates
            ],
            "skipped": [{"path": k.path, "reason": k.reason} for k in s.skipped],
        }
        for s in summary.scans
    ]
    console.print_json(json.dumps(data))
