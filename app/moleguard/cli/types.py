"""Shared types and utilities for CLI commands.

This module provides helpers used across multiple CLI command modules
to avoid code duplication.
"""

import typer
from rich.table import Table

from moleguard.core.config import EngineConfig, load_config
from moleguard.core.errors import ConfigError
from moleguard.models.candidate import CategoryScan, CategoryStatus, ScanSummary
from moleguard.utils.formatting import console, format_size, print_error


def load_engine_config() -> EngineConfig:
    """Load the engine configuration, exiting with code 1 on errors."""
    try:
        return load_config()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def _status_cell(scan: CategoryScan) -> str:
    if scan.status == CategoryStatus.OK:
        return "[success]ok[/]"
    return f"[warning]{scan.status.value}[/]"


def print_summary(summary: ScanSummary) -> None:
    """Print per-category totals of a scan as a Rich table."""
    table = Table(
        title="Cleanup Categories",
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Category", no_wrap=True)
    table.add_column("Status", width=12)
    table.add_column("Items", justify="right")
    table.add_column("Size", style="info", justify="right")
    table.add_column("Protected", style="protected", justify="right")
    table.add_column("Detail", style="muted")

    for scan in summary.scans:
        table.add_row(
            scan.category.display_name,
            _status_cell(scan),
            str(len(scan.candidates)),
            format_size(scan.total_bytes),
            format_size(scan.protected_bytes) if scan.protected_bytes else "-",
            scan.detail or "",
        )

    table.caption = f"Total reclaimable: {format_size(summary.total_bytes)}"
    console.print(table)
