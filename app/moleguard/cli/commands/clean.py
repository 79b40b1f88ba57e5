"""Clean command: scan, confirm and delete cleanup candidates."""

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from moleguard.cli.types import load_engine_config, print_summary
from moleguard.core.engine import CleanupRun, RunOutcome
from moleguard.core.errors import RunLevelFault
from moleguard.core.report import DryRunReport
from moleguard.core.state import RunHistory
from moleguard.models.candidate import Category
from moleguard.models.result import Outcome
from moleguard.safety.whitelist import WhitelistStore
from moleguard.system.facts import MacSystemFacts
from moleguard.utils.formatting import (
    console,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    name="clean",
    help="Delete reclaimable files.",
    invoke_without_command=True,
)

_OUTCOME_STYLE: dict[Outcome, str] = {
    Outcome.DELETED: "success",
    Outcome.SIMULATED: "info",
    Outcome.SKIPPED: "muted",
    Outcome.REJECTED: "warning",
    Outcome.FAILED: "error",
}


@app.callback(invoke_without_command=True)
def clean(
    ctx: typer.Context,
    categories: Annotated[
        list[Category] | None,
        typer.Option(
            "--category",
            "-c",
            help="Category to clean (repeatable). Default: all selected by default.",
            case_sensitive=False,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    export_path: Annotated[
        Path | None,
        typer.Option("--export", "-e", help="Export the dry-run report to a JSON file."),
    ] = None,
) -> None:
    """Scan, confirm and clean.

    When categories are given explicitly, every unprotected candidate in
    them is selected, including categories that are off by default
    (Trash, failed backups).

    Examples:
        moleguard clean --dry-run           # Itemized report, nothing deleted
        moleguard clean -c trash -y         # Empty the Trash without asking
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_engine_config()
    facts = MacSystemFacts(timeout=config.timeouts.probe_seconds)
    run = CleanupRun(
        facts,
        config=config,
        whitelist=WhitelistStore(),
        dry_run=dry_run,
        history=RunHistory(),
    )

    try:
        summary = run.scan(categories)
    except RunLevelFault as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_summary(summary)

    if categories:
        selection = [c for c in summary.candidates if not c.protected]
    else:
        selection = [c for c in summary.candidates if c.selected_by_default]

    if not selection:
        print_success("Nothing to clean.")
        return

    total = sum(c.size_bytes for c in selection)
    run.confirm()
    if not dry_run and not yes:
        confirmed = typer.confirm(
            f"\nDelete {len(selection)} item(s), {format_size(total)}?",
            default=False,
        )
        if not confirmed:
            run.cancel()
            print_info("Aborted.")
            raise typer.Exit(code=0)

    outcome = run.execute(selection)

    if dry_run:
        report = outcome.report()
        _print_report(report)
        if export_path is not None:
            _export_report(report, export_path)
    else:
        _print_results(outcome)
        print_success(f"Freed {format_size(outcome.freed_bytes)} ({outcome.items_cleaned} items)")

    if outcome.errors:
        print_warning(f"{len(outcome.errors)} item(s) could not be removed")
        raise typer.Exit(code=1)


def _print_report(report: DryRunReport) -> None:
    """Print a dry-run report as a Rich table."""
    table = Table(title="Dry Run", header_style="bold_header", border_style="border")
    table.add_column("Path", overflow="fold")
    table.add_column("Size", style="info", justify="right")
    table.add_column("Category", style="muted")

    for row in report.rows:
        category = row.category.value if row.category is not None else "-"
        table.add_row(row.path, format_size(row.size_bytes), category)

    table.caption = f"Would free {format_size(report.total_bytes)}"
    console.print(table)


def _print_results(outcome: RunOutcome) -> None:
    """Print per-item results that need attention."""
    notable = [r for r in outcome.results if r.outcome != Outcome.DELETED]
    if not notable:
        return

    table = Table(title="Not Deleted", header_style="bold_header", border_style="border")
    table.add_column("Path", overflow="fold")
    table.add_column("Outcome", width=10)
    table.add_column("Details", style="muted")

    for r in notable:
        style = _OUTCOME_STYLE[r.outcome]
        reason = r.rejection.value if r.rejection is not None else (r.detail or "")
        table.add_row(r.path, f"[{style}]{r.outcome.value}[/]", reason)

    console.print(table)


def _export_report(report: DryRunReport, export_path: Path) -> None:
    """Write a dry-run report to a JSON file."""
    export_path = export_path.resolve()
    if export_path.is_dir():
        print_error(f"Export path is a directory: {export_path}")
        raise typer.Exit(code=1)
    try:
        export_path.parent.mkdir(parents=True, exist_ok=True)
        export_path.write_text(report.to_json())
        print_info(f"Report exported to {export_path}")
    except OSError as e:
        print_error(f"Failed to export: {e}")
        raise typer.Exit(code=1) from e
