"""Check command: find and repair broken preference and login item files."""

from typing import Annotated

import typer
from rich.table import Table

from moleguard.cli.types import load_engine_config
from moleguard.models.result import Outcome
from moleguard.operations.maintenance import ConfigMaintenance
from moleguard.operations.remover import SafeRemover
from moleguard.system.facts import MacSystemFacts
from moleguard.utils.formatting import console, print_info, print_success, print_warning

app = typer.Typer(
    name="check",
    help="Check for broken configuration files.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def check(
    ctx: typer.Context,
    fix: Annotated[
        bool,
        typer.Option("--fix", help="Remove the broken files."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="With --fix, show what would be removed."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    records: Annotated[
        bool,
        typer.Option("--records", help="Print pipe-delimited issue records only."),
    ] = False,
) -> None:
    """Find broken preference files and login items."""
    if ctx.invoked_subcommand is not None:
        return

    config = load_engine_config()
    facts = MacSystemFacts(timeout=config.timeouts.probe_seconds)
    maintenance = ConfigMaintenance(
        facts,
        remover=SafeRemover(dry_run=dry_run, timeouts=config.timeouts),
        timeouts=config.timeouts,
    )

    if records:
        for issue in maintenance.check():
            typer.echo(issue.to_record())
        return

    broken = maintenance.find_broken()
    skipped = maintenance.skipped
    for item in skipped:
        print_warning(f"Skipped {item.path}: {item.reason}")
    if not broken:
        if skipped:
            print_warning("Check incomplete: some directories could not be read.")
        else:
            print_success("No broken configuration files found.")
        return

    table = Table(title="Broken Configuration Files", header_style="bold_header")
    table.add_column("Path", overflow="fold")
    table.add_column("Kind", style="muted")
    table.add_column("Reason", style="warning")
    for item in broken:
        table.add_row(item.path, item.kind.value, item.reason)
    console.print(table)

    if not fix:
        print_info("Run with --fix to remove them.")
        return

    if not dry_run and not yes:
        if not typer.confirm(f"\nRemove {len(broken)} file(s)?", default=False):
            print_info("Aborted.")
            raise typer.Exit(code=0)

    results = maintenance.repair(broken)
    problems = [r for r in results if r.outcome not in (Outcome.DELETED, Outcome.SIMULATED)]
    for r in problems:
        print_warning(f"{r.path}: {r.detail or r.outcome.value}")
    done = len(results) - len(problems)
    print_success(f"{'Would remove' if dry_run else 'Removed'} {done} file(s)")
    if problems:
        raise typer.Exit(code=1)
