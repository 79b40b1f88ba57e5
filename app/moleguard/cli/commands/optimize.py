"""Optimize command: network reset, DNS flush, index rebuild, swap clear."""

from typing import Annotated

import typer

from moleguard.cli.types import load_engine_config
from moleguard.core.errors import OperationInterrupted
from moleguard.models.result import Outcome
from moleguard.operations.optimizer import OptimizerActions, OptimizerResult
from moleguard.system.facts import MacSystemFacts
from moleguard.utils.formatting import print_error, print_info, print_success, print_warning

app = typer.Typer(
    name="optimize",
    help="Run system optimizer actions.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def optimize(
    ctx: typer.Context,
    network: Annotated[
        bool,
        typer.Option("--network", help="Cycle the network interface."),
    ] = False,
    dns: Annotated[
        bool,
        typer.Option("--dns", help="Flush the DNS cache."),
    ] = False,
    index: Annotated[
        bool,
        typer.Option("--index", help="Rebuild the Spotlight index."),
    ] = False,
    swap: Annotated[
        bool,
        typer.Option("--swap", help="Clear swap files."),
    ] = False,
    interface: Annotated[
        str | None,
        typer.Option("--interface", "-i", help="Interface to cycle (default from config)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would run."),
    ] = False,
) -> None:
    """Run the selected optimizer actions (DNS flush if none given)."""
    if ctx.invoked_subcommand is not None:
        return

    config = load_engine_config()
    facts = MacSystemFacts(timeout=config.timeouts.probe_seconds)
    actions = OptimizerActions(facts, dry_run=dry_run, timeouts=config.timeouts)

    if not (network or dns or index or swap):
        dns = True

    results: list[OptimizerResult] = []
    try:
        if dns:
            results.append(actions.flush_dns())
        if network:
            results.append(actions.cycle_network(interface or config.network_interface))
        if index:
            results.append(actions.rebuild_search_index())
        if swap:
            results.append(actions.clear_swap())
    except OperationInterrupted as e:
        print_warning(f"{e}; system state restored")
        raise typer.Exit(code=130) from e

    failed = False
    for result in results:
        name = result.action.value.replace("_", " ")
        if result.outcome == Outcome.FAILED:
            failed = True
            print_error(f"{name}: {result.detail}")
        elif result.outcome == Outcome.SKIPPED:
            print_warning(f"{name}: {result.detail}")
        elif result.outcome == Outcome.SIMULATED:
            print_info(f"{name}: {result.detail}")
        else:
            print_success(f"{name}: done")

    if failed:
        raise typer.Exit(code=1)
