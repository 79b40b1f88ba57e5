"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from typing import Annotated

import typer

from moleguard import __version__
from moleguard.cli.commands import check, clean, history, optimize, scan, whitelist
from moleguard.utils.formatting import configure_logging

app = typer.Typer(
    name="moleguard",
    help="Safe cleanup engine for macOS.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"moleguard version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """moleguard - Scan and clean caches, logs and leftovers without risking data."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


app.add_typer(scan.app, name="scan")
app.add_typer(clean.app, name="clean")
app.add_typer(whitelist.app, name="whitelist")
app.add_typer(history.app, name="history")
app.add_typer(optimize.app, name="optimize")
app.add_typer(check.app, name="check")


if __name__ == "__main__":
    app()
