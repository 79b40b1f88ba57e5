"""CLI package for moleguard.

This package contains the Typer application and all subcommands.
"""

from moleguard.cli.main import app

__all__ = ["app"]
