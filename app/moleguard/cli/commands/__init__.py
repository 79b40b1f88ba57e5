"""CLI commands for moleguard.

This package contains all subcommand implementations.
"""

from moleguard.cli.commands import check, clean, history, optimize, scan, whitelist

__all__ = ["check", "clean", "history", "optimize", "scan", "whitelist"]
