"""CLI commands for BazaarTrack.

This package provides the command-line interface for BazaarTrack,
including collection and analytics commands.
"""

from bazaartrack.cli.main import cli, main

__all__ = ["cli", "main"]
