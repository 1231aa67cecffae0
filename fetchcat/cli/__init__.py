"""Command line interface."""

from fetchcat.cli.main import cli, main


__all__ = ["cli", "main"]
