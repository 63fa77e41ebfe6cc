"""CLI package for LogLens command orchestration."""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from LogLens.cli.runner import CommandRunner
from LogLens.cli.ui import cli


def main() -> None:
    """Run LogLens CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
