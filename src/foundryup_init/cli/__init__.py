"""Command-line interface for foundryup-init."""

from __future__ import annotations

from typing import Iterable, Optional

from foundryup_init.cli.runner import CLIRunner


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Entry point for the ``foundryup-init`` console script."""
    runner = CLIRunner()
    return runner.run(argv)


__all__ = ["main", "CLIRunner"]
