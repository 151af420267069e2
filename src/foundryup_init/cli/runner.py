"""CLI runner orchestration.

This module parses arguments, builds the run configuration and dispatches
to the install command.
"""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Iterable, Mapping, Optional

from foundryup_init.cli.arguments import build_parser
from foundryup_init.cli.commands.install import InstallCommand, report_error
from foundryup_init.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS
from foundryup_init.config.loader import ConfigError, load_config
from foundryup_init.core.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


def get_version() -> str:
    """Get foundryup-init version.

    Returns:
        Version string from package metadata or fallback.
    """
    try:
        return version("foundryup-init")
    except PackageNotFoundError:
        # Fallback for editable installs that have not yet built metadata.
        from foundryup_init import __version__
        return __version__


class CLIRunner:
    """Orchestrates CLI execution."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        install_cmd: Optional[InstallCommand] = None,
    ) -> None:
        """Initialize CLIRunner with parser and command.

        Args:
            environ: Environment mapping (defaults to os.environ).
            install_cmd: Install command (built from ``environ`` if omitted).
        """
        self.parser = build_parser()
        self._version = get_version()
        self._environ = environ
        self.install_cmd = install_cmd or InstallCommand(environ=environ)

    def run(self, argv: Optional[Iterable[str]] = None) -> int:
        """Run the CLI.

        Args:
            argv: Command-line arguments (defaults to sys.argv).

        Returns:
            Exit code.
        """
        argv_list = list(sys.argv[1:] if argv is None else argv)
        args, passthrough = self.parser.parse_known_args(argv_list)

        if args.help:
            self.parser.print_help()
            return EXIT_SUCCESS

        if args.version:
            print(f"foundryup-init {self._version}")
            return EXIT_SUCCESS

        # Configure logging as early as possible
        configure_logging(verbose=args.verbose, quiet=args.quiet)

        try:
            config = load_config(args, passthrough, environ=self._environ)
        except ConfigError as e:
            report_error(e)
            return EXIT_INVALID_USAGE

        return self.install_cmd.execute(args, config)
