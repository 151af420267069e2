"""Install command implementation."""

from __future__ import annotations

import os
import subprocess
import sys
from argparse import Namespace
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

import questionary
from questionary import Style

from foundryup_init.bootstrap.download import Transport
from foundryup_init.bootstrap.installer import Installer, InstallResult, VerificationOutcome
from foundryup_init.bootstrap.verification import HashVerifier
from foundryup_init.cli.commands import Command
from foundryup_init.cli.exit_codes import EXIT_INSTALL_FAILURE, EXIT_INTERRUPTED
from foundryup_init.config.models import InstallerConfig
from foundryup_init.core.errors import InstallerError
from foundryup_init.core.logging import get_logger

LOGGER = get_logger(__name__)

STYLE = Style([
    ("qmark", "fg:cyan bold"),
    ("question", "bold"),
    ("answer", "fg:cyan"),
])


def report_error(error: InstallerError) -> None:
    """Log a fatal error as a single prefixed line."""
    if error.hint:
        LOGGER.error(f"{error} (hint: {error.hint})")
    else:
        LOGGER.error(str(error))


class InstallCommand(Command):
    """Installs foundryup and hands off to it."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        transport_factory: Callable[[], Transport] = Transport.detect,
        verifier_factory: Callable[[], HashVerifier] = HashVerifier.detect,
        installer_factory: Callable[..., Installer] = Installer,
        stdin_isatty: Optional[Callable[[], bool]] = None,
    ):
        """Initialize InstallCommand.

        Args:
            environ: Environment used for PATH advice (defaults to os.environ).
            transport_factory: Creates the download transport.
            verifier_factory: Creates the hash verifier.
            installer_factory: Creates the Installer.
            stdin_isatty: Reports whether a confirmation prompt can be shown.
        """
        self._environ = os.environ if environ is None else environ
        self._transport_factory = transport_factory
        self._verifier_factory = verifier_factory
        self._installer_factory = installer_factory
        self._stdin_isatty = stdin_isatty or sys.stdin.isatty

    @property
    def name(self) -> str:
        """Command identifier."""
        return "install"

    def execute(self, args: Namespace, config: InstallerConfig) -> int:
        """Execute the install command.

        Args:
            args: Parsed command-line arguments.
            config: Run configuration.

        Returns:
            Exit code.
        """
        try:
            transport = self._transport_factory()
            verifier = self._verifier_factory()

            if not self._confirm(config):
                LOGGER.error("installation aborted")
                return EXIT_INSTALL_FAILURE

            installer = self._installer_factory(
                config=config, transport=transport, verifier=verifier
            )
            result = installer.install()
        except InstallerError as e:
            report_error(e)
            return EXIT_INSTALL_FAILURE
        except KeyboardInterrupt:
            LOGGER.error("interrupted")
            return EXIT_INTERRUPTED

        self._post_install(config, result)
        return self._run_installed(result.binary_path, config.passthrough_args)

    def _confirm(self, config: InstallerConfig) -> bool:
        """Ask before installing, unless -y was given or there is no TTY."""
        if config.assume_yes or not self._stdin_isatty():
            return True

        proceed = questionary.confirm(
            f"Install {config.artifact_name} to {config.paths.bin_dir}?",
            default=True,
            style=STYLE,
        ).ask()

        # proceed is None if user pressed Ctrl+C
        return bool(proceed)

    def _post_install(self, config: InstallerConfig, result: InstallResult) -> None:
        name = config.artifact_name
        bin_dir = config.paths.bin_dir

        if result.verification == VerificationOutcome.UNAVAILABLE:
            LOGGER.warning(f"{name} was installed WITHOUT SHA verification")

        LOGGER.info("")
        LOGGER.info(f"{name} was installed successfully!")
        LOGGER.info("")

        if not config.paths.is_on_path(self._environ.get("PATH", "")):
            LOGGER.info(f"To use {name} from any shell, add it to your PATH:")
            LOGGER.info("")
            LOGGER.info(f'  export PATH="$PATH:{bin_dir}"')
            LOGGER.info("")

    def _run_installed(self, binary: Path, passthrough_args: Sequence[str]) -> int:
        """Run the installed binary once with the forwarded arguments."""
        LOGGER.debug(f"running {binary} {' '.join(passthrough_args)}".rstrip())
        try:
            completed = subprocess.run([str(binary), *passthrough_args])
        except OSError as e:
            LOGGER.error(f"failed to run {binary}: {e}")
            return EXIT_INSTALL_FAILURE
        return completed.returncode
