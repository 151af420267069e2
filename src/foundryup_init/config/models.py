"""Configuration model for a single installer run."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from foundryup_init.bootstrap.paths import InstallPaths
from foundryup_init.bootstrap.release import (
    DEFAULT_ARTIFACT_NAME,
    DEFAULT_HOST,
    DEFAULT_REPO,
)


@dataclass(frozen=True)
class InstallerConfig:
    """Immutable settings, built once at startup.

    Attributes:
        install_root: Installation root (the artifact goes in ``bin/``).
        version: Release version to install, or None for the latest.
        skip_verification: Skip attestation lookup and hash checking.
        verification_override_source: What requested the skip:
            "flag" (--force) or "env" (FOUNDRYUP_IGNORE_VERIFICATION).
        verbose: Debug-level output.
        quiet: Warnings and errors only.
        assume_yes: Skip the confirmation prompt.
        passthrough_args: Arguments forwarded to the installed artifact.
    """

    install_root: Path
    version: Optional[str] = None
    skip_verification: bool = False
    verification_override_source: Optional[str] = None
    verbose: bool = False
    quiet: bool = False
    assume_yes: bool = False
    passthrough_args: Tuple[str, ...] = field(default_factory=tuple)
    repo: str = DEFAULT_REPO
    host: str = DEFAULT_HOST
    artifact_name: str = DEFAULT_ARTIFACT_NAME

    @property
    def paths(self) -> InstallPaths:
        return InstallPaths(self.install_root)

    @property
    def install_path(self) -> Path:
        """Canonical path of the installed artifact."""
        return self.paths.binary_path(self.artifact_name)
