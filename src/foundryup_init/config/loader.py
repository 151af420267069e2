"""Configuration loading.

Builds the InstallerConfig from parsed CLI arguments and the environment:
- FOUNDRYUP_VERSION pins a release (unset or empty means latest)
- FOUNDRYUP_IGNORE_VERIFICATION behaves like --force
- FOUNDRY_DIR / XDG_CONFIG_HOME select the installation root
"""

from __future__ import annotations

import os
import re
from argparse import Namespace
from pathlib import Path
from typing import Mapping, Optional, Sequence

from foundryup_init.bootstrap.paths import get_foundry_home
from foundryup_init.config.models import InstallerConfig
from foundryup_init.core.errors import InstallerError

VERSION_ENV = "FOUNDRYUP_VERSION"
IGNORE_VERIFICATION_ENV = "FOUNDRYUP_IGNORE_VERIFICATION"

_TRUTHY = frozenset({"1", "true", "yes", "on"})

# Release tags are path segments in the download URL
_VERSION_PATTERN = re.compile(r"^[A-Za-z0-9._+-]+$")


class ConfigError(InstallerError):
    """Invalid configuration value."""

    pass


def env_flag(environ: Mapping[str, str], name: str) -> bool:
    """Interpret an environment variable as a boolean toggle."""
    return environ.get(name, "").strip().lower() in _TRUTHY


def read_version(environ: Mapping[str, str]) -> Optional[str]:
    """Read and validate the pinned release version.

    Raises:
        ConfigError: If the version cannot be used in a release URL.
    """
    version = environ.get(VERSION_ENV, "").strip()
    if not version:
        return None
    if not _VERSION_PATTERN.match(version):
        raise ConfigError(
            f"invalid {VERSION_ENV}: {version!r}",
            hint="expected a release version such as 1.0.0",
        )
    return version


def load_config(
    args: Namespace,
    passthrough_args: Sequence[str] = (),
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> InstallerConfig:
    """Build the run configuration.

    Args:
        args: Parsed command-line arguments.
        passthrough_args: Unrecognized arguments, in original order.
        environ: Environment mapping (defaults to os.environ).
        home: User home directory (defaults to Path.home()).

    Returns:
        Immutable InstallerConfig.

    Raises:
        ConfigError: If an environment value is invalid.
    """
    env = os.environ if environ is None else environ

    force = bool(getattr(args, "force", False))
    env_override = env_flag(env, IGNORE_VERIFICATION_ENV)
    if force:
        override_source: Optional[str] = "flag"
    elif env_override:
        override_source = "env"
    else:
        override_source = None

    return InstallerConfig(
        install_root=get_foundry_home(env, home=home),
        version=read_version(env),
        skip_verification=override_source is not None,
        verification_override_source=override_source,
        verbose=bool(getattr(args, "verbose", False)),
        quiet=bool(getattr(args, "quiet", False)),
        assume_yes=bool(getattr(args, "yes", False)),
        passthrough_args=tuple(passthrough_args),
    )
