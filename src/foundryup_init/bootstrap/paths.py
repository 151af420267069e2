"""Path management for the foundry installation root.

Handles the ~/.foundry directory structure and install path resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Mapping, Optional

# Default directory name under the base directory
DEFAULT_HOME_DIR_NAME = ".foundry"

# Environment variable to override the installation root
FOUNDRY_DIR_ENV = "FOUNDRY_DIR"

# Environment variable that relocates the default installation root
XDG_CONFIG_HOME_ENV = "XDG_CONFIG_HOME"


def get_foundry_home(environ: Mapping[str, str], home: Optional[Path] = None) -> Path:
    """Get the foundry installation root.

    Resolution order:
    1. FOUNDRY_DIR environment variable (if set)
    2. $XDG_CONFIG_HOME/.foundry (if XDG_CONFIG_HOME is set)
    3. ~/.foundry (default)

    Args:
        environ: Environment mapping to read overrides from.
        home: User home directory (defaults to Path.home()).

    Returns:
        Path to the installation root.
    """
    env_root = environ.get(FOUNDRY_DIR_ENV)
    if env_root:
        return Path(env_root)
    config_home = environ.get(XDG_CONFIG_HOME_ENV)
    if config_home:
        return Path(config_home) / DEFAULT_HOME_DIR_NAME
    return (home if home is not None else Path.home()) / DEFAULT_HOME_DIR_NAME


@dataclass(frozen=True)
class InstallPaths:
    """Paths within the foundry installation root.

    Directory structure:
        ~/.foundry/
            bin/
                foundryup   - Installed toolchain manager
    """

    root: Path

    _BIN_DIR: ClassVar[str] = "bin"

    @property
    def bin_dir(self) -> Path:
        """Directory the artifact is installed into."""
        return self.root / self._BIN_DIR

    def binary_path(self, artifact_name: str) -> Path:
        """Canonical install path for an artifact."""
        return self.bin_dir / artifact_name

    def ensure_directories(self) -> None:
        """Create the bin directory (and root) if they don't exist."""
        self.bin_dir.mkdir(parents=True, exist_ok=True)

    def is_on_path(self, path_env: str) -> bool:
        """Check whether the bin directory is listed in a PATH value."""
        entries = [entry for entry in path_env.split(":") if entry]
        return str(self.bin_dir) in entries
