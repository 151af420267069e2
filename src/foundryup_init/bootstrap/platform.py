"""Platform detection for foundryup-init.

Maps the raw OS/architecture names reported by the host to the platform
token used in release artifact names (e.g. ``linux_amd64``).
"""

from __future__ import annotations

import platform
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from foundryup_init.core.errors import UnsupportedPlatformError
from foundryup_init.core.logging import get_logger

LOGGER = get_logger(__name__)

# Supported operating systems (canonical)
SUPPORTED_OS = frozenset({"linux", "alpine", "darwin", "windows"})

# Supported architectures (canonical)
SUPPORTED_ARCH = frozenset({"amd64", "arm64"})

# Architecture normalization map
_ARCH_MAP = {
    "x86_64": "amd64",
    "x64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}

# uname prefixes reported by Windows emulation layers
_WINDOWS_PREFIXES = ("MINGW", "MSYS", "CYGWIN")
_WINDOWS_NAMES = frozenset({"WINDOWS_NT", "WINDOWS"})

OS_RELEASE_PATH = Path("/etc/os-release")

Probe = Callable[[], bool]


@dataclass(frozen=True)
class PlatformId:
    """Canonical platform identifier.

    Attributes:
        os: Operating system (linux, alpine, darwin, windows).
        arch: CPU architecture (amd64, arm64).
    """

    os: str
    arch: str

    @property
    def token(self) -> str:
        """Return the platform token used in release artifact names.

        Example: "linux_amd64", "darwin_arm64"
        """
        return f"{self.os}_{self.arch}"

    def __str__(self) -> str:
        return self.token


def is_musl(os_release: Path = OS_RELEASE_PATH) -> bool:
    """Check whether the host is a musl-based (Alpine) Linux."""
    try:
        return "alpine" in os_release.read_text(errors="replace").lower()
    except OSError:
        return False


def is_rosetta() -> bool:
    """Check whether this process runs under Rosetta on Apple Silicon."""
    if platform.system() != "Darwin" or shutil.which("sysctl") is None:
        return False
    try:
        result = subprocess.run(
            ["sysctl", "-n", "sysctl.proc_translated"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return False
    return result.stdout.strip() == "1"


def normalize_os(raw_os: str, musl_probe: Probe = is_musl) -> str:
    """Normalize an OS name as reported by ``uname -s``.

    Raises:
        UnsupportedPlatformError: If the OS is not recognized.
    """
    upper = raw_os.strip().upper()
    if upper == "LINUX":
        return "alpine" if musl_probe() else "linux"
    if upper == "DARWIN":
        return "darwin"
    if upper in _WINDOWS_NAMES or upper.startswith(_WINDOWS_PREFIXES):
        return "windows"
    raise UnsupportedPlatformError(f"unsupported OS: {raw_os}")


def normalize_arch(raw_arch: str, os_name: str, rosetta_probe: Probe = is_rosetta) -> str:
    """Normalize an architecture name as reported by ``uname -m``.

    An x86_64 process on macOS may be a Rosetta-translated process on an
    arm64 machine, in which case the native arm64 build is selected.

    Raises:
        UnsupportedPlatformError: If the architecture is not recognized.
    """
    arch = _ARCH_MAP.get(raw_arch.strip().lower())
    if arch is None:
        raise UnsupportedPlatformError(f"unsupported architecture: {raw_arch}")
    if arch == "amd64" and os_name == "darwin" and rosetta_probe():
        LOGGER.debug("Rosetta translation detected, selecting arm64 build")
        return "arm64"
    return arch


def resolve_platform(
    raw_os: str,
    raw_arch: str,
    *,
    musl_probe: Probe = is_musl,
    rosetta_probe: Probe = is_rosetta,
) -> PlatformId:
    """Resolve raw OS/architecture names to a PlatformId.

    Args:
        raw_os: OS name, e.g. "Linux", "Darwin", "MINGW64_NT-10.0".
        raw_arch: Architecture name, e.g. "x86_64", "aarch64".
        musl_probe: Returns True on musl-based Linux.
        rosetta_probe: Returns True when running under x86-on-ARM translation.

    Returns:
        The PlatformId for this host.

    Raises:
        UnsupportedPlatformError: If either value is not recognized.
    """
    os_name = normalize_os(raw_os, musl_probe)
    arch = normalize_arch(raw_arch, os_name, rosetta_probe)
    return PlatformId(os=os_name, arch=arch)


def detect_platform() -> PlatformId:
    """Detect and return the current host platform.

    Raises:
        UnsupportedPlatformError: If the platform is not supported.
    """
    return resolve_platform(
        platform.system(),
        platform.machine(),
        musl_probe=is_musl,
        rosetta_probe=is_rosetta,
    )
