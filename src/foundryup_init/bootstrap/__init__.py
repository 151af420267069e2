"""
Bootstrap module for foundryup installation.

This module handles:
- Platform detection (OS + architecture)
- Release URL construction
- Secure downloads and attestation lookup
- SHA256 verification and installation into ~/.foundry/bin/
"""

from foundryup_init.bootstrap.platform import detect_platform, resolve_platform, PlatformId
from foundryup_init.bootstrap.paths import get_foundry_home, InstallPaths
from foundryup_init.bootstrap.release import construct_release_location, ReleaseLocation

__all__ = [
    "detect_platform",
    "resolve_platform",
    "PlatformId",
    "get_foundry_home",
    "InstallPaths",
    "construct_release_location",
    "ReleaseLocation",
]
