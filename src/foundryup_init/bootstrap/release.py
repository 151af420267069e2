"""Release URL construction.

Artifacts are published as GitHub release assets named
``{artifact}_{platform}``, with a sibling ``.attestation.txt`` pointing at
the sigstore attestation for that asset.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from foundryup_init.bootstrap.platform import PlatformId

DEFAULT_HOST = "github.com"
DEFAULT_REPO = "foundry-rs/foundryup"
DEFAULT_ARTIFACT_NAME = "foundryup"

ATTESTATION_SUFFIX = ".attestation.txt"


@dataclass(frozen=True)
class ReleaseLocation:
    """Download locations for one platform-specific release artifact."""

    artifact_url: str
    attestation_url: str


def version_to_tag(version: str) -> str:
    """Turn a version string into its release tag ("1.0.0" -> "v1.0.0")."""
    return version if version.startswith("v") else f"v{version}"


def construct_release_location(
    platform_id: PlatformId,
    version: Optional[str] = None,
    repo: str = DEFAULT_REPO,
    artifact_name: str = DEFAULT_ARTIFACT_NAME,
    host: str = DEFAULT_HOST,
) -> ReleaseLocation:
    """Construct artifact and attestation URLs for a platform.

    Args:
        platform_id: Target platform.
        version: Release version, or None for the latest release.
        repo: Release repository ("owner/name").
        artifact_name: Artifact base name.
        host: Release host.

    Returns:
        ReleaseLocation with both URLs.
    """
    if version:
        channel = f"download/{version_to_tag(version)}"
    else:
        channel = "latest/download"
    artifact_url = (
        f"https://{host}/{repo}/releases/{channel}/{artifact_name}_{platform_id.token}"
    )
    return ReleaseLocation(
        artifact_url=artifact_url,
        attestation_url=artifact_url + ATTESTATION_SUFFIX,
    )
