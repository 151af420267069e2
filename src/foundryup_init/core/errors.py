"""Error taxonomy for foundryup-init.

Every fatal condition is an ``InstallerError``. The CLI turns these into a
single prefixed diagnostic line (plus an optional hint) and a non-zero exit
code; nothing below the CLI prints or exits on its own.
"""

from __future__ import annotations

from typing import Optional


class InstallerError(Exception):
    """Base class for all fatal installer errors."""

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.hint = hint


class MissingToolError(InstallerError):
    """A required host capability (download or hash backend) is unavailable."""

    pass


class UnsupportedPlatformError(InstallerError):
    """The host OS or architecture is not recognized."""

    pass


class TransportError(InstallerError):
    """A download failed.

    Attributes:
        not_found: True when the server reported the resource as missing.
    """

    def __init__(self, message: str, not_found: bool = False) -> None:
        super().__init__(message)
        self.not_found = not_found


class ArtifactNotFoundError(InstallerError):
    """The release artifact for this platform does not exist."""

    def __init__(self, platform_label: str) -> None:
        super().__init__(
            f"binary for platform '{platform_label}' not found, this may be unsupported",
            hint="check that FOUNDRYUP_VERSION names an existing release",
        )
        self.platform_label = platform_label


class VerificationError(InstallerError):
    """The downloaded artifact does not match its attested hash."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f"SHA256 mismatch: expected {expected}, got {actual}",
            hint="re-run with --force to skip verification, which is INSECURE",
        )
        self.expected = expected
        self.actual = actual


class PostconditionError(InstallerError):
    """The installed artifact is not executable after installation."""

    pass
