"""End-to-end installation of the foundryup binary.

The run is a linear pipeline:

    START -> PLATFORM_RESOLVED -> DOWNLOADED -> VERIFIED | VERIFICATION_SKIPPED -> INSTALLED

Any failure is terminal for the run. Missing attestations fail open (with
a warning); a hash mismatch always fails closed.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from foundryup_init.bootstrap.attestation import AttestationRecord, AttestationResolver
from foundryup_init.bootstrap.download import Transport
from foundryup_init.bootstrap.platform import PlatformId, detect_platform
from foundryup_init.bootstrap.release import ReleaseLocation, construct_release_location
from foundryup_init.bootstrap.validation import ToolStatus, validate_binary
from foundryup_init.bootstrap.verification import HashVerifier
from foundryup_init.config.loader import IGNORE_VERIFICATION_ENV
from foundryup_init.config.models import InstallerConfig
from foundryup_init.core.errors import PostconditionError
from foundryup_init.core.logging import get_logger

LOGGER = get_logger(__name__)

SCRATCH_DIR_PREFIX = "foundryup-init-"


class InstallState(str, Enum):
    """Checkpoints of an installer run, in order."""

    START = "start"
    PLATFORM_RESOLVED = "platform_resolved"
    DOWNLOADED = "downloaded"
    VERIFIED = "verified"
    VERIFICATION_SKIPPED = "verification_skipped"
    INSTALLED = "installed"


_STATE_ORDER = {
    InstallState.START: 0,
    InstallState.PLATFORM_RESOLVED: 1,
    InstallState.DOWNLOADED: 2,
    InstallState.VERIFIED: 3,
    InstallState.VERIFICATION_SKIPPED: 3,
    InstallState.INSTALLED: 4,
}


class VerificationOutcome(str, Enum):
    """How the downloaded artifact was (or was not) verified."""

    VERIFIED = "verified"
    SKIPPED_BY_USER = "skipped_by_user"
    UNAVAILABLE = "unavailable"


@dataclass
class InstallResult:
    """Outcome of a successful run."""

    binary_path: Path
    platform: PlatformId
    location: ReleaseLocation
    verification: VerificationOutcome


@dataclass
class Installer:
    """Downloads, verifies and installs the foundryup binary."""

    config: InstallerConfig
    transport: Transport
    verifier: HashVerifier
    platform_detector: Callable[[], PlatformId] = detect_platform
    state: InstallState = field(default=InstallState.START, init=False)

    def _advance(self, new_state: InstallState) -> None:
        if _STATE_ORDER[new_state] <= _STATE_ORDER[self.state]:
            raise RuntimeError(f"invalid transition {self.state.value} -> {new_state.value}")
        LOGGER.debug(f"state: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def install(self) -> InstallResult:
        """Run the full pipeline.

        Returns:
            InstallResult describing the installed binary.

        Raises:
            InstallerError: On any fatal failure. Nothing is installed when
                verification fails.
        """
        # Each run starts a fresh state machine
        self.state = InstallState.START
        platform_id = self.platform_detector()
        self._advance(InstallState.PLATFORM_RESOLVED)

        location = construct_release_location(
            platform_id,
            version=self.config.version,
            repo=self.config.repo,
            artifact_name=self.config.artifact_name,
            host=self.config.host,
        )
        if self.config.version:
            LOGGER.info(f"installing {self.config.artifact_name} version {self.config.version}")
        else:
            LOGGER.info(f"installing latest {self.config.artifact_name}")
        LOGGER.debug(f"url: {location.artifact_url}")
        LOGGER.debug(f"arch: {platform_id.token}")

        work_dir = Path(tempfile.mkdtemp(prefix=SCRATCH_DIR_PREFIX))
        try:
            record = self._resolve_attestation(location, platform_id, work_dir)

            artifact = work_dir / self.config.artifact_name
            LOGGER.info(f"downloading {self.config.artifact_name}...")
            self.transport.fetch_required(location.artifact_url, artifact, platform_id.token)
            self._advance(InstallState.DOWNLOADED)

            outcome = self._verify(artifact, record)
            binary_path = self._install_binary(artifact)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        self._advance(InstallState.INSTALLED)
        return InstallResult(
            binary_path=binary_path,
            platform=platform_id,
            location=location,
            verification=outcome,
        )

    def _resolve_attestation(
        self, location: ReleaseLocation, platform_id: PlatformId, work_dir: Path
    ) -> Optional[AttestationRecord]:
        """Look up the expected hash; None means the user disabled verification."""
        if self.config.skip_verification:
            if self.config.verification_override_source == "env":
                LOGGER.warning(
                    f"skipped SHA verification due to {IGNORE_VERIFICATION_ENV}"
                )
            else:
                LOGGER.warning("skipped SHA verification due to --force flag")
            return None

        LOGGER.info("checking for attestation...")
        resolver = AttestationResolver(self.transport)
        return resolver.resolve(
            location.attestation_url,
            work_dir,
            artifact_name=f"{self.config.artifact_name}_{platform_id.token}",
        )

    def _verify(
        self, artifact: Path, record: Optional[AttestationRecord]
    ) -> VerificationOutcome:
        if record is None:
            self._advance(InstallState.VERIFICATION_SKIPPED)
            return VerificationOutcome.SKIPPED_BY_USER

        if record.expected_hash is None:
            LOGGER.warning("no attestation found for this release, skipping SHA verification")
            self._advance(InstallState.VERIFICATION_SKIPPED)
            return VerificationOutcome.UNAVAILABLE

        LOGGER.info("verifying downloaded binary against the attestation file")
        self.verifier.verify(artifact, record.expected_hash)
        LOGGER.info(f"{self.config.artifact_name} verified ✓")
        self._advance(InstallState.VERIFIED)
        return VerificationOutcome.VERIFIED

    def _install_binary(self, artifact: Path) -> Path:
        """Copy the artifact into place atomically and make it executable.

        Raises:
            PostconditionError: If the installed file cannot be executed.
        """
        paths = self.config.paths
        target = self.config.install_path
        LOGGER.info(f"installing {self.config.artifact_name} to {paths.bin_dir}...")

        paths.ensure_directories()
        staging = target.with_name(f".{target.name}.tmp")
        try:
            shutil.copyfile(artifact, staging)
            staging.chmod(staging.stat().st_mode | 0o111)
            os.replace(staging, target)
        finally:
            staging.unlink(missing_ok=True)

        status = validate_binary(target)
        if status != ToolStatus.PRESENT:
            raise PostconditionError(
                f"cannot execute {target} ({status.value}), likely because its "
                "filesystem is mounted noexec",
                hint=(
                    "set FOUNDRY_DIR to a location where you can execute binaries "
                    f"and run {self.config.artifact_name} from there"
                ),
            )
        return target
