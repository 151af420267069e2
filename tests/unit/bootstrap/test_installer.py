"""Tests for the end-to-end installer pipeline."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from foundryup_init.bootstrap.download import Transport
from foundryup_init.bootstrap.installer import (
    InstallState,
    Installer,
    VerificationOutcome,
)
from foundryup_init.bootstrap.platform import PlatformId
from foundryup_init.bootstrap.validation import ToolStatus
from foundryup_init.bootstrap.verification import HashVerifier
from foundryup_init.config.models import InstallerConfig
from foundryup_init.core.errors import (
    ArtifactNotFoundError,
    PostconditionError,
    TransportError,
    VerificationError,
)
from tests.conftest import (
    ARTIFACT_BYTES,
    ARTIFACT_SHA256,
    FakeBackend,
    make_bundle,
    make_statement,
)

LINUX_AMD64 = PlatformId(os="linux", arch="amd64")
RELEASES = "https://github.com/foundry-rs/foundryup/releases"
ARTIFACT_URL = f"{RELEASES}/latest/download/foundryup_linux_amd64"
ATTESTATION_URL = f"{ARTIFACT_URL}.attestation.txt"
LINK = "https://github.com/foundry-rs/foundryup/attestations/4242"
BUNDLE_URL = f"{LINK}/download"


@pytest.fixture
def scratch_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect the installer's scratch directories into tmp_path."""
    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


@pytest.fixture
def config(tmp_path: Path) -> InstallerConfig:
    return InstallerConfig(install_root=tmp_path / "foundry")


def _serve_release(
    backend: FakeBackend,
    artifact_url: str = ARTIFACT_URL,
    attested_hash: str = ARTIFACT_SHA256,
) -> None:
    backend.responses[artifact_url] = ARTIFACT_BYTES
    backend.responses[f"{artifact_url}.attestation.txt"] = f"{LINK}\n".encode()
    backend.responses[BUNDLE_URL] = make_bundle(make_statement(attested_hash))


def _installer(
    config: InstallerConfig, transport: Transport, verifier: HashVerifier
) -> Installer:
    return Installer(
        config=config,
        transport=transport,
        verifier=verifier,
        platform_detector=lambda: LINUX_AMD64,
    )


def _warnings(caplog: pytest.LogCaptureFixture) -> list:
    return [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]


class TestInstallVerified:
    """A release with a valid attestation."""

    def test_installs_and_verifies(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        _serve_release(fake_backend)
        installer = _installer(config, transport, verifier)

        with caplog.at_level(logging.INFO):
            result = installer.install()

        assert result.binary_path == config.install_path
        assert result.platform == LINUX_AMD64
        assert result.verification == VerificationOutcome.VERIFIED
        assert installer.state == InstallState.INSTALLED
        assert config.install_path.read_bytes() == ARTIFACT_BYTES
        assert os.access(config.install_path, os.X_OK)
        assert not _warnings(caplog)
        assert any("verified ✓" in r.getMessage() for r in caplog.records)

    def test_requests_in_pipeline_order(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        _serve_release(fake_backend)
        _installer(config, transport, verifier).install()
        assert fake_backend.requested == [ATTESTATION_URL, BUNDLE_URL, ARTIFACT_URL]

    def test_scratch_directory_removed(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        _serve_release(fake_backend)
        _installer(config, transport, verifier).install()
        assert list(scratch_root.iterdir()) == []

    def test_replaces_existing_binary(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        config.paths.ensure_directories()
        config.install_path.write_bytes(b"previous foundryup")
        _serve_release(fake_backend)

        _installer(config, transport, verifier).install()

        assert config.install_path.read_bytes() == ARTIFACT_BYTES
        assert sorted(p.name for p in config.paths.bin_dir.iterdir()) == ["foundryup"]

    def test_pinned_version(
        self,
        tmp_path: Path,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        config = InstallerConfig(install_root=tmp_path / "foundry", version="1.0.0")
        pinned_url = f"{RELEASES}/download/v1.0.0/foundryup_linux_amd64"
        _serve_release(fake_backend, artifact_url=pinned_url)

        result = _installer(config, transport, verifier).install()

        assert result.location.artifact_url == pinned_url
        assert pinned_url in fake_backend.requested
        assert ARTIFACT_URL not in fake_backend.requested


class TestInstallMismatch:
    """A release whose artifact does not match its attestation."""

    def test_fails_closed(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        _serve_release(fake_backend, attested_hash="f" * 64)
        installer = _installer(config, transport, verifier)

        with pytest.raises(VerificationError) as exc_info:
            installer.install()

        assert exc_info.value.expected == "f" * 64
        assert exc_info.value.actual == ARTIFACT_SHA256
        assert not config.install_path.exists()
        assert installer.state == InstallState.DOWNLOADED
        assert list(scratch_root.iterdir()) == []

    def test_keeps_previous_binary(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        config.paths.ensure_directories()
        config.install_path.write_bytes(b"previous foundryup")
        _serve_release(fake_backend, attested_hash="f" * 64)

        with pytest.raises(VerificationError):
            _installer(config, transport, verifier).install()

        assert config.install_path.read_bytes() == b"previous foundryup"


class TestInstallWithoutAttestation:
    """A release that predates attestations."""

    def test_fails_open_with_warning(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        fake_backend.responses[ARTIFACT_URL] = ARTIFACT_BYTES
        installer = _installer(config, transport, verifier)

        with caplog.at_level(logging.INFO):
            result = installer.install()

        assert result.verification == VerificationOutcome.UNAVAILABLE
        assert installer.state == InstallState.INSTALLED
        assert config.install_path.read_bytes() == ARTIFACT_BYTES
        assert any("no attestation found" in message for message in _warnings(caplog))

    def test_bundle_unreachable_fails_open(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        fake_backend.responses[ARTIFACT_URL] = ARTIFACT_BYTES
        fake_backend.responses[ATTESTATION_URL] = LINK.encode()
        fake_backend.responses[BUNDLE_URL] = TransportError("connection reset")

        result = _installer(config, transport, verifier).install()

        assert result.verification == VerificationOutcome.UNAVAILABLE


class TestInstallSkipVerification:
    """Verification disabled by --force or the environment."""

    @pytest.mark.parametrize(
        ("source", "expected_warning"),
        [
            ("flag", "due to --force flag"),
            ("env", "due to FOUNDRYUP_IGNORE_VERIFICATION"),
        ],
    )
    def test_no_attestation_requests(
        self,
        tmp_path: Path,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
        caplog: pytest.LogCaptureFixture,
        source: str,
        expected_warning: str,
    ) -> None:
        config = InstallerConfig(
            install_root=tmp_path / "foundry",
            skip_verification=True,
            verification_override_source=source,
        )
        _serve_release(fake_backend, attested_hash="f" * 64)
        installer = _installer(config, transport, verifier)

        with caplog.at_level(logging.WARNING):
            result = installer.install()

        assert result.verification == VerificationOutcome.SKIPPED_BY_USER
        assert fake_backend.requested == [ARTIFACT_URL]
        assert any(expected_warning in message for message in _warnings(caplog))
        assert config.install_path.read_bytes() == ARTIFACT_BYTES


class TestInstallFailures:
    """Fatal failures outside verification."""

    def test_missing_artifact(
        self,
        config: InstallerConfig,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        installer = _installer(config, transport, verifier)
        with pytest.raises(ArtifactNotFoundError, match="linux_amd64"):
            installer.install()
        assert not config.install_path.exists()
        assert installer.state == InstallState.PLATFORM_RESOLVED

    def test_transport_failure(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        fake_backend.responses[ARTIFACT_URL] = TransportError("connection reset")
        with pytest.raises(TransportError, match="connection reset"):
            _installer(config, transport, verifier).install()
        assert list(scratch_root.iterdir()) == []

    def test_not_executable_after_install(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        _serve_release(fake_backend)
        installer = _installer(config, transport, verifier)

        with patch(
            "foundryup_init.bootstrap.installer.validate_binary",
            return_value=ToolStatus.NOT_EXECUTABLE,
        ):
            with pytest.raises(PostconditionError, match="noexec") as exc_info:
                installer.install()

        assert "FOUNDRY_DIR" in exc_info.value.hint
        assert installer.state != InstallState.INSTALLED


class TestStateMachine:
    """Tests for state transitions."""

    def test_starts_at_start(
        self, config: InstallerConfig, transport: Transport, verifier: HashVerifier
    ) -> None:
        assert _installer(config, transport, verifier).state == InstallState.START

    def test_install_can_run_twice(
        self,
        config: InstallerConfig,
        fake_backend: FakeBackend,
        transport: Transport,
        verifier: HashVerifier,
        scratch_root: Path,
    ) -> None:
        _serve_release(fake_backend)
        installer = _installer(config, transport, verifier)

        installer.install()
        result = installer.install()

        assert result.verification == VerificationOutcome.VERIFIED
        assert installer.state == InstallState.INSTALLED
        assert config.install_path.read_bytes() == ARTIFACT_BYTES

    def test_backward_transition_rejected(
        self, config: InstallerConfig, transport: Transport, verifier: HashVerifier
    ) -> None:
        installer = _installer(config, transport, verifier)
        installer._advance(InstallState.DOWNLOADED)
        with pytest.raises(RuntimeError, match="invalid transition"):
            installer._advance(InstallState.PLATFORM_RESOLVED)

    def test_verified_and_skipped_are_exclusive(
        self, config: InstallerConfig, transport: Transport, verifier: HashVerifier
    ) -> None:
        installer = _installer(config, transport, verifier)
        installer._advance(InstallState.VERIFIED)
        with pytest.raises(RuntimeError):
            installer._advance(InstallState.VERIFICATION_SKIPPED)
