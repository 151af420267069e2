"""Shared fixtures for foundryup-init tests."""

from __future__ import annotations

import base64
import hashlib
import json
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

from foundryup_init.bootstrap.download import DownloadBackend, Transport
from foundryup_init.bootstrap.verification import HashlibBackend, HashVerifier
from foundryup_init.core.errors import TransportError

ARTIFACT_BYTES = b"\x7fELF fake foundryup binary"
ARTIFACT_SHA256 = hashlib.sha256(ARTIFACT_BYTES).hexdigest()


class FakeBackend(DownloadBackend):
    """In-memory download backend.

    URLs map to bytes (served) or to a TransportError (raised). Unknown
    URLs behave like a 404.
    """

    name = "fake"

    def __init__(self, responses: Optional[Dict[str, Union[bytes, TransportError]]] = None):
        self.responses: Dict[str, Union[bytes, TransportError]] = dict(responses or {})
        self.requested: List[str] = []

    @classmethod
    def is_available(cls) -> bool:
        return True

    def download(self, url: str, dest_path: Path) -> None:
        self.requested.append(url)
        response = self.responses.get(url)
        if response is None:
            raise TransportError(
                f"curl: (22) The requested URL returned error: 404 for {url}",
                not_found=True,
            )
        if isinstance(response, TransportError):
            raise response
        dest_path.write_bytes(response)


def make_statement(sha256: str, subject_name: str = "foundryup_linux_amd64") -> dict:
    """Build an in-toto statement naming one subject."""
    return {
        "_type": "https://in-toto.io/Statement/v1",
        "subject": [{"name": subject_name, "digest": {"sha256": sha256}}],
        "predicateType": "https://slsa.dev/provenance/v1",
        "predicate": {"buildDefinition": {"buildType": "workflow"}},
    }


def make_bundle(statement: Union[dict, str], sigstore: bool = True) -> bytes:
    """Wrap a statement in a DSSE envelope, optionally inside a sigstore bundle."""
    text = statement if isinstance(statement, str) else json.dumps(statement)
    envelope = {
        "payload": base64.b64encode(text.encode()).decode(),
        "payloadType": "application/vnd.in-toto+json",
        "signatures": [{"sig": "MEUCIQ..."}],
    }
    if sigstore:
        document = {
            "mediaType": "application/vnd.dev.sigstore.bundle.v0.3+json",
            "verificationMaterial": {"tlogEntries": []},
            "dsseEnvelope": envelope,
        }
    else:
        document = envelope
    return json.dumps(document).encode()


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Empty fake backend; tests register responses on it."""
    return FakeBackend()


@pytest.fixture
def transport(fake_backend: FakeBackend) -> Transport:
    """Transport over the fake backend."""
    return Transport(fake_backend)


@pytest.fixture
def verifier() -> HashVerifier:
    """Verifier using hashlib."""
    return HashVerifier(HashlibBackend())
