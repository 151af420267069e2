"""Attestation lookup for release artifacts.

Each release asset may have a sibling ``.attestation.txt`` whose first line
links to a sigstore bundle. The bundle's DSSE payload is a base64-encoded
in-toto statement carrying the artifact's SHA256 digest.

Verification is opportunistic: older releases have no attestation, and the
attestation service may be unavailable. Every failure here degrades to an
empty AttestationRecord; the caller decides what that means.
"""

from __future__ import annotations

import base64
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional

from foundryup_init.bootstrap.download import Transport
from foundryup_init.core.logging import get_logger

LOGGER = get_logger(__name__)

ATTESTATION_FILE_NAME = "attestation.txt"
BUNDLE_FILE_NAME = "attestation.json"

_SHA256_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_SHA256_FIELD_RE = re.compile(r'"sha256"\s*:\s*"([0-9a-fA-F]{64})"')


@dataclass(frozen=True)
class AttestationRecord:
    """What could be learned about an artifact's attestation.

    Attributes:
        provenance_link: URL of the signed provenance record, if any.
        expected_hash: Lowercase SHA256 hex digest, if one was found.
    """

    provenance_link: Optional[str] = None
    expected_hash: Optional[str] = None

    @property
    def is_available(self) -> bool:
        """True if an expected hash was obtained."""
        return self.expected_hash is not None


class MalformedAttestation(ValueError):
    """The attestation bundle could not be interpreted."""

    pass


def _walk_sha256(node: Any) -> Iterator[str]:
    """Yield every 64-hex ``sha256`` value, in document order."""
    if isinstance(node, dict):
        for key, value in node.items():
            if key == "sha256" and isinstance(value, str) and _SHA256_RE.match(value):
                yield value
            else:
                yield from _walk_sha256(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk_sha256(item)


def extract_payload(bundle_text: str) -> str:
    """Extract and base64-decode the payload of a sigstore bundle.

    Accepts both a bare DSSE envelope (top-level ``payload``) and a full
    sigstore bundle (``dsseEnvelope.payload``).

    Raises:
        MalformedAttestation: If no decodable payload is present.
    """
    try:
        bundle = json.loads(bundle_text)
    except json.JSONDecodeError as e:
        raise MalformedAttestation(f"bundle is not valid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedAttestation("bundle is nested too deeply") from e
    if not isinstance(bundle, dict):
        raise MalformedAttestation("bundle is not a JSON object")

    payload = bundle.get("payload")
    if payload is None and isinstance(bundle.get("dsseEnvelope"), dict):
        payload = bundle["dsseEnvelope"].get("payload")
    if not isinstance(payload, str) or not payload:
        raise MalformedAttestation("bundle has no payload")

    try:
        return base64.b64decode(payload, validate=True).decode("utf-8")
    except ValueError as e:
        raise MalformedAttestation(f"payload is not valid base64: {e}") from e


def extract_sha256(payload_text: str) -> Optional[str]:
    """Find the first SHA256 digest in a decoded attestation payload.

    Raises:
        MalformedAttestation: If the payload is nested too deeply to walk.
    """
    try:
        statement = json.loads(payload_text)
    except json.JSONDecodeError:
        match = _SHA256_FIELD_RE.search(payload_text)
        return match.group(1).lower() if match else None
    except RecursionError as e:
        raise MalformedAttestation("payload is nested too deeply") from e
    try:
        digest = next(_walk_sha256(statement), None)
    except RecursionError as e:
        raise MalformedAttestation("payload is nested too deeply") from e
    return digest.lower() if digest is not None else None


def subject_names(payload_text: str) -> List[str]:
    """Return the in-toto subject names listed in a payload, if any."""
    try:
        statement = json.loads(payload_text)
    except (json.JSONDecodeError, RecursionError):
        return []
    if not isinstance(statement, dict) or not isinstance(statement.get("subject"), list):
        return []
    return [
        entry["name"]
        for entry in statement["subject"]
        if isinstance(entry, dict) and isinstance(entry.get("name"), str)
    ]


class AttestationResolver:
    """Resolves an artifact's expected hash from its attestation."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def resolve(
        self,
        attestation_url: str,
        work_dir: Path,
        artifact_name: Optional[str] = None,
    ) -> AttestationRecord:
        """Fetch the attestation for an artifact and extract its hash.

        Args:
            attestation_url: URL of the ``.attestation.txt`` file.
            work_dir: Scratch directory for downloaded files.
            artifact_name: Release asset name, used to cross-check the
                attestation subject.

        Returns:
            AttestationRecord; empty when no attestation is available.
        """
        attestation_path = work_dir / ATTESTATION_FILE_NAME
        bundle_path = work_dir / BUNDLE_FILE_NAME
        try:
            return self._resolve(attestation_url, attestation_path, bundle_path, artifact_name)
        finally:
            attestation_path.unlink(missing_ok=True)
            bundle_path.unlink(missing_ok=True)

    def _resolve(
        self,
        attestation_url: str,
        attestation_path: Path,
        bundle_path: Path,
        artifact_name: Optional[str],
    ) -> AttestationRecord:
        if not self._transport.fetch_optional(attestation_url, attestation_path):
            return AttestationRecord()

        content = attestation_path.read_text(encoding="utf-8", errors="replace")
        link = content.split("\n", 1)[0].rstrip("\r").strip()
        if not link or "Not Found" in content:
            return AttestationRecord()

        LOGGER.info("found attestation, downloading attestation artifact...")
        if not self._transport.fetch_optional(f"{link}/download", bundle_path):
            LOGGER.debug(f"Could not download attestation bundle from {link}")
            return AttestationRecord(provenance_link=link)

        bundle_text = bundle_path.read_text(encoding="utf-8", errors="replace")
        try:
            payload_text = extract_payload(bundle_text)
            expected_hash = extract_sha256(payload_text)
        except MalformedAttestation as e:
            LOGGER.warning(f"ignoring malformed attestation: {e}")
            return AttestationRecord(provenance_link=link)

        if expected_hash is None:
            LOGGER.warning("ignoring malformed attestation: no sha256 digest in payload")
            return AttestationRecord(provenance_link=link)

        names = subject_names(payload_text)
        if artifact_name and names and artifact_name not in names:
            LOGGER.warning(
                f"attestation subjects {names} do not name {artifact_name}; "
                "using the first digest without cross-checking"
            )

        return AttestationRecord(provenance_link=link, expected_hash=expected_hash)
