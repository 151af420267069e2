"""SHA256 computation and verification of downloaded artifacts."""

from __future__ import annotations

import hashlib
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Type

from foundryup_init.core.errors import (
    InstallerError,
    MissingToolError,
    VerificationError,
)
from foundryup_init.core.logging import get_logger

LOGGER = get_logger(__name__)

_CHUNK_SIZE = 64 * 1024


class HashBackend(ABC):
    """A way of computing a file's SHA256 digest."""

    name: str = ""

    @classmethod
    @abstractmethod
    def is_available(cls) -> bool:
        """Check whether this backend can run on the current host."""

    @abstractmethod
    def digest(self, path: Path) -> str:
        """Return the lowercase hex SHA256 digest of ``path``."""


class HashlibBackend(HashBackend):
    """Compute digests in-process with hashlib."""

    name = "hashlib"

    @classmethod
    def is_available(cls) -> bool:
        return "sha256" in hashlib.algorithms_available

    def digest(self, path: Path) -> str:
        hasher = hashlib.sha256()
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                hasher.update(chunk)
        return hasher.hexdigest()


class Sha256sumBackend(HashBackend):
    """Compute digests with ``sha256sum`` (or ``shasum -a 256`` on macOS)."""

    name = "sha256sum"

    @staticmethod
    def _command() -> Optional[List[str]]:
        if shutil.which("sha256sum"):
            return ["sha256sum"]
        if shutil.which("shasum"):
            return ["shasum", "-a", "256"]
        return None

    @classmethod
    def is_available(cls) -> bool:
        return cls._command() is not None

    def digest(self, path: Path) -> str:
        cmd = self._command()
        if cmd is None:
            raise MissingToolError("need 'sha256sum' or 'shasum' (command not found)")
        try:
            result = subprocess.run(
                [*cmd, str(path)], capture_output=True, text=True, check=True
            )
        except (OSError, subprocess.CalledProcessError) as e:
            raise InstallerError(f"failed to hash {path}: {e}") from e
        return result.stdout.split()[0].lower()


# Preference order: the first available backend wins
DEFAULT_HASH_BACKENDS: Sequence[Type[HashBackend]] = (HashlibBackend, Sha256sumBackend)


class HashVerifier:
    """Computes and checks artifact digests.

    The backend is selected once, when the verifier is created.
    """

    def __init__(self, backend: HashBackend) -> None:
        self.backend = backend

    @classmethod
    def detect(
        cls, backends: Sequence[Type[HashBackend]] = DEFAULT_HASH_BACKENDS
    ) -> "HashVerifier":
        """Create a verifier using the first available backend.

        Raises:
            MissingToolError: If no hash backend is available.
        """
        for backend_cls in backends:
            if backend_cls.is_available():
                LOGGER.debug(f"Using {backend_cls.name} hash backend")
                return cls(backend_cls())
        raise MissingToolError("need 'sha256sum' or 'shasum' (no SHA256 implementation found)")

    def compute_hash(self, path: Path) -> str:
        """Return the lowercase hex SHA256 digest of a file."""
        return self.backend.digest(path)

    def verify(self, path: Path, expected_hash: str) -> None:
        """Check a file against an expected SHA256 digest.

        Raises:
            VerificationError: If the digests differ.
        """
        actual = self.compute_hash(path)
        if actual.lower() != expected_hash.strip().lower():
            raise VerificationError(expected=expected_hash, actual=actual)
        LOGGER.debug(f"{path.name} matches {actual}")
