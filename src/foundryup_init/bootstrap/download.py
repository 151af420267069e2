"""Secure download transport with two interchangeable backends.

The in-process urllib backend uses certifi's CA bundle so downloads work
on hosts (notably macOS standalone Pythons) where the system certificate
store is not reachable. Where Python was built without ``ssl``, the curl
command-line client is used instead. Both refuse anything below TLS 1.2.
"""

from __future__ import annotations

import importlib.util
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence, Type
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import certifi

from foundryup_init import __version__
from foundryup_init.core.errors import (
    ArtifactNotFoundError,
    MissingToolError,
    TransportError,
)
from foundryup_init.core.logging import get_logger

LOGGER = get_logger(__name__)

USER_AGENT = f"foundryup-init/{__version__}"

_CHUNK_SIZE = 64 * 1024


def get_ssl_context():
    """Get an SSL context that uses certifi's CA bundle and requires TLS 1.2+.

    Returns:
        An ssl.SSLContext configured with certifi's CA certificates.
    """
    import ssl

    context = ssl.create_default_context(cafile=certifi.where())
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


def _require_https(url: str) -> None:
    if not url.startswith("https://"):
        raise TransportError(f"Only HTTPS URLs are supported: {url}")


class DownloadBackend(ABC):
    """A way of fetching an HTTPS URL into a local file."""

    name: str = ""

    @classmethod
    @abstractmethod
    def is_available(cls) -> bool:
        """Check whether this backend can run on the current host."""

    @abstractmethod
    def download(self, url: str, dest_path: Path) -> None:
        """Download ``url`` to ``dest_path``, creating or truncating it.

        Raises:
            TransportError: On any failure; ``not_found`` is set for 404s.
        """


class UrllibBackend(DownloadBackend):
    """Download with urllib over a certifi-verified TLS connection."""

    name = "urllib"

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._timeout = timeout

    @classmethod
    def is_available(cls) -> bool:
        return importlib.util.find_spec("ssl") is not None

    def download(self, url: str, dest_path: Path) -> None:
        _require_https(url)
        try:
            request = Request(url, headers={"User-Agent": USER_AGENT})
            with urlopen(  # nosec B310
                request, timeout=self._timeout, context=get_ssl_context()
            ) as response:
                with open(dest_path, "wb") as f:
                    shutil.copyfileobj(response, f, _CHUNK_SIZE)
        except HTTPError as e:
            raise TransportError(
                f"HTTP {e.code} {e.reason} for {url}", not_found=e.code == 404
            ) from e
        except URLError as e:
            raise TransportError(f"failed to fetch {url}: {e.reason}") from e
        except OSError as e:
            raise TransportError(f"failed to fetch {url}: {e}") from e
        except ValueError as e:
            # http.client.InvalidURL and unknown URL types
            raise TransportError(f"invalid URL {url!r}: {e}") from e


class CurlBackend(DownloadBackend):
    """Download with the curl command-line client."""

    name = "curl"

    @classmethod
    def is_available(cls) -> bool:
        return shutil.which("curl") is not None

    def download(self, url: str, dest_path: Path) -> None:
        _require_https(url)
        cmd = [
            "curl",
            "--proto", "=https",
            "--tlsv1.2",
            "--silent",
            "--show-error",
            "--fail",
            "--location",
            "--user-agent", USER_AGENT,
            url,
            "--output", str(dest_path),
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise TransportError(f"failed to run curl: {e}") from e
        if result.returncode != 0:
            error_text = result.stderr.strip() or f"curl exited with {result.returncode}"
            raise TransportError(error_text, not_found="404" in error_text)


# Preference order: the first available backend wins
DEFAULT_BACKENDS: Sequence[Type[DownloadBackend]] = (UrllibBackend, CurlBackend)


class Transport:
    """HTTPS retrieval with required/optional semantics.

    The backend is selected once, when the Transport is created.
    """

    def __init__(self, backend: DownloadBackend) -> None:
        self.backend = backend

    @classmethod
    def detect(
        cls, backends: Sequence[Type[DownloadBackend]] = DEFAULT_BACKENDS
    ) -> "Transport":
        """Create a Transport using the first available backend.

        Raises:
            MissingToolError: If no backend is available on this host.
        """
        for backend_cls in backends:
            if backend_cls.is_available():
                LOGGER.debug(f"Using {backend_cls.name} download backend")
                return cls(backend_cls())
        raise MissingToolError(
            "need 'curl' or a Python built with ssl support (no download backend found)"
        )

    def fetch_required(self, url: str, dest_path: Path, platform_label: str) -> None:
        """Download a mandatory file.

        Args:
            url: HTTPS URL to download.
            dest_path: Local file to write.
            platform_label: Platform token, used to report missing artifacts.

        Raises:
            ArtifactNotFoundError: If the server reports the file as missing.
            TransportError: On any other download failure.
        """
        try:
            self.backend.download(url, dest_path)
        except TransportError as e:
            LOGGER.warning(str(e))
            if e.not_found:
                raise ArtifactNotFoundError(platform_label) from e
            raise

    def fetch_optional(self, url: str, dest_path: Path) -> bool:
        """Download a file that may legitimately be missing.

        Never raises and never warns.

        Returns:
            True if the file was downloaded, False otherwise.
        """
        try:
            self.backend.download(url, dest_path)
        except (TransportError, OSError) as e:
            LOGGER.debug(f"Optional download of {url} failed: {e}")
            return False
        return True
