"""
Fetch backends for downloading release artifacts.

This module provides interchangeable transports that write a remote resource
to a local file:
- ``requests``: in-process HTTP/HTTPS with TLS verification
- ``curl``: external ``curl -fsSL``
- ``wget``: external ``wget -q``

A transport is picked once with :func:`probe_transport` before any network
activity. Every transport fails fast on HTTP error status and never leaves an
error page behind as if it were the payload. There is no retry logic.
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Sequence

import requests
from requests.exceptions import RequestException

from .exceptions import ConfigError, DownloadFailedError, NoTransportAvailableError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192
DEFAULT_TIMEOUT = 60
USER_AGENT = "engram-installer"

Which = Callable[[str], Optional[str]]


class Transport(ABC):
    """Strategy that fetches a URL into a local file."""

    name: str = ""

    @classmethod
    @abstractmethod
    def is_available(cls, which: Which = shutil.which) -> bool:
        """Check whether this backend can be used on the current host."""

    @abstractmethod
    def fetch(self, url: str, destination: Path) -> Path:
        """
        Download ``url`` to ``destination``.

        Returns:
            Path to the downloaded file

        Raises:
            DownloadFailedError: If the transfer did not complete successfully
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RequestsTransport(Transport):
    """Download with the ``requests`` library."""

    name = "requests"

    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout

    @classmethod
    def is_available(cls, which: Which = shutil.which) -> bool:
        """Always available; requests is a hard dependency."""
        return True

    def fetch(self, url: str, destination: Path) -> Path:
        destination = Path(destination)
        logger.info(f"Downloading {url}")

        try:
            with requests.get(
                url,
                stream=True,
                timeout=self.timeout,
                allow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            ) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except RequestException as e:
            destination.unlink(missing_ok=True)
            raise DownloadFailedError(url, str(e)) from e
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise DownloadFailedError(url, f"cannot write {destination}: {e}") from e

        logger.debug(f"Saved {destination} ({destination.stat().st_size} bytes)")
        return destination


class CommandTransport(Transport):
    """Download by running an external HTTP client."""

    executable: str = ""

    def __init__(self, executable_path: Optional[str] = None):
        self.executable_path = executable_path or self.executable

    @classmethod
    def is_available(cls, which: Which = shutil.which) -> bool:
        return which(cls.executable) is not None

    @abstractmethod
    def build_command(self, url: str, destination: Path) -> list[str]:
        """Build the argument vector for one transfer."""

    def fetch(self, url: str, destination: Path) -> Path:
        destination = Path(destination)
        cmd = self.build_command(url, destination)
        logger.info(f"Downloading {url}")
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise DownloadFailedError(url, f"cannot run {self.name}: {e}") from e

        if result.returncode != 0:
            destination.unlink(missing_ok=True)
            reason = result.stderr.strip() or (
                f"{self.name} exited with status {result.returncode}"
            )
            raise DownloadFailedError(url, reason)

        if not destination.exists():
            raise DownloadFailedError(url, f"{self.name} produced no output file")

        return destination

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.executable_path!r})"


class CurlTransport(CommandTransport):
    """Download with ``curl``; ``-f`` turns HTTP errors into a failing exit code."""

    name = "curl"
    executable = "curl"

    def build_command(self, url: str, destination: Path) -> list[str]:
        return [self.executable_path, "-fsSL", url, "-o", str(destination)]


class WgetTransport(CommandTransport):
    """Download with ``wget``."""

    name = "wget"
    executable = "wget"

    def build_command(self, url: str, destination: Path) -> list[str]:
        return [self.executable_path, "-q", url, "-O", str(destination)]


TRANSPORTS = {
    RequestsTransport.name: RequestsTransport,
    CurlTransport.name: CurlTransport,
    WgetTransport.name: WgetTransport,
}

DEFAULT_TRANSPORT_ORDER = ("requests", "curl", "wget")


def probe_transport(
    preference: Sequence[str] = DEFAULT_TRANSPORT_ORDER,
    timeout: int = DEFAULT_TIMEOUT,
    which: Optional[Which] = None,
) -> Transport:
    """
    Select the first available transport in preference order.

    Args:
        preference: Transport names to try, most preferred first
        timeout: Request timeout for the ``requests`` backend
        which: Executable lookup (default: ``shutil.which``)

    Returns:
        Ready-to-use Transport instance

    Raises:
        ConfigError: If a preference names an unknown transport
        NoTransportAvailableError: If no preferred transport is available

    Example:
        >>> transport = probe_transport(["curl", "wget"])
        >>> transport.fetch(url, Path("checksums.txt"))
    """
    if which is None:
        which = shutil.which

    for name in preference:
        transport_cls = TRANSPORTS.get(name)
        if transport_cls is None:
            raise ConfigError(
                f"Unknown transport: {name} (expected one of: {', '.join(TRANSPORTS)})"
            )

        if not transport_cls.is_available(which):
            logger.debug(f"Transport not available: {name}")
            continue

        logger.debug(f"Using transport: {name}")
        if transport_cls is RequestsTransport:
            return RequestsTransport(timeout=timeout)
        return transport_cls(which(transport_cls.executable))

    raise NoTransportAvailableError(list(preference))


__all__ = [
    "Transport",
    "RequestsTransport",
    "CommandTransport",
    "CurlTransport",
    "WgetTransport",
    "TRANSPORTS",
    "DEFAULT_TRANSPORT_ORDER",
    "probe_transport",
]
