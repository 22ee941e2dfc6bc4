"""
Checksum manifest parsing and SHA-256 verification.

This module provides:
- Parsing of ``checksums.txt`` manifests (SHA256SUMS format)
- Exact-name lookup of an asset's published digest
- Interchangeable SHA-256 backends (hashlib, sha256sum, shasum)
- Constant-time digest comparison

Verification is the installer's trust boundary: a binary whose digest does
not match the manifest must never be installed.
"""

import hashlib
import logging
import secrets
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from .exceptions import (
    ChecksumMismatchError,
    ConfigError,
    ManifestEntryMissingError,
    NoDigestToolAvailableError,
    VerificationError,
)

logger = logging.getLogger(__name__)

Which = Callable[[str], Optional[str]]


# ============================================================================
# Manifest
# ============================================================================


@dataclass(frozen=True)
class ChecksumEntry:
    """One ``<digest>  <filename>`` manifest line."""

    digest: str
    filename: str


@dataclass
class ChecksumManifest:
    """Ordered manifest entries, in the order they were published."""

    entries: list[ChecksumEntry] = field(default_factory=list)

    def lookup(self, filename: str) -> Optional[ChecksumEntry]:
        """
        Find the first entry whose filename equals ``filename`` exactly.

        Names that only share a prefix (e.g. ``engram-darwin-x86_64-debug``
        for ``engram-darwin-x86_64``) never match.
        """
        for entry in self.entries:
            if entry.filename == filename:
                return entry
        return None

    def __len__(self) -> int:
        return len(self.entries)


def parse_manifest(content: Union[str, bytes]) -> ChecksumManifest:
    """
    Parse checksum manifest text.

    Supports formats:
    - hash  filename
    - hash *filename (binary mode indicator)

    Blank lines and ``#`` comments are skipped.

    Args:
        content: Manifest contents

    Returns:
        ChecksumManifest preserving line order (duplicates kept)

    Example:
        >>> manifest = parse_manifest("abc123  engram-linux-x86_64\\n")
        >>> manifest.lookup("engram-linux-x86_64").digest
        'abc123'
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")

    entries = []
    for line_num, line in enumerate(content.splitlines(), 1):
        line = line.strip()

        if not line or line.startswith("#"):
            continue

        parts = line.split(maxsplit=1)
        if len(parts) != 2:
            logger.warning(f"Skipping invalid manifest line {line_num}: {line}")
            continue

        digest, filename = parts[0], parts[1].strip()
        if filename.startswith("*"):
            filename = filename[1:]

        entries.append(ChecksumEntry(digest=digest, filename=filename))

    return ChecksumManifest(entries)


def expected_digest(manifest: Union[str, bytes], asset_name: str) -> str:
    """
    Get the published digest for an asset.

    Raises:
        ManifestEntryMissingError: If no line names the asset exactly
    """
    entry = parse_manifest(manifest).lookup(asset_name)
    if entry is None:
        raise ManifestEntryMissingError(asset_name)
    return entry.digest


# ============================================================================
# Digest backends
# ============================================================================


class DigestTool(ABC):
    """Strategy that computes a file's SHA-256 as lowercase hex."""

    name: str = ""

    @classmethod
    @abstractmethod
    def is_available(cls, which: Which = shutil.which) -> bool:
        """Check whether this backend can be used on the current host."""

    @abstractmethod
    def compute(self, file_path: Path) -> str:
        """Compute the SHA-256 hex digest of ``file_path``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class HashlibDigest(DigestTool):
    """In-process SHA-256 with :mod:`hashlib`."""

    name = "hashlib"

    @classmethod
    def is_available(cls, which: Which = shutil.which) -> bool:
        return "sha256" in hashlib.algorithms_available

    def compute(self, file_path: Path) -> str:
        hasher = hashlib.sha256()
        with open(file_path, "rb") as f:
            while chunk := f.read(8192):
                hasher.update(chunk)
        return hasher.hexdigest()


class CommandDigest(DigestTool):
    """SHA-256 from an external ``*sum``-style tool; digest is the first field."""

    executable: str = ""

    def __init__(self, executable_path: Optional[str] = None):
        self.executable_path = executable_path or self.executable

    @classmethod
    def is_available(cls, which: Which = shutil.which) -> bool:
        return which(cls.executable) is not None

    @abstractmethod
    def build_command(self, file_path: Path) -> list[str]:
        """Build the argument vector for hashing one file."""

    def compute(self, file_path: Path) -> str:
        cmd = self.build_command(file_path)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise VerificationError(f"Cannot run {self.name}: {e}") from e

        fields = result.stdout.split()
        if result.returncode != 0 or not fields:
            raise VerificationError(
                f"{self.name} failed for {file_path}: "
                f"{result.stderr.strip() or f'exit status {result.returncode}'}"
            )
        return fields[0].lower()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.executable_path!r})"


class Sha256sumDigest(CommandDigest):
    """GNU coreutils ``sha256sum``."""

    name = "sha256sum"
    executable = "sha256sum"

    def build_command(self, file_path: Path) -> list[str]:
        return [self.executable_path, str(file_path)]


class ShasumDigest(CommandDigest):
    """Perl ``shasum -a 256`` (default on macOS)."""

    name = "shasum"
    executable = "shasum"

    def build_command(self, file_path: Path) -> list[str]:
        return [self.executable_path, "-a", "256", str(file_path)]


DIGEST_TOOLS = {
    HashlibDigest.name: HashlibDigest,
    Sha256sumDigest.name: Sha256sumDigest,
    ShasumDigest.name: ShasumDigest,
}

DEFAULT_DIGEST_ORDER = ("hashlib", "sha256sum", "shasum")


def probe_digest(
    preference: Sequence[str] = DEFAULT_DIGEST_ORDER, which: Optional[Which] = None
) -> DigestTool:
    """
    Select the first available SHA-256 backend in preference order.

    Raises:
        ConfigError: If a preference names an unknown backend
        NoDigestToolAvailableError: If no preferred backend is available
    """
    if which is None:
        which = shutil.which

    for name in preference:
        tool_cls = DIGEST_TOOLS.get(name)
        if tool_cls is None:
            raise ConfigError(
                f"Unknown digest tool: {name} "
                f"(expected one of: {', '.join(DIGEST_TOOLS)})"
            )

        if not tool_cls.is_available(which):
            logger.debug(f"Digest tool not available: {name}")
            continue

        logger.debug(f"Using digest tool: {name}")
        if tool_cls is HashlibDigest:
            return HashlibDigest()
        return tool_cls(which(tool_cls.executable))

    raise NoDigestToolAvailableError(list(preference))


# ============================================================================
# Verification
# ============================================================================


def verify_checksum(
    manifest: Union[str, bytes],
    asset_name: str,
    binary_path: Path,
    digest_tool: Optional[DigestTool] = None,
) -> str:
    """
    Verify a downloaded binary against the checksum manifest.

    Args:
        manifest: Checksum manifest contents
        asset_name: Release asset name to look up (exact match)
        binary_path: Downloaded binary
        digest_tool: SHA-256 backend (probed with defaults if None)

    Returns:
        The verified digest (lowercase hex)

    Raises:
        ManifestEntryMissingError: If the manifest has no line for the asset
        NoDigestToolAvailableError: If no SHA-256 backend is available
        ChecksumMismatchError: If the digests differ
    """
    expected = expected_digest(manifest, asset_name)

    if digest_tool is None:
        digest_tool = probe_digest()

    actual = digest_tool.compute(Path(binary_path))

    if not _constant_time_compare(actual.lower(), expected.lower()):
        raise ChecksumMismatchError(asset_name, expected, actual)

    logger.info(f"Checksum verified for {asset_name}")
    return actual.lower()


def _constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time to prevent timing attacks."""
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


__all__ = [
    "ChecksumEntry",
    "ChecksumManifest",
    "parse_manifest",
    "expected_digest",
    "DigestTool",
    "HashlibDigest",
    "CommandDigest",
    "Sha256sumDigest",
    "ShasumDigest",
    "DIGEST_TOOLS",
    "DEFAULT_DIGEST_ORDER",
    "probe_digest",
    "verify_checksum",
]
