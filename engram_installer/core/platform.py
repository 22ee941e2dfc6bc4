"""
Platform resolution for the Engram installer.

Turns raw operating system and CPU architecture strings (as reported by
``uname`` or :mod:`platform`) into a canonical :class:`PlatformTarget`, and
checks the result against the table of platforms that releases are built for.

Usage:
    from engram_installer.core.platform import resolve_platform

    target = resolve_platform("Darwin", "arm64")
    print(target.asset_name())  # engram-darwin-aarch64
"""

import logging
import platform
from dataclasses import dataclass
from typing import Optional

from .exceptions import (
    UnsupportedArchError,
    UnsupportedOSError,
    UnsupportedPlatformComboError,
)

logger = logging.getLogger(__name__)

ASSET_PREFIX = "engram"

# Raw (case-folded) OS name -> canonical token
OS_ALIASES = {
    "linux": "linux",
    "darwin": "darwin",
}

# Raw (case-folded) machine name -> canonical token
ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}

# Keep this table in sync with the release build matrix.
SUPPORTED_PLATFORMS = (
    ("linux", "x86_64"),
    ("darwin", "x86_64"),
    ("darwin", "aarch64"),
)


@dataclass(frozen=True)
class PlatformTarget:
    """
    Canonical (operating system, architecture) pair.

    Attributes:
        os: 'linux' or 'darwin'
        arch: 'x86_64' or 'aarch64'
    """

    os: str
    arch: str

    def platform_string(self) -> str:
        """
        Get canonical platform string.

        Example:
            >>> PlatformTarget("darwin", "aarch64").platform_string()
            'darwin-aarch64'
        """
        return f"{self.os}-{self.arch}"

    def asset_name(self) -> str:
        """
        Get release asset name for this platform.

        Example:
            >>> PlatformTarget("linux", "x86_64").asset_name()
            'engram-linux-x86_64'
        """
        return f"{ASSET_PREFIX}-{self.os}-{self.arch}"

    def __str__(self) -> str:
        return self.platform_string()


def normalize_os(raw_os: str) -> str:
    """
    Map a raw OS name to its canonical token.

    Raises:
        UnsupportedOSError: If the name is not recognized
    """
    key = (raw_os or "").strip().lower()
    try:
        return OS_ALIASES[key]
    except KeyError:
        raise UnsupportedOSError(key or raw_os) from None


def normalize_arch(raw_arch: str) -> str:
    """
    Map a raw machine name to its canonical token.

    Raises:
        UnsupportedArchError: If the name is not recognized
    """
    key = (raw_arch or "").strip().lower()
    try:
        return ARCH_ALIASES[key]
    except KeyError:
        raise UnsupportedArchError(key or raw_arch) from None


def get_supported_platforms() -> list[str]:
    """
    Get list of installable platform strings.

    Example:
        >>> get_supported_platforms()
        ['linux-x86_64', 'darwin-x86_64', 'darwin-aarch64']
    """
    return [f"{os_name}-{arch}" for os_name, arch in SUPPORTED_PLATFORMS]


def is_supported_platform(target: PlatformTarget) -> bool:
    """Check whether a release asset is published for ``target``."""
    return (target.os, target.arch) in SUPPORTED_PLATFORMS


def resolve_platform(raw_os: str, raw_arch: str) -> PlatformTarget:
    """
    Resolve raw OS/arch strings into an installable platform.

    Args:
        raw_os: Operating system name (e.g. 'Linux', 'Darwin')
        raw_arch: Machine name (e.g. 'x86_64', 'arm64')

    Returns:
        PlatformTarget on the supported list

    Raises:
        UnsupportedOSError: If the OS is not recognized
        UnsupportedArchError: If the architecture is not recognized
        UnsupportedPlatformComboError: If both are recognized but no release
            asset exists for the pair
    """
    target = PlatformTarget(os=normalize_os(raw_os), arch=normalize_arch(raw_arch))

    if not is_supported_platform(target):
        raise UnsupportedPlatformComboError(
            target.platform_string(), get_supported_platforms()
        )

    logger.debug(f"Resolved platform {raw_os}/{raw_arch} -> {target}")
    return target


def detect_platform(
    raw_os: Optional[str] = None, raw_arch: Optional[str] = None
) -> PlatformTarget:
    """
    Resolve the current host's platform, with optional overrides.

    Args:
        raw_os: Override for ``platform.system()``
        raw_arch: Override for ``platform.machine()``

    Returns:
        PlatformTarget for the host
    """
    return resolve_platform(
        raw_os if raw_os is not None else platform.system(),
        raw_arch if raw_arch is not None else platform.machine(),
    )


__all__ = [
    "PlatformTarget",
    "SUPPORTED_PLATFORMS",
    "normalize_os",
    "normalize_arch",
    "get_supported_platforms",
    "is_supported_platform",
    "resolve_platform",
    "detect_platform",
]
