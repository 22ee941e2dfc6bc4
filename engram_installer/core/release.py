"""Release URL construction for published Engram assets."""

import logging
from dataclasses import dataclass

from .exceptions import ConfigError
from .platform import PlatformTarget

logger = logging.getLogger(__name__)

GITHUB_URL = "https://github.com"
LATEST = "latest"
CHECKSUMS_FILENAME = "checksums.txt"


@dataclass(frozen=True)
class AssetDescriptor:
    """Download locations for one platform's release asset."""

    name: str
    binary_url: str
    checksum_manifest_url: str


def normalize_version(version: str) -> str:
    """
    Normalize a version selector.

    Case-folds 'latest'; strips a user-supplied leading 'v' from explicit
    versions so 'v2.4.0' and '2.4.0' select the same tag.

    Raises:
        ConfigError: If the selector is empty
    """
    value = (version or "").strip()
    if not value:
        raise ConfigError("Version selector cannot be empty")
    if value.lower() == LATEST:
        return LATEST
    if value[0] in "vV" and value[1:2].isdigit():
        value = value[1:]
    return value


def release_base_url(repo: str, version: str, base_url: str = GITHUB_URL) -> str:
    """
    Get the download base URL for a release.

    Example:
        >>> release_base_url("org/engram", "latest")
        'https://github.com/org/engram/releases/latest/download'
        >>> release_base_url("org/engram", "2.4.0")
        'https://github.com/org/engram/releases/download/v2.4.0'
    """
    repo = repo.strip("/")
    if not repo:
        raise ConfigError("Repository identifier cannot be empty")

    root = f"{base_url.rstrip('/')}/{repo}/releases"
    version = normalize_version(version)
    if version == LATEST:
        return f"{root}/latest/download"
    return f"{root}/download/v{version}"


def locate_release(
    repo: str, version: str, platform: PlatformTarget, base_url: str = GITHUB_URL
) -> AssetDescriptor:
    """
    Build the asset descriptor for a platform.

    Args:
        repo: Repository identifier ('owner/name')
        version: 'latest' or an explicit version string
        platform: Resolved platform target
        base_url: Release host root (default: GitHub)

    Returns:
        AssetDescriptor with binary and manifest URLs
    """
    base = release_base_url(repo, version, base_url)
    name = platform.asset_name()

    descriptor = AssetDescriptor(
        name=name,
        binary_url=f"{base}/{name}",
        checksum_manifest_url=f"{base}/{CHECKSUMS_FILENAME}",
    )
    logger.debug(f"Located {name} at {base}")
    return descriptor
