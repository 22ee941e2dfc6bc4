"""
Core functionality for the Engram installer.

This package contains the pipeline stages: platform resolution, release
location, transports, checksum verification and installation.
"""

from .platform import (
    PlatformTarget,
    resolve_platform,
    detect_platform,
    get_supported_platforms,
)

from .release import (
    AssetDescriptor,
    locate_release,
)

from .download import (
    Transport,
    probe_transport,
)

from .verification import (
    DigestTool,
    parse_manifest,
    probe_digest,
    verify_checksum,
)

from .filesystem import (
    workspace,
    install_binary,
)

from .exceptions import (
    InstallerError,
    ConfigError,
    PlatformError,
    UnsupportedOSError,
    UnsupportedArchError,
    UnsupportedPlatformComboError,
    TransportError,
    NoTransportAvailableError,
    DownloadFailedError,
    VerificationError,
    ManifestEntryMissingError,
    NoDigestToolAvailableError,
    ChecksumMismatchError,
    InstallError,
    InstallDirCreateFailedError,
    InstallInterrupted,
)

__all__ = [
    "PlatformTarget",
    "resolve_platform",
    "detect_platform",
    "get_supported_platforms",
    "AssetDescriptor",
    "locate_release",
    "Transport",
    "probe_transport",
    "DigestTool",
    "parse_manifest",
    "probe_digest",
    "verify_checksum",
    "workspace",
    "install_binary",
    "InstallerError",
    "ConfigError",
    "PlatformError",
    "UnsupportedOSError",
    "UnsupportedArchError",
    "UnsupportedPlatformComboError",
    "TransportError",
    "NoTransportAvailableError",
    "DownloadFailedError",
    "VerificationError",
    "ManifestEntryMissingError",
    "NoDigestToolAvailableError",
    "ChecksumMismatchError",
    "InstallError",
    "InstallDirCreateFailedError",
    "InstallInterrupted",
]
