"""
Centralized exception hierarchy for the Engram installer.

Every failure in the install pipeline is terminal. Each kind gets its own
exception class so the CLI can report it and tests can assert on it precisely.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class InstallerError(Exception):
    """Base exception for all installer errors."""

    pass


class ConfigError(InstallerError):
    """Configuration file, environment or flag value is invalid."""

    pass


# ============================================================================
# Platform Exceptions
# ============================================================================


class PlatformError(InstallerError):
    """Base exception for platform resolution errors."""

    pass


class UnsupportedOSError(PlatformError):
    """Raised when the operating system string is not recognized."""

    def __init__(self, raw_os: str):
        self.raw_os = raw_os
        super().__init__(f"Unsupported OS: {raw_os}")


class UnsupportedArchError(PlatformError):
    """Raised when the architecture string is not recognized."""

    def __init__(self, raw_arch: str):
        self.raw_arch = raw_arch
        super().__init__(f"Unsupported architecture: {raw_arch}")


class UnsupportedPlatformComboError(PlatformError):
    """Raised when a recognized OS/arch pair has no published release asset."""

    def __init__(self, platform_string: str, supported: list):
        self.platform_string = platform_string
        self.supported = list(supported)
        super().__init__(
            f"Unsupported platform for this Engram release: {platform_string} "
            f"(supported: {', '.join(self.supported)})"
        )


# ============================================================================
# Transport Exceptions
# ============================================================================


class TransportError(InstallerError):
    """Base exception for fetch errors."""

    pass


class NoTransportAvailableError(TransportError):
    """Raised when none of the preferred fetch backends is usable."""

    def __init__(self, tried: list):
        self.tried = list(tried)
        super().__init__(
            f"No download tool available (tried: {', '.join(self.tried)}); "
            "install curl or wget"
        )


class DownloadFailedError(TransportError):
    """Raised when a remote resource could not be fetched."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Download failed for {url}: {reason}")


# ============================================================================
# Verification Exceptions
# ============================================================================


class VerificationError(InstallerError):
    """Base exception for checksum verification errors."""

    pass


class ManifestEntryMissingError(VerificationError):
    """Raised when the checksum manifest has no line for the asset."""

    def __init__(self, asset_name: str):
        self.asset_name = asset_name
        super().__init__(f"Checksum entry for {asset_name} not found")


class NoDigestToolAvailableError(VerificationError):
    """Raised when none of the preferred SHA-256 backends is usable."""

    def __init__(self, tried: list):
        self.tried = list(tried)
        super().__init__(
            f"No SHA-256 tool available (tried: {', '.join(self.tried)}); "
            "sha256sum or shasum is required for checksum verification"
        )


class ChecksumMismatchError(VerificationError):
    """Raised when the downloaded binary's digest differs from the manifest."""

    def __init__(self, asset_name: str, expected: str, actual: str):
        self.asset_name = asset_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {asset_name}: "
            f"expected {expected}, actual {actual}"
        )


# ============================================================================
# Install Exceptions
# ============================================================================


class InstallError(InstallerError):
    """Base exception for errors placing the binary."""

    pass


class InstallDirCreateFailedError(InstallError):
    """Raised when the install directory cannot be created."""

    def __init__(self, install_dir, reason: str):
        self.install_dir = install_dir
        self.reason = reason
        super().__init__(f"Cannot create install directory {install_dir}: {reason}")


class InstallInterrupted(InstallerError):
    """Raised when the process receives a termination signal mid-install."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Install interrupted by signal {signum}")
