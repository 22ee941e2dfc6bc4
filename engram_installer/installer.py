"""
Engram install pipeline.

This module runs the install stages strictly in order:
1. Resolve the host platform
2. Locate the release asset URLs
3. Probe fetch and digest backends (before any network activity)
4. Fetch checksum manifest and binary into a scoped workspace
5. Verify the binary's SHA-256 against the manifest
6. Install the verified binary as an executable

Every failure is terminal and the workspace is always removed.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from engram_installer.config import InstallerConfig
from engram_installer.core.download import Transport, probe_transport
from engram_installer.core.filesystem import (
    BINARY_NAME,
    install_binary,
    is_on_path,
    workspace,
)
from engram_installer.core.platform import PlatformTarget, detect_platform
from engram_installer.core.release import (
    CHECKSUMS_FILENAME,
    AssetDescriptor,
    locate_release,
)
from engram_installer.core.verification import (
    DigestTool,
    probe_digest,
    verify_checksum,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallPlan:
    """What will be installed, computed without touching the network."""

    platform: PlatformTarget
    asset: AssetDescriptor
    install_path: Path


@dataclass(frozen=True)
class InstallResult:
    """Result of a successful install."""

    platform: PlatformTarget
    asset: AssetDescriptor
    install_path: Path
    sha256: str


class EngramInstaller:
    """
    Downloads, verifies and installs the Engram binary.

    Example:
        >>> installer = EngramInstaller(load_config())
        >>> result = installer.install()
        >>> print(f"Installed at: {result.install_path}")
    """

    def __init__(
        self,
        config: InstallerConfig,
        transport: Optional[Transport] = None,
        digest_tool: Optional[DigestTool] = None,
    ):
        """
        Initialize installer.

        Args:
            config: Effective configuration
            transport: Fetch backend. If None, probed from ``config.transport``.
            digest_tool: SHA-256 backend. If None, probed from ``config.digest``.
        """
        self.config = config
        self.transport = transport
        self.digest_tool = digest_tool

    def plan(
        self, raw_os: Optional[str] = None, raw_arch: Optional[str] = None
    ) -> InstallPlan:
        """Resolve platform and release URLs (pure; no I/O)."""
        target = detect_platform(raw_os, raw_arch)
        asset = locate_release(
            self.config.repo, self.config.version, target, self.config.base_url
        )
        return InstallPlan(
            platform=target,
            asset=asset,
            install_path=Path(self.config.install_dir) / BINARY_NAME,
        )

    def install(
        self, raw_os: Optional[str] = None, raw_arch: Optional[str] = None
    ) -> InstallResult:
        """
        Run the complete install pipeline.

        Args:
            raw_os: OS override (default: detected)
            raw_arch: Architecture override (default: detected)

        Returns:
            InstallResult describing the installed binary

        Raises:
            InstallerError: On any failure (see engram_installer.core.exceptions)
        """
        plan = self.plan(raw_os, raw_arch)
        logger.info(f"Detected platform: {plan.platform}")

        # Both backends are fixed before anything is downloaded.
        transport = self.transport or probe_transport(
            self.config.transport, timeout=self.config.timeout
        )
        digest_tool = self.digest_tool or probe_digest(self.config.digest)

        with workspace() as tmp:
            manifest_path = transport.fetch(
                plan.asset.checksum_manifest_url, tmp / CHECKSUMS_FILENAME
            )
            binary_path = transport.fetch(plan.asset.binary_url, tmp / plan.asset.name)

            sha256 = verify_checksum(
                manifest_path.read_bytes(),
                plan.asset.name,
                binary_path,
                digest_tool,
            )

            install_path = install_binary(binary_path, self.config.install_dir)

        logger.info(f"Installed engram to: {install_path}")
        return InstallResult(
            platform=plan.platform,
            asset=plan.asset,
            install_path=install_path,
            sha256=sha256,
        )


def run_install(
    config: InstallerConfig,
    raw_os: Optional[str] = None,
    raw_arch: Optional[str] = None,
) -> InstallResult:
    """
    Install Engram (convenience function).

    Example:
        >>> from engram_installer.config import load_config
        >>> result = run_install(load_config(), raw_os="Darwin", raw_arch="arm64")
    """
    return EngramInstaller(config).install(raw_os, raw_arch)


def path_hint(install_dir: Path) -> Optional[str]:
    """Return a PATH hint when ``install_dir`` is not on PATH."""
    if is_on_path(install_dir):
        return None
    return f"If 'engram' is not found, add {install_dir} to your PATH."
