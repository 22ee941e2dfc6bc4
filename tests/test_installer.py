"""
Tests for the install pipeline.

Runs the full resolve -> locate -> fetch -> verify -> install sequence
against a mocked release host.
"""

import hashlib
import os
from dataclasses import replace
from unittest.mock import patch

import pytest
import responses

from engram_installer.core.download import RequestsTransport
from engram_installer.core.exceptions import (
    ChecksumMismatchError,
    DownloadFailedError,
    InstallDirCreateFailedError,
    ManifestEntryMissingError,
    NoDigestToolAvailableError,
    NoTransportAvailableError,
    UnsupportedPlatformComboError,
)
from engram_installer.core.platform import PlatformTarget
from engram_installer.installer import EngramInstaller, path_hint, run_install

from tests.conftest import BASE_URL, LATEST_BASE, REPO

ASSET = "engram-darwin-aarch64"


def add_release(base, asset, binary, manifest):
    responses.add(responses.GET, f"{base}/checksums.txt", body=manifest, status=200)
    responses.add(responses.GET, f"{base}/{asset}", body=binary, status=200)


class TestPlan:
    """Test EngramInstaller.plan."""

    def test_plan_is_offline(self, installer_config):
        """Test planning resolves URLs without network access."""
        plan = EngramInstaller(installer_config).plan("Darwin", "arm64")

        assert plan.platform == PlatformTarget("darwin", "aarch64")
        assert plan.asset.name == ASSET
        assert plan.asset.checksum_manifest_url == f"{LATEST_BASE}/checksums.txt"
        assert plan.install_path == installer_config.install_dir / "engram"


class TestInstall:
    """Test EngramInstaller.install."""

    @responses.activate
    def test_example_scenario(
        self, installer_config, isolated_tempdir, binary_content, make_manifest
    ):
        """Test Darwin/arm64/latest installs engram-darwin-aarch64."""
        manifest = make_manifest(
            (b"other", "engram-linux-x86_64"),
            (binary_content, ASSET),
        )
        add_release(LATEST_BASE, ASSET, binary_content, manifest)

        result = run_install(installer_config, raw_os="Darwin", raw_arch="arm64")

        assert result.platform == PlatformTarget("darwin", "aarch64")
        assert result.install_path == installer_config.install_dir / "engram"
        assert result.install_path.read_bytes() == binary_content
        assert result.sha256 == hashlib.sha256(binary_content).hexdigest()
        if os.name != "nt":
            assert os.access(result.install_path, os.X_OK)

        requested = [call.request.url for call in responses.calls]
        assert requested == [f"{LATEST_BASE}/checksums.txt", f"{LATEST_BASE}/{ASSET}"]
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_explicit_version(
        self, installer_config, isolated_tempdir, binary_content, make_manifest
    ):
        """Test explicit versions download from the v-prefixed tag."""
        base = f"{BASE_URL}/{REPO}/releases/download/v2.4.0"
        add_release(
            base,
            "engram-linux-x86_64",
            binary_content,
            make_manifest((binary_content, "engram-linux-x86_64")),
        )
        config = replace(installer_config, version="2.4.0")

        result = EngramInstaller(config).install("Linux", "x86_64")

        assert result.asset.binary_url == f"{base}/engram-linux-x86_64"

    @responses.activate
    def test_idempotent_reinstall(
        self, installer_config, isolated_tempdir, binary_content, make_manifest
    ):
        """Test a second identical run overwrites with a bit-identical file."""
        manifest = make_manifest((binary_content, ASSET))
        add_release(LATEST_BASE, ASSET, binary_content, manifest)
        add_release(LATEST_BASE, ASSET, binary_content, manifest)

        installer = EngramInstaller(installer_config)
        first = installer.install("Darwin", "arm64").install_path.read_bytes()
        second = installer.install("Darwin", "arm64").install_path.read_bytes()

        assert first == second == binary_content
        assert list(installer_config.install_dir.iterdir()) == [
            installer_config.install_dir / "engram"
        ]
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_flipped_byte_never_installed(
        self, installer_config, isolated_tempdir, binary_content, make_manifest
    ):
        """Test a corrupted binary raises and leaves no file at the install path."""
        tampered = bytearray(binary_content)
        tampered[0] ^= 0xFF
        add_release(
            LATEST_BASE, ASSET, bytes(tampered), make_manifest((binary_content, ASSET))
        )

        with pytest.raises(ChecksumMismatchError) as exc_info:
            EngramInstaller(installer_config).install("Darwin", "arm64")

        assert exc_info.value.expected == hashlib.sha256(binary_content).hexdigest()
        assert not (installer_config.install_dir / "engram").exists()
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_manifest_entry_missing(
        self, installer_config, isolated_tempdir, binary_content, make_manifest
    ):
        """Test only prefix-sharing entries is a missing entry."""
        manifest = make_manifest((binary_content, f"{ASSET}-debug"))
        add_release(LATEST_BASE, ASSET, binary_content, manifest)

        with pytest.raises(ManifestEntryMissingError):
            EngramInstaller(installer_config).install("Darwin", "arm64")

        assert not (installer_config.install_dir / "engram").exists()
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_manifest_download_failure_stops_pipeline(
        self, installer_config, isolated_tempdir
    ):
        """Test a failed manifest fetch aborts before the binary is requested."""
        responses.add(responses.GET, f"{LATEST_BASE}/checksums.txt", status=404)

        with pytest.raises(DownloadFailedError):
            EngramInstaller(installer_config).install("Darwin", "arm64")

        assert len(responses.calls) == 1
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_binary_download_failure(
        self, installer_config, isolated_tempdir, make_manifest
    ):
        """Test a failed binary fetch is terminal and cleans up."""
        responses.add(
            responses.GET,
            f"{LATEST_BASE}/checksums.txt",
            body=make_manifest((b"x", ASSET)),
        )
        responses.add(responses.GET, f"{LATEST_BASE}/{ASSET}", status=500)

        with pytest.raises(DownloadFailedError, match=ASSET):
            EngramInstaller(installer_config).install("Darwin", "arm64")

        assert len(responses.calls) == 2
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_unsupported_platform_makes_no_requests(
        self, installer_config, isolated_tempdir
    ):
        """Test linux-aarch64 fails before any network or filesystem activity."""
        with pytest.raises(UnsupportedPlatformComboError):
            EngramInstaller(installer_config).install("Linux", "aarch64")

        assert len(responses.calls) == 0
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_no_transport_checked_before_network(
        self, installer_config, isolated_tempdir
    ):
        """Test missing fetch tools are detected before any workspace exists."""
        config = replace(installer_config, transport=("curl", "wget"))

        with patch("engram_installer.core.download.shutil.which", return_value=None):
            with pytest.raises(NoTransportAvailableError):
                EngramInstaller(config).install("Darwin", "arm64")

        assert len(responses.calls) == 0
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_no_digest_tool_checked_before_network(
        self, installer_config, isolated_tempdir
    ):
        """Test missing digest tools are detected before downloading."""
        config = replace(installer_config, digest=("sha256sum", "shasum"))

        with patch("engram_installer.core.verification.shutil.which", return_value=None):
            with pytest.raises(NoDigestToolAvailableError):
                EngramInstaller(config).install("Darwin", "arm64")

        assert len(responses.calls) == 0
        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_install_dir_cannot_be_created(
        self, installer_config, tmp_path, isolated_tempdir, binary_content, make_manifest
    ):
        """Test InstallDirCreateFailedError after verification, with cleanup."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        config = replace(installer_config, install_dir=blocker / "bin")
        add_release(
            LATEST_BASE, ASSET, binary_content, make_manifest((binary_content, ASSET))
        )

        with pytest.raises(InstallDirCreateFailedError):
            EngramInstaller(config).install("Darwin", "arm64")

        assert list(isolated_tempdir.iterdir()) == []

    @responses.activate
    def test_injected_backends(
        self, installer_config, isolated_tempdir, binary_content, make_manifest
    ):
        """Test explicitly provided backends are used instead of probing."""
        add_release(
            LATEST_BASE, ASSET, binary_content, make_manifest((binary_content, ASSET))
        )
        installer = EngramInstaller(
            replace(installer_config, transport=("wget",)),
            transport=RequestsTransport(timeout=5),
        )

        with patch("engram_installer.installer.probe_transport") as mock_probe:
            installer.install("Darwin", "arm64")

        mock_probe.assert_not_called()


class TestPathHint:
    def test_hint_when_not_on_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        assert str(tmp_path) in path_hint(tmp_path)

    def test_no_hint_when_on_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATH", str(tmp_path))
        assert path_hint(tmp_path) is None
