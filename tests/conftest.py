"""
Pytest configuration and shared fixtures for Engram installer tests.
"""

import hashlib
import tempfile
from pathlib import Path

import pytest

from engram_installer.config import InstallerConfig

BASE_URL = "https://example.test"
REPO = "org/engram"
LATEST_BASE = f"{BASE_URL}/{REPO}/releases/latest/download"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line(
        "markers", "posix: marks tests that rely on POSIX permissions or signals"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def isolated_tempdir(tmp_path, monkeypatch) -> Path:
    """Redirect tempfile.mkdtemp() so workspace leftovers can be inspected."""
    temp_root = tmp_path / "system-tmp"
    temp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(temp_root))
    return temp_root


@pytest.fixture
def binary_content() -> bytes:
    """Fake release binary payload."""
    return b"\x7fELF" + b"engram-binary-payload" * 64


@pytest.fixture
def make_manifest():
    """Build checksums.txt content from (content-or-digest, filename) pairs."""

    def _make(*entries) -> str:
        lines = []
        for value, filename in entries:
            if isinstance(value, bytes):
                value = hashlib.sha256(value).hexdigest()
            lines.append(f"{value}  {filename}")
        return "\n".join(lines) + "\n"

    return _make


@pytest.fixture
def installer_config(tmp_path) -> InstallerConfig:
    """Config pointing at a fake release host and a temp install dir."""
    return InstallerConfig(
        repo=REPO,
        install_dir=tmp_path / "install" / "bin",
        version="latest",
        base_url=BASE_URL,
        transport=("requests",),
        digest=("hashlib",),
        timeout=5,
    )
