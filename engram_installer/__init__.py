"""
Engram installer.

Downloads a prebuilt Engram release for the current platform, verifies it
against the published SHA-256 checksum manifest, and installs it as an
executable.
"""

try:
    from importlib.metadata import version

    __version__ = version("engram-installer")
except Exception:
    __version__ = "0.1.0"

__all__ = ["__version__"]
