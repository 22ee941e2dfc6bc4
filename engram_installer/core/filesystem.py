"""
File system utilities for the Engram installer.

This module provides:
- A scoped temporary workspace, removed on every exit path including
  termination signals
- Safe directory removal
- Crash-safe installation of an executable (stage, fsync, rename)
"""

import logging
import os
import shutil
import signal
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from .exceptions import (
    InstallDirCreateFailedError,
    InstallerError,
    InstallInterrupted,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

WORKSPACE_PREFIX = "engram-install-"
BINARY_NAME = "engram"
INSTALL_MODE = 0o755
COPY_CHUNK_SIZE = 1024 * 1024

# SIGINT already surfaces as KeyboardInterrupt
TERMINATION_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


class FilesystemError(InstallerError):
    """Base exception for filesystem operations."""

    pass


# ============================================================================
# Workspace
# ============================================================================


def _raise_interrupted(signum, frame):
    raise InstallInterrupted(signum)


def _set_signal_handlers(handler) -> dict:
    """Install ``handler`` for termination signals; return the previous ones."""
    if threading.current_thread() is not threading.main_thread():
        return {}

    previous = {}
    for signum in TERMINATION_SIGNALS:
        previous[signum] = signal.signal(signum, handler)
    return previous


def _restore_signal_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler if handler is not None else signal.SIG_DFL)


@contextmanager
def workspace(
    prefix: str = WORKSPACE_PREFIX, base_dir: Optional[Union[str, Path]] = None
) -> Iterator[Path]:
    """
    Context manager for the installer's scoped temporary directory.

    The directory is removed on normal exit, on any exception, and when the
    process receives SIGTERM/SIGHUP (converted to :class:`InstallInterrupted`
    for the duration of the block).

    Args:
        prefix: Prefix for the directory name
        base_dir: Parent directory (default: system temp dir)

    Yields:
        Path to the workspace directory

    Example:
        >>> with workspace() as tmp:
        ...     (tmp / "checksums.txt").write_text("...")
        ...     # Directory is removed here, whatever happens above
    """
    previous = _set_signal_handlers(_raise_interrupted)
    temp_dir = None
    failed = False

    try:
        temp_dir = Path(tempfile.mkdtemp(prefix=prefix, dir=base_dir))
        logger.debug(f"Created workspace: {temp_dir}")
        yield temp_dir
    except BaseException:
        failed = True
        raise
    finally:
        # Termination signals are ignored while the workspace is removed.
        _set_signal_handlers(signal.SIG_IGN)
        try:
            if temp_dir is not None:
                _remove_workspace(temp_dir, failed)
        finally:
            _restore_signal_handlers(previous)


def _remove_workspace(temp_dir: Path, failed: bool) -> None:
    """Remove the workspace; a cleanup error never masks the block's own error."""
    try:
        safe_rmtree(temp_dir)
    except FilesystemError as e:
        if not failed:
            raise
        logger.warning(f"Could not remove workspace: {e}")
        return
    logger.debug(f"Removed workspace: {temp_dir}")


def safe_rmtree(path: Union[str, Path]) -> None:
    """
    Remove a directory tree.

    Raises:
        FilesystemError: If the path is not a directory or deletion fails
    """
    path = Path(path)

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


# ============================================================================
# Installation
# ============================================================================


def ensure_install_dir(path: Union[str, Path]) -> Path:
    """
    Create the install directory and any missing parents.

    Raises:
        InstallDirCreateFailedError: If the directory cannot be created
    """
    path = Path(path).expanduser()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InstallDirCreateFailedError(path, e.strerror or str(e)) from e
    return path


def install_binary(
    source: Union[str, Path], install_dir: Union[str, Path], name: str = BINARY_NAME
) -> Path:
    """
    Install a verified binary as ``<install_dir>/<name>``.

    The file is staged next to its final path (same filesystem), flushed to
    disk, made executable and renamed into place, so the final path never
    holds a truncated file. An existing file is replaced.

    Args:
        source: Verified binary (typically inside the workspace)
        install_dir: Destination directory (created if absent)
        name: Installed file name

    Returns:
        Path to the installed executable

    Raises:
        InstallDirCreateFailedError: If the install directory cannot be created
    """
    install_dir = ensure_install_dir(install_dir)
    final_path = install_dir / name

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=install_dir, prefix=f".{name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        with open(temp_fd, "wb") as dst, open(source, "rb") as src:
            shutil.copyfileobj(src, dst, COPY_CHUNK_SIZE)
            dst.flush()
            os.fsync(dst.fileno())

        os.chmod(temp_path, INSTALL_MODE)
        os.replace(temp_path, final_path)

    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    _fsync_directory(install_dir)
    logger.debug(f"Installed {source} -> {final_path}")
    return final_path


def _fsync_directory(path: Path) -> None:
    """Persist a rename by syncing its directory entry (POSIX only)."""
    if IS_WINDOWS:
        return

    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def is_on_path(directory: Union[str, Path], path_env: Optional[str] = None) -> bool:
    """Check whether ``directory`` is listed in the PATH environment variable."""
    if path_env is None:
        path_env = os.environ.get("PATH", "")

    target = Path(directory).expanduser().resolve()
    for entry in path_env.split(os.pathsep):
        if entry and Path(entry).expanduser().resolve() == target:
            return True
    return False


__all__ = [
    "FilesystemError",
    "workspace",
    "safe_rmtree",
    "ensure_install_dir",
    "install_binary",
    "is_on_path",
    "BINARY_NAME",
]
