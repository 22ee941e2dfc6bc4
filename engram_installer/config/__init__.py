"""Configuration loading for the Engram installer."""

from .parser import (
    DEFAULT_REPO,
    ENV_VARS,
    InstallerConfig,
    default_install_dir,
    load_config,
    parse_config_file,
)

__all__ = [
    "DEFAULT_REPO",
    "ENV_VARS",
    "InstallerConfig",
    "default_install_dir",
    "load_config",
    "parse_config_file",
]
