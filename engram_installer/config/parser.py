"""YAML and environment configuration for the Engram installer.

Configuration is read once at startup into an immutable
:class:`InstallerConfig`. Layers, lowest precedence first:

1. Built-in defaults
2. Optional YAML file
3. Environment variables (``ENGRAM_REPO``, ``INSTALL_DIR``, ...)
4. Command-line overrides
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from engram_installer.core.download import (
    DEFAULT_TIMEOUT,
    DEFAULT_TRANSPORT_ORDER,
    TRANSPORTS,
)
from engram_installer.core.exceptions import ConfigError
from engram_installer.core.release import GITHUB_URL, LATEST, normalize_version
from engram_installer.core.verification import DEFAULT_DIGEST_ORDER, DIGEST_TOOLS

logger = logging.getLogger(__name__)

DEFAULT_REPO = "lkubicek1/engram"

# Environment variable -> config field
ENV_VARS = {
    "ENGRAM_REPO": "repo",
    "INSTALL_DIR": "install_dir",
    "ENGRAM_VERSION": "version",
    "ENGRAM_BASE_URL": "base_url",
}


def default_install_dir() -> Path:
    return Path.home() / ".local" / "bin"


@dataclass(frozen=True)
class InstallerConfig:
    """Installer settings, fixed for the whole run."""

    repo: str = DEFAULT_REPO
    install_dir: Path = field(default_factory=default_install_dir)
    version: str = LATEST
    base_url: str = GITHUB_URL
    transport: Tuple[str, ...] = DEFAULT_TRANSPORT_ORDER
    digest: Tuple[str, ...] = DEFAULT_DIGEST_ORDER
    timeout: int = DEFAULT_TIMEOUT


FIELD_NAMES = {f.name for f in fields(InstallerConfig)}


def parse_config_file(config_path: Path) -> Dict[str, Any]:
    """
    Read a YAML configuration file.

    Args:
        config_path: Path to the YAML file

    Returns:
        Raw (unvalidated) mapping of settings

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {config_path}: {e}")

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")

    logger.debug(f"Loaded configuration from {config_path}")
    return data


def read_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect settings from environment variables (empty values are ignored)."""
    if environ is None:
        environ = os.environ

    values = {}
    for var, name in ENV_VARS.items():
        value = environ.get(var, "")
        if value:
            values[name] = value
    return values


def _parse_choices(name: str, value: Any, known: Mapping) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    elif isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value]
    else:
        raise ConfigError(f"{name} must be a list or comma-separated string")

    items = [item for item in items if item]
    if not items:
        raise ConfigError(f"{name} must name at least one backend")

    for item in items:
        if item not in known:
            raise ConfigError(
                f"Unknown {name} backend: {item} (expected one of: {', '.join(known)})"
            )
    return tuple(items)


def _parse_value(name: str, value: Any) -> Any:
    """Validate and coerce one setting."""
    if name in ("repo", "version", "base_url"):
        # YAML reads `version: 2.4` as a float
        if name == "version" and isinstance(value, (int, float)):
            value = str(value)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"{name} must be a non-empty string")
        value = value.strip()
        if name == "version":
            return normalize_version(value)
        if name == "repo" and value.strip("/").count("/") != 1:
            raise ConfigError(f"repo must have the form 'owner/name': {value}")
        return value

    if name == "install_dir":
        if not isinstance(value, (str, Path)) or not str(value).strip():
            raise ConfigError("install_dir must be a non-empty path")
        return Path(value).expanduser()

    if name == "transport":
        return _parse_choices(name, value, TRANSPORTS)

    if name == "digest":
        return _parse_choices(name, value, DIGEST_TOOLS)

    if name == "timeout":
        try:
            timeout = int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"timeout must be an integer: {value!r}")
        if timeout <= 0:
            raise ConfigError(f"timeout must be positive: {timeout}")
        return timeout

    raise ConfigError(f"Unknown configuration key: {name}")


def _apply(config: InstallerConfig, values: Mapping[str, Any], source: str):
    unknown = sorted(set(values) - FIELD_NAMES)
    if unknown:
        raise ConfigError(
            f"Unknown configuration key(s) in {source}: {', '.join(unknown)}"
        )

    parsed = {name: _parse_value(name, value) for name, value in values.items()}
    if parsed:
        logger.debug(f"Applying {source} settings: {', '.join(sorted(parsed))}")
    return replace(config, **parsed)


def load_config(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> InstallerConfig:
    """
    Build the effective configuration from all layers.

    Args:
        config_file: Optional YAML file
        environ: Environment mapping (default: ``os.environ``)
        overrides: Command-line values; ``None`` entries are ignored

    Returns:
        Validated InstallerConfig

    Raises:
        ConfigError: If any layer holds an invalid value
    """
    config = InstallerConfig()

    if config_file is not None:
        config = _apply(config, parse_config_file(config_file), str(config_file))

    config = _apply(config, read_environment(environ), "environment")

    if overrides:
        cli_values = {k: v for k, v in overrides.items() if v is not None}
        config = _apply(config, cli_values, "command line")

    return config
