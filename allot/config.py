"""Configuration file management for allot."""

import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from allot.domain.models import AllocationPolicy
from allot.store.schema import get_db_path

DEFAULT_CONFIG: dict[str, Any] = {
    "allocation_policy": AllocationPolicy.RECOMPUTE.value,
    "currency_symbol": "£",
}


class ConfigError(Exception):
    """Raised when the config file holds an invalid value."""


def get_xdg_config_home() -> Path:
    """Get XDG config directory, with fallback to ~/.config."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


def get_config_path() -> Path:
    """Get the config file path (XDG compliant).

    Returns:
        Path to the config file.
    """
    return get_xdg_config_home() / "allot" / "config.toml"


def create_default_config(config_path: Path | None = None, db_path: str | None = None) -> None:
    """Create default config file with secure permissions.

    Args:
        config_path: Path to config file. If None, uses default location.
        db_path: Custom database location to record, if any.
    """
    config = dict(DEFAULT_CONFIG)
    if db_path:
        config["db_path"] = db_path
    save_config(config, config_path)


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file, merged over the defaults.

    A missing file yields the defaults.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Configuration dictionary.

    Raises:
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    if config_path is None:
        config_path = get_config_path()

    config = dict(DEFAULT_CONFIG)
    if not config_path.exists():
        return config

    with open(config_path, "rb") as f:
        config.update(tomllib.load(f))
    return config


def save_config(config: dict[str, Any], config_path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Args:
        config: Configuration dictionary.
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)

    os.chmod(config_path, 0o600)


def get_allocation_policy(config: dict[str, Any]) -> AllocationPolicy:
    """Read the allocation policy from a config dictionary.

    Raises:
        ConfigError: If the policy name is unknown.
    """
    raw = str(config.get("allocation_policy", AllocationPolicy.RECOMPUTE.value))
    try:
        return AllocationPolicy(raw.strip().lower())
    except ValueError:
        choices = ", ".join(p.value for p in AllocationPolicy)
        raise ConfigError(f"Unknown allocation_policy '{raw}'. Choose one of: {choices}") from None


def get_configured_db_path(config: dict[str, Any]) -> Path:
    """Database path from config, or the XDG default."""
    custom = config.get("db_path")
    if custom:
        return Path(custom).expanduser()
    return get_db_path()
