"""Configuration file management for billig."""

import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w


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
    return get_xdg_config_home() / "billig" / "config.toml"


def create_default_config(config_path: Path | None = None) -> None:
    """Create default config file with secure permissions.

    Args:
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    # TOML has no null, so an unset default_file is simply absent
    default_config: dict[str, Any] = {
        "log_json": False,
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(default_config, f)

    os.chmod(config_path, 0o600)


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "rb") as f:
        return tomllib.load(f)


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


def get_default_file(config_path: Path | None = None) -> Path | None:
    """Get the root ledger file to load when none is given on the command line.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        The configured file, or None if there is no config or no default.
    """
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        return None

    default_file = config.get("default_file")
    if not default_file:
        return None
    return Path(default_file).expanduser()


def get_log_json(config_path: Path | None = None) -> bool:
    """Whether JSON log output is enabled in the config file."""
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        return False
    return bool(config.get("log_json", False))
