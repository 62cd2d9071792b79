"""CLI configuration management with XDG-compliant storage."""

import json
import os
from pathlib import Path
from typing import Any

DEFAULT_SERVER_URL = "http://localhost:8000"
DEFAULT_DEBOUNCE_SECONDS = 1.0
DEFAULT_POLL_SECONDS = 15.0


def get_config_dir() -> Path:
    """Get XDG-compliant config directory for notico.

    Honors ``NOTICO_CONFIG_DIR`` when set.

    Returns:
        Path to ~/.config/notico/
    """
    override = os.getenv("NOTICO_CONFIG_DIR")
    config_dir = Path(override) if override else Path.home() / ".config" / "notico"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file() -> Path:
    """Get path to config file.

    Returns:
        Path to ~/.config/notico/config.json
    """
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from file.

    Returns:
        Dictionary of configuration values, or empty dict if file doesn't exist.
    """
    config_file = get_config_file()
    if not config_file.exists():
        return {}

    with config_file.open("r") as f:
        data: dict[str, Any] = json.load(f)
        return data


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to file.

    Args:
        config: Dictionary of configuration values to save.
    """
    config_file = get_config_file()
    with config_file.open("w") as f:
        json.dump(config, f, indent=2)


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a single configuration value.

    Args:
        key: Configuration key to retrieve.
        default: Default value if key doesn't exist.

    Returns:
        Configuration value or default.
    """
    config = load_config()
    return config.get(key, default)


def set_config_value(key: str, value: Any) -> None:
    """Set a single configuration value.

    Args:
        key: Configuration key to set.
        value: Value to store.
    """
    config = load_config()
    config[key] = value
    save_config(config)


def get_float_setting(key: str, default: float) -> float:
    """Read a numeric setting, falling back to the default on bad input."""
    value = get_config_value(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
