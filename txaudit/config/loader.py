"""TOML configuration loader with deep merge support."""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "TXAUDIT_CONFIG_DIR"
ENVIRONMENT_ENV = "TXAUDIT_ENV"


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Overridden with TXAUDIT_CONFIG_DIR; otherwise the nearest ``config/``
    directory from the working directory upward (up to 5 levels).
    """
    config_dir_env = os.environ.get(CONFIG_DIR_ENV)
    if config_dir_env:
        path = Path(config_dir_env)
        if not path.exists():
            raise FileNotFoundError(f"Config directory not found: {config_dir_env}")
        return path

    current = Path.cwd()
    for _ in range(5):
        config_path = current / "config"
        if config_path.exists():
            return config_path
        current = current.parent

    return Path("config")


def get_environment() -> str:
    """Get the current environment from TXAUDIT_ENV (default: development)."""
    return os.environ.get(ENVIRONMENT_ENV, "development")


def load_toml(file_path: Path) -> dict[str, Any]:
    """Load a TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with file_path.open("rb") as f:
        return tomllib.load(f)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config() -> dict[str, Any]:
    """Load configuration from TOML files.

    Loading order, each optional since txaudit is embedded in host apps:
    1. config/default.toml
    2. config/{TXAUDIT_ENV}.toml
    """
    config_dir = get_config_dir()
    config: dict[str, Any] = {}

    for path in (config_dir / "default.toml", config_dir / f"{get_environment()}.toml"):
        if path.exists():
            config = deep_merge(config, load_toml(path))

    return config
