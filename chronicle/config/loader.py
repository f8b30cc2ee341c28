"""Layered TOML configuration.

config/default.toml is mandatory; config/{CHRONICLE_ENV}.toml is layered over
it when present. Tables merge key by key, any other value replaces.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "CHRONICLE_CONFIG_DIR"
ENVIRONMENT_ENV = "CHRONICLE_ENV"
DEFAULT_ENVIRONMENT = "development"

# How many directories above the working directory to search for config/
_SEARCH_DEPTH = 5


def get_config_dir() -> Path:
    """Locate the directory holding default.toml.

    CHRONICLE_CONFIG_DIR wins when set and must exist. Otherwise the first
    config/ found from the working directory upwards is used.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        path = Path(override)
        if not path.is_dir():
            raise FileNotFoundError(f"{CONFIG_DIR_ENV} points to a missing directory: {override}")
        return path

    cwd = Path.cwd()
    for candidate in [cwd, *cwd.parents][:_SEARCH_DEPTH]:
        if (candidate / "config").is_dir():
            return candidate / "config"
    return Path("config")


def get_environment() -> str:
    return os.environ.get(ENVIRONMENT_ENV, DEFAULT_ENVIRONMENT)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file is absent
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    try:
        with file_path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Configuration file not found: {file_path}") from e


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return base with override layered on top, leaving both inputs intact."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config() -> dict[str, Any]:
    """Read default.toml and the overlay for the active environment."""
    config_dir = get_config_dir()
    default_path = config_dir / "default.toml"
    if not default_path.is_file():
        raise FileNotFoundError(
            f"{default_path} is required; create it or set {CONFIG_DIR_ENV}"
        )

    config = load_toml(default_path)
    overlay = config_dir / f"{get_environment()}.toml"
    if overlay.is_file():
        config = deep_merge(config, load_toml(overlay))
    return config
