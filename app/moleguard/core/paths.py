"""XDG-compliant path management for moleguard.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and persisted engine state.

XDG defaults:
- Config: ~/.config/moleguard/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "moleguard"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Whitelist entries and run history live here too: both are user-scoped
    records rather than regenerable state.

    Returns:
        Path to ~/.config/moleguard/ (or XDG_CONFIG_HOME/moleguard/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the engine configuration file path.

    Returns:
        Path to ~/.config/moleguard/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_whitelist_path() -> Path:
    """Get the whitelist file path.

    Returns:
        Path to ~/.config/moleguard/whitelist.jsonl.
    """
    return get_config_dir() / "whitelist.jsonl"


def get_history_path() -> Path:
    """Get the run history file path.

    Returns:
        Path to ~/.config/moleguard/history.jsonl.
    """
    return get_config_dir() / "history.jsonl"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_config_dir() -> Path:
    """Create the configuration directory if it doesn't exist.

    Returns:
        Path to the configuration directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_config_dir(), "config")
