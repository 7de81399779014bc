"""XDG-compliant path management for sweepctl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, state, and cache storage.

XDG defaults:
- Config: ~/.config/sweepctl/
- State: ~/.local/state/sweepctl/
- Cache: ~/.cache/sweepctl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "sweepctl"

# Versioned so an incompatible format change never reads an old snapshot
METADATA_CACHE_FILENAME = "metadata_v1.jsonl"


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

    Returns:
        Path to ~/.config/sweepctl/ (or XDG_CONFIG_HOME/sweepctl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes the operation log that should persist
    between runs but is not configuration.

    Returns:
        Path to ~/.local/state/sweepctl/ (or XDG_STATE_HOME/sweepctl/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_cache_dir() -> Path:
    """Get the cache directory path.

    Cache data includes the metadata snapshot, which can always be
    regenerated by probing the filesystem again.

    Returns:
        Path to ~/.cache/sweepctl/ (or XDG_CACHE_HOME/sweepctl/).
    """
    return _get_xdg_dir("XDG_CACHE_HOME", ".cache")


def get_config_path() -> Path:
    """Get the engine configuration file path.

    Returns:
        Path to ~/.config/sweepctl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_whitelist_path() -> Path:
    """Get the user override (whitelist) file path.

    Returns:
        Path to ~/.config/sweepctl/whitelist.
    """
    return get_config_dir() / "whitelist"


def get_purge_paths_path() -> Path:
    """Get the configured scan roots file path.

    Returns:
        Path to ~/.config/sweepctl/purge_paths.
    """
    return get_config_dir() / "purge_paths"


def get_metadata_cache_path() -> Path:
    """Get the persisted metadata cache file path.

    Returns:
        Path to ~/.cache/sweepctl/metadata_v1.jsonl.
    """
    return get_cache_dir() / METADATA_CACHE_FILENAME


def get_operation_log_path() -> Path:
    """Get the operation log file path.

    Returns:
        Path to ~/.local/state/sweepctl/operations.jsonl.
    """
    return get_state_dir() / "operations.jsonl"


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


def ensure_state_dir() -> Path:
    """Create the state directory if it doesn't exist.

    Returns:
        Path to the state directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_state_dir(), "state")


def ensure_cache_dir() -> Path:
    """Create the cache directory if it doesn't exist.

    Returns:
        Path to the cache directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_cache_dir(), "cache")


def ensure_dirs() -> None:
    """Create all required application directories."""
    ensure_config_dir()
    ensure_state_dir()
    ensure_cache_dir()


def expand_user_path(raw: str) -> str:
    """Expand a leading ``~`` and strip a trailing slash.

    Used for user-edited files (whitelist, purge_paths) where entries
    are written with ``~`` for portability.

    Args:
        raw: Path string as written by the user.

    Returns:
        Absolute-looking path string (not resolved, not validated).
    """
    value = raw.strip()
    if value == "~" or value.startswith("~/"):
        value = str(Path.home()) + value[1:]
    if len(value) > 1:
        value = value.rstrip("/")
    return value


def contract_user_path(path: str) -> str:
    """Replace the home directory prefix with ``~`` for display and storage.

    Args:
        path: Absolute path string.

    Returns:
        Tilde-prefixed path for paths under home, otherwise unchanged.
    """
    home = str(Path.home())
    if path == home:
        return "~"
    if path.startswith(home + "/"):
        return "~" + path[len(home) :]
    return path
