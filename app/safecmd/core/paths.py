"""XDG-compliant path management for safecmd.

This module provides standardized paths following the XDG Base Directory
Specification for configuration files.

XDG defaults:
- Config: ~/.config/safecmd/
- Data: ~/.local/share/safecmd/ (fallback trash)
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "safecmd"

# Environment variable overriding the config file location
CONFIG_PATH_ENV = "SAFECMD_CONFIG_PATH"

# Environment variable disabling the directory scope restriction
DISABLE_SCOPE_ENV = "SAFECMD_DISABLE_SCOPE"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


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
        Path to ~/.config/safecmd/ (or XDG_CONFIG_HOME/safecmd/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the config file path.

    Priority:
    1. SAFECMD_CONFIG_PATH environment variable
    2. ~/.config/safecmd/config.toml

    Returns:
        Path to the config file.
    """
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override)
    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path.

    Returns:
        Path to ~/.local/share/safecmd/ (or XDG_DATA_HOME/safecmd/).
    """
    return _get_xdg_dir("XDG_DATA_HOME", ".local/share")


def get_fallback_trash_dir() -> Path:
    """Get the directory used when the system trash is unavailable.

    Returns:
        Path to ~/.local/share/safecmd/trash/.
    """
    return get_data_dir() / "trash"


def get_theme_path() -> Path:
    """Get the user theme file path.

    Returns:
        Path to ~/.config/safecmd/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def is_scope_disabled() -> bool:
    """Check whether scope restriction was explicitly disabled.

    Only an explicit truthy SAFECMD_DISABLE_SCOPE value disables it.

    Returns:
        True if the directory scope check must be skipped.
    """
    return os.environ.get(DISABLE_SCOPE_ENV, "").strip().lower() in _TRUTHY


def ensure_parent_dir(path: Path, name: str) -> Path:
    """Create the parent directory of a file if it doesn't exist.

    Args:
        path: File whose parent directory is created.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    directory = path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {directory}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {directory}: {e}"
        raise RuntimeError(msg) from e
    return directory
