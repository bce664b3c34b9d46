"""
Path utilities for configuration directory resolution.

Provides consistent path resolution for the vehicle-data configuration
directory, the local database and the export directory.
"""

from __future__ import annotations

import os
from pathlib import Path

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".vehicle-data"

# Environment variable for overriding config directory
CONFIG_DIR_ENV_VAR = "VEHICLE_DATA_CONFIG_DIR"

# File and directory names inside the config directory
DEFAULT_DB_FILE = "vehicle_data.db"
DEFAULT_EXPORT_DIR = "exports"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Resolve the configuration directory path.

    Priority:
        1. Explicit config_dir parameter (if provided)
        2. VEHICLE_DATA_CONFIG_DIR environment variable
        3. Default directory (~/.vehicle-data)

    Args:
        config_dir: Optional explicit configuration directory path.
                   Can be a Path object or string.

    Returns:
        Resolved Path to the configuration directory (expanduser and resolve applied)
    """
    if config_dir is not None:
        return Path(config_dir).expanduser().resolve()

    env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return DEFAULT_CONFIG_DIR.expanduser().resolve()


def resolve_db_path(config_dir: Path, configured: str | None = None) -> Path:
    """Return the database path: the configured value, else one inside config_dir."""
    if configured:
        return Path(configured).expanduser()
    return config_dir / DEFAULT_DB_FILE


def resolve_export_dir(config_dir: Path, configured: str | None = None) -> Path:
    """Return the export directory: the configured value, else config_dir/exports."""
    if configured:
        return Path(configured).expanduser()
    return config_dir / DEFAULT_EXPORT_DIR
