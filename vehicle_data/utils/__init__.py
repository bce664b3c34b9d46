"""
vehicle_data.utils - Utility module

Common utilities including logging configuration and path resolution.
"""

from vehicle_data.utils.paths import (
    DEFAULT_CONFIG_DIR,
    resolve_config_dir,
    resolve_db_path,
    resolve_export_dir,
)

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "resolve_config_dir",
    "resolve_db_path",
    "resolve_export_dir",
]
