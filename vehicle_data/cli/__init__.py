"""CLI package for vehicle_data."""

from vehicle_data.cli.formatters import (
    format_size,
    show_backup_config,
    show_backup_details,
    show_backup_table,
)
from vehicle_data.cli.main import cli, get_config_dir, get_config_file
from vehicle_data.utils import DEFAULT_CONFIG_DIR

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "cli",
    "format_size",
    "get_config_dir",
    "get_config_file",
    "show_backup_config",
    "show_backup_details",
    "show_backup_table",
]
