"""
Configuration file generator for the vehicle data tools.

Generates a default config.yaml with every supported option documented.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate default YAML configuration with all options documented.

    All options are commented out, so the generated file loads as an empty
    configuration until the user edits it.

    Returns:
        String containing YAML configuration with comments
    """
    return """# Vehicle Data Configuration
# ==========================
#
# Default options for the vehicle-data command.
# CLI arguments always override these values.
#
# Save as ~/.vehicle-data/config.yaml (or pass --config-file).

# Logging Options
# ---------------

# Enable verbose output with detailed logging
# Default: false
# verbose: true

# Directory for daily log files
# Default: ~/.vehicle-data/logs
# log_dir: /path/to/logs

# Number of daily log files to keep (0 keeps all)
# Default: 10
# log_retention_count: 10


# Storage Options
# ---------------

# SQLite database holding vehicles, maintenance records, invoices,
# users, backup history and settings
# Default: ~/.vehicle-data/vehicle_data.db
# db_path: /path/to/vehicle_data.db

# Directory where exported files are written
# Default: ~/.vehicle-data/exports
# export_dir: /path/to/exports


# Backup Options
# --------------
# These seed the backup settings the first time they are created.
# Later changes are made with `vehicle-data backup-config set`.

# Run scheduled backups
# Default: true
# backup_enabled: true

# Backup frequency: daily, weekly or monthly
# Default: daily
# backup_frequency: daily

# Maximum number of backups kept (oldest are dropped first)
# Default: 30
# backup_max_count: 30


# Daemon Options
# --------------

# How often the daemon checks whether a backup is due
# ('30s', '5m', '1h', '1d' or seconds)
# Default: 1h
# daemon_interval: 1h


# Import Options
# --------------

# Seconds allowed for reading and parsing an import file
# Default: 30
# import_timeout: 30
"""


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, str | None]:
    """
    Save default configuration file to specified path.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If True, overwrite existing file. If False, fail if file exists.

    Returns:
        Tuple of (success, error_message); error_message is None on success
    """
    try:
        config_path = config_path.expanduser().resolve()

        if config_path.exists() and not overwrite:
            return (
                False,
                f"Configuration file already exists: {config_path}\n"
                "Use --force to overwrite.",
            )

        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)

        logger.info(f"Created configuration file: {config_path}")
        return (True, None)

    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)
