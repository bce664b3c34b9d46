"""
vehicle_data.config - Configuration management module

Contains YAML application config loading and backup schedule settings.
"""

from vehicle_data.config.backup_config import (
    BackupConfig,
    BackupConfigError,
    BackupFrequency,
    backup_defaults_from_app_config,
)
from vehicle_data.config.loader import ConfigError, ConfigLoader

__all__ = [
    "BackupConfig",
    "BackupConfigError",
    "BackupFrequency",
    "ConfigError",
    "ConfigLoader",
    "backup_defaults_from_app_config",
]
