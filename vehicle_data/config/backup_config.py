"""
Backup schedule and retention configuration.

The configuration is persisted inside the ``settings`` object of the local
store under the ``backup`` key, using the same camelCase field names as the
web dashboard:

    {
        "backup": {
            "enabled": true,
            "frequency": "daily",
            "lastBackup": "2025-09-06T16:45:00+00:00",
            "backupCount": 12,
            "maxBackups": 30
        }
    }
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any


class BackupFrequency(str, Enum):
    """How often scheduled backups are taken."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


VALID_FREQUENCIES = {frequency.value for frequency in BackupFrequency}

# Default number of backups kept in the history
DEFAULT_MAX_BACKUPS = 30

# Key of the backup section inside the settings object
SETTINGS_SECTION = "backup"

# Python attribute name -> persisted key
_PERSISTED_KEYS = {
    "enabled": "enabled",
    "frequency": "frequency",
    "last_backup": "lastBackup",
    "backup_count": "backupCount",
    "max_backups": "maxBackups",
}


class BackupConfigError(Exception):
    """Raised when backup configuration values are invalid."""

    pass


@dataclass
class BackupConfig:
    """
    Backup schedule and retention settings.

    Attributes:
        enabled: Whether scheduled backups run
        frequency: "daily", "weekly" or "monthly"
        last_backup: ISO timestamp of the last successful backup, or None
        backup_count: Number of successful backups taken so far
        max_backups: Maximum number of backups kept in the history

    Usage:
        config = BackupConfig()
        config = config.merged(frequency="weekly", max_backups=10)
        settings["backup"] = config.to_dict()
    """

    enabled: bool = True
    frequency: str = BackupFrequency.DAILY.value
    last_backup: str | None = None
    backup_count: int = 0
    max_backups: int = DEFAULT_MAX_BACKUPS

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check field types and values.

        Raises:
            BackupConfigError: If any field is invalid
        """
        if not isinstance(self.enabled, bool):
            raise BackupConfigError(
                f"enabled must be a boolean, got {type(self.enabled).__name__}"
            )

        if self.frequency not in VALID_FREQUENCIES:
            raise BackupConfigError(
                f"frequency must be one of {', '.join(sorted(VALID_FREQUENCIES))}, "
                f"got {self.frequency!r}"
            )

        if self.last_backup is not None and not isinstance(self.last_backup, str):
            raise BackupConfigError(
                f"last_backup must be an ISO timestamp string, "
                f"got {type(self.last_backup).__name__}"
            )

        for name in ("backup_count", "max_backups"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise BackupConfigError(
                    f"{name} must be an integer, got {type(value).__name__}"
                )

        if self.backup_count < 0:
            raise BackupConfigError(
                f"backup_count must be >= 0, got {self.backup_count}"
            )

        if self.max_backups < 1:
            raise BackupConfigError(f"max_backups must be >= 1, got {self.max_backups}")

    def merged(self, **changes: Any) -> BackupConfig:
        """
        Return a copy with the given fields replaced.

        Raises:
            BackupConfigError: On unknown field names or invalid values
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise BackupConfigError(
                f"Unknown backup config field(s): {', '.join(sorted(unknown))}"
            )

        if isinstance(changes.get("frequency"), BackupFrequency):
            changes["frequency"] = changes["frequency"].value

        return replace(self, **changes)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any] | None, defaults: BackupConfig | None = None
    ) -> BackupConfig:
        """
        Create a BackupConfig from its persisted form.

        Keys missing from data keep the value from defaults.

        Raises:
            BackupConfigError: If data is not a dictionary or holds invalid values
        """
        base = defaults or cls()
        if data is None:
            return replace(base)

        if not isinstance(data, dict):
            raise BackupConfigError(
                f"backup configuration must be a dictionary, got {type(data).__name__}"
            )

        changes = {
            attr: data[key] for attr, key in _PERSISTED_KEYS.items() if key in data
        }
        return base.merged(**changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted camelCase form."""
        return {key: getattr(self, attr) for attr, key in _PERSISTED_KEYS.items()}


def backup_defaults_from_app_config(app_config: dict[str, Any]) -> BackupConfig:
    """
    Build default backup settings from the YAML application config.

    Recognized keys: backup_enabled, backup_frequency, backup_max_count.
    """
    changes: dict[str, Any] = {}
    if "backup_enabled" in app_config:
        changes["enabled"] = app_config["backup_enabled"]
    if "backup_frequency" in app_config:
        changes["frequency"] = app_config["backup_frequency"]
    if "backup_max_count" in app_config:
        changes["max_backups"] = app_config["backup_max_count"]
    return BackupConfig().merged(**changes)
