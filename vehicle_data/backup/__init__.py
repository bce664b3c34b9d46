"""
vehicle_data.backup - Local backup, restore and import

Snapshots of the domain collections with capped retention, plus import of
exported data files.
"""

from vehicle_data.backup.importer import (
    DEFAULT_IMPORT_TIMEOUT,
    DataImporter,
    ImportDataError,
    ImportTimeoutError,
)
from vehicle_data.backup.manager import BackupManager
from vehicle_data.backup.models import SNAPSHOT_VERSION, BackupRecord, DomainSnapshot

__all__ = [
    "BackupManager",
    "BackupRecord",
    "DomainSnapshot",
    "SNAPSHOT_VERSION",
    "DataImporter",
    "ImportDataError",
    "ImportTimeoutError",
    "DEFAULT_IMPORT_TIMEOUT",
]
