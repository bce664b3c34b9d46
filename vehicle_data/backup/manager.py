"""
Backup manager for vehicle-shop data persistence and recovery.

Provides functionality to:
- Snapshot every domain collection into the local backup history
- Keep the history capped at the configured maximum (oldest dropped first)
- Restore a snapshot back into the local store
- Track and persist the backup schedule configuration
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

from vehicle_data.backup.models import BackupRecord, DomainSnapshot
from vehicle_data.config.backup_config import (
    SETTINGS_SECTION,
    BackupConfig,
    BackupConfigError,
)
from vehicle_data.storage.collections import CollectionStore, StorageKeys
from vehicle_data.storage.db import StorageError
from vehicle_data.utils.timestamps import utc_now

logger = logging.getLogger(__name__)


class BackupManager:
    """
    Manager for creating and managing local data backups.

    Backups are kept in the ``backup-history`` key, most recent first.
    The manager owns the BackupConfig; it is loaded from the ``settings``
    key on construction and written back after every change.

    All operations that read and then write the history or the config hold
    ``lock``, so a scheduled backup never interleaves with a manual one.

    Attributes:
        store: Collection store holding domain data, history and settings
        config: Current backup configuration
        lock: Re-entrant lock guarding history and config mutations

    Usage:
        bm = BackupManager(store)

        record = bm.perform_backup()
        history = bm.get_backup_history()
        bm.restore_from_backup(record.id)
        bm.delete_backup(record.id)
    """

    BACKUP_PREFIX = "backup_"

    def __init__(
        self,
        store: CollectionStore,
        defaults: BackupConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the backup manager.

        Args:
            store: Collection store to back up and restore
            defaults: Backup settings used for keys not yet persisted
            clock: Returns the current aware datetime
        """
        self.store = store
        self.clock = clock
        self.lock = threading.RLock()
        self._last_id_ms = 0
        self.config = self._load_config(defaults or BackupConfig())

    # =========================================================================
    # Configuration
    # =========================================================================

    def _load_config(self, defaults: BackupConfig) -> BackupConfig:
        settings = self.store.get_object(StorageKeys.SETTINGS)
        try:
            return BackupConfig.from_dict(settings.get(SETTINGS_SECTION), defaults)
        except BackupConfigError as e:
            logger.error(f"Ignoring invalid stored backup settings: {e}")
            return defaults

    def _settings_with(self, config: BackupConfig) -> dict[str, Any]:
        # Other sections of the settings object are preserved
        settings = self.store.get_object(StorageKeys.SETTINGS)
        settings[SETTINGS_SECTION] = config.to_dict()
        return settings

    def get_config(self) -> BackupConfig:
        """Return a copy of the current backup configuration."""
        with self.lock:
            return self.config.merged()

    def update_config(self, **changes: Any) -> BackupConfig:
        """
        Merge changes into the configuration and persist it.

        backup_count only grows; use reset_backup_count() to start over.

        Returns:
            Copy of the updated configuration

        Raises:
            BackupConfigError: On unknown fields, invalid values or a
                backup_count lower than the current one
            StorageError: If the settings cannot be written
        """
        with self.lock:
            new_config = self.config.merged(**changes)
            if new_config.backup_count < self.config.backup_count:
                raise BackupConfigError(
                    f"backup_count cannot decrease from {self.config.backup_count} "
                    f"to {new_config.backup_count}"
                )
            return self._persist_config(new_config)

    def reset_backup_count(self) -> BackupConfig:
        """Set backup_count back to 0 and persist it."""
        with self.lock:
            logger.info(f"Resetting backup count (was {self.config.backup_count})")
            return self._persist_config(self.config.merged(backup_count=0))

    def _persist_config(self, new_config: BackupConfig) -> BackupConfig:
        self.store.set_object(StorageKeys.SETTINGS, self._settings_with(new_config))
        self.config = new_config
        logger.debug(f"Backup config updated: {new_config.to_dict()}")
        return new_config.merged()

    # =========================================================================
    # Backup creation
    # =========================================================================

    def _generate_backup_id(self, now: datetime, taken: set[str]) -> str:
        """
        Build "backup_YYYYMMDD_<epoch-ms>", unique within taken.

        The millisecond part never repeats within this process.
        """
        epoch_ms = max(int(now.timestamp() * 1000), self._last_id_ms + 1)
        backup_id = f"{self.BACKUP_PREFIX}{now:%Y%m%d}_{epoch_ms}"
        while backup_id in taken:
            epoch_ms += 1
            backup_id = f"{self.BACKUP_PREFIX}{now:%Y%m%d}_{epoch_ms}"
        self._last_id_ms = epoch_ms
        return backup_id

    def _history_with(self, record: BackupRecord) -> list[Any]:
        """Stored history with record prepended and truncated to max_backups."""
        history = self.store.get(StorageKeys.BACKUP_HISTORY)
        history.insert(0, record.to_dict())
        return history[: self.config.max_backups]

    def create_snapshot(self) -> DomainSnapshot:
        """Copy every domain collection into a new snapshot."""
        return DomainSnapshot(
            vehicles=self.store.get_vehicles(),
            maintenance=self.store.get_maintenance_records(),
            invoices=self.store.get_invoices(),
            users=self.store.get_users(),
            timestamp=self.clock().isoformat(),
        )

    def perform_backup(self) -> BackupRecord | None:
        """
        Snapshot all domain collections into the backup history.

        The new history and the updated config (last_backup, backup_count)
        are written in one transaction. On any failure nothing is written,
        the in-memory config is unchanged and None is returned.

        Returns:
            The new BackupRecord, or None if the backup failed
        """
        with self.lock:
            try:
                now = self.clock()
                snapshot = self.create_snapshot()
                taken = {
                    entry.get("id")
                    for entry in self.store.get(StorageKeys.BACKUP_HISTORY)
                    if isinstance(entry, dict)
                }
                record = BackupRecord(
                    id=self._generate_backup_id(now, taken),
                    data=snapshot,
                    date=now.isoformat(),
                    size=snapshot.byte_size(),
                )

                new_config = self.config.merged(
                    last_backup=record.date,
                    backup_count=self.config.backup_count + 1,
                )
                self.store.set_many(
                    {
                        StorageKeys.BACKUP_HISTORY: self._history_with(record),
                        StorageKeys.SETTINGS: self._settings_with(new_config),
                    }
                )
                self.config = new_config
            except Exception as e:
                logger.error(f"Backup failed: {e}")
                return None

        logger.info(f"Backup created: {record.id} ({record.size} bytes)")
        return record

    def save_backup(self, record: BackupRecord) -> None:
        """
        Add a record to the front of the history, applying retention.

        Raises:
            StorageError: If the history cannot be written
        """
        with self.lock:
            self.store.set(StorageKeys.BACKUP_HISTORY, self._history_with(record))

    # =========================================================================
    # History access
    # =========================================================================

    def get_backup_history(self) -> list[BackupRecord]:
        """
        List backups, most recent first.

        Entries that cannot be parsed are skipped with a warning.
        """
        records = []
        for index, entry in enumerate(self.store.get(StorageKeys.BACKUP_HISTORY)):
            try:
                records.append(BackupRecord.from_dict(entry))
            except ValueError as e:
                logger.warning(f"Skipping malformed backup entry #{index}: {e}")
        return records

    def get_backup(self, backup_id: str) -> BackupRecord | None:
        """Find a backup by id."""
        for record in self.get_backup_history():
            if record.id == backup_id:
                return record
        return None

    # =========================================================================
    # Restore and delete
    # =========================================================================

    def restore_from_backup(self, backup_id: str) -> bool:
        """
        Overwrite stored collections with those of a backup.

        Only collections present in the snapshot are written. The writes are
        not transactional: if one fails, earlier collections stay restored.

        Returns:
            True on success, False if the id is unknown or a write failed
        """
        with self.lock:
            record = self.get_backup(backup_id)
            if record is None:
                logger.warning(f"Backup not found: {backup_id}")
                return False

            try:
                for name, items in record.data.collections().items():
                    self.store.set(name, items)
            except StorageError as e:
                logger.error(f"Restore from {backup_id} failed: {e}")
                return False

        logger.info(f"Restored data from backup {backup_id}")
        return True

    def delete_backup(self, backup_id: str) -> bool:
        """
        Remove a backup from the history.

        Deleting an id that is not in the history succeeds without changes.

        Returns:
            True unless the history could not be written
        """
        with self.lock:
            history = self.store.get(StorageKeys.BACKUP_HISTORY)
            remaining = [
                entry
                for entry in history
                if not (isinstance(entry, dict) and entry.get("id") == backup_id)
            ]
            if len(remaining) == len(history):
                logger.debug(f"Backup {backup_id} not in history, nothing to delete")
                return True

            try:
                self.store.set(StorageKeys.BACKUP_HISTORY, remaining)
            except StorageError as e:
                logger.error(f"Failed to delete backup {backup_id}: {e}")
                return False

        logger.info(f"Deleted backup {backup_id}")
        return True
