"""
Local data service.

Single entry point tying together the collection store, backup manager,
backup scheduler, export formatter, file sink and importer. Operations that
callers treat as fire-and-forget (backup, restore, delete, exports) report
failure by returning False or None and logging; import errors are raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from vehicle_data.backup.importer import DEFAULT_IMPORT_TIMEOUT, DataImporter
from vehicle_data.backup.manager import BackupManager
from vehicle_data.backup.models import BackupRecord
from vehicle_data.config.backup_config import (
    BackupConfig,
    backup_defaults_from_app_config,
)
from vehicle_data.daemon import parse_interval
from vehicle_data.daemon.scheduler import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_RECHECK_DELAY,
    BackupScheduler,
)
from vehicle_data.export.fallback import FallbackGenerator
from vehicle_data.export.formatter import ExportError, ExportFormatter, ExportPayload
from vehicle_data.export.sinks import DirectorySink, FileSink
from vehicle_data.storage.collections import CollectionStore
from vehicle_data.storage.db import LocalDatabase
from vehicle_data.utils.paths import (
    resolve_config_dir,
    resolve_db_path,
    resolve_export_dir,
)
from vehicle_data.utils.timestamps import utc_now

logger = logging.getLogger(__name__)


class LocalDataService:
    """
    Backup, restore, export and import for the local vehicle-shop data.

    Usage:
        service = init()                      # started, scheduler running
        record = service.perform_backup()
        service.export_data_as_format("vehicles", "csv")
        service.shutdown()

    Attributes:
        store: Collection store with the domain data
        manager: Backup manager (history, restore, config)
        scheduler: Periodic backup scheduler
        formatter: Export renderer
        importer: Import handler
        sink: Destination for exported files
        last_export: Path of the most recent export written to disk
    """

    def __init__(
        self,
        store: CollectionStore,
        sink: FileSink,
        backup_defaults: BackupConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        fallback: FallbackGenerator | None = None,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        recheck_delay: float = DEFAULT_RECHECK_DELAY,
        import_timeout: float = DEFAULT_IMPORT_TIMEOUT,
    ):
        self.store = store
        self.sink = sink
        self.manager = BackupManager(store, backup_defaults, clock)
        self.scheduler = BackupScheduler(self.manager, check_interval, recheck_delay)
        self.formatter = ExportFormatter(store, fallback, clock)
        self.importer = DataImporter(store, lock=self.manager.lock, timeout=import_timeout)
        self.last_export: Path | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Run the startup backup check and start the scheduler thread."""
        self.scheduler.start()

    def shutdown(self) -> None:
        """Stop the scheduler thread and any pending re-check."""
        self.scheduler.shutdown()

    # =========================================================================
    # Backups
    # =========================================================================

    def perform_backup(self) -> BackupRecord | None:
        return self.manager.perform_backup()

    def get_backup_history(self) -> list[BackupRecord]:
        return self.manager.get_backup_history()

    def restore_from_backup(self, backup_id: str) -> bool:
        return self.manager.restore_from_backup(backup_id)

    def delete_backup(self, backup_id: str) -> bool:
        return self.manager.delete_backup(backup_id)

    def get_backup_config(self) -> BackupConfig:
        return self.manager.get_config()

    def set_backup_config(self, **changes: Any) -> BackupConfig:
        """
        Update the backup configuration.

        Raises:
            BackupConfigError: On unknown fields or invalid values
        """
        return self.scheduler.set_config(**changes)

    # =========================================================================
    # Exports
    # =========================================================================

    def _deliver(self, payload: ExportPayload) -> bool:
        try:
            self.last_export = self.sink.write(
                payload.filename, payload.content, payload.mime_type
            )
        except ExportError as e:
            logger.error(f"Export of {payload.filename} failed: {e}")
            return False
        return True

    def export_backup(self, backup_id: str) -> bool:
        """Write one backup's snapshot as vehicle_backup_YYYYMMDD.json."""
        record = self.manager.get_backup(backup_id)
        if record is None:
            logger.warning(f"Backup not found: {backup_id}")
            return False
        return self._deliver(self.formatter.render_backup(record))

    def export_all_data(self) -> bool:
        """Write all collections, users included, as one re-importable JSON file."""
        return self._deliver(self.formatter.render_full_dump())

    def export_data_as_format(self, scope: str, fmt: str) -> bool:
        """
        Export vehicles, maintenance, invoices or all of them as JSON, CSV or Excel.

        Returns:
            True if the file was produced and delivered
        """
        try:
            payload = self.formatter.render(scope, fmt)
        except ExportError as e:
            logger.error(f"Export failed: {e}")
            return False

        if payload.used_fallback:
            logger.info(
                f"Export used placeholder records for: {', '.join(payload.fallback_sections)}"
            )
        return self._deliver(payload)

    def export_single_record(self, record_id: str, record_type: str) -> bool:
        try:
            payload = self.formatter.render_single_record(record_id, record_type)
        except ExportError as e:
            logger.error(f"Export failed: {e}")
            return False
        return self._deliver(payload)

    # =========================================================================
    # Import
    # =========================================================================

    def import_data(self, path: Path | str, timeout: float | None = None) -> bool:
        """
        Replace collections with those found in a JSON file.

        Raises:
            ImportDataError: If the file cannot be read, parsed or stored
            ImportTimeoutError: If read and parse exceed the deadline
        """
        return self.importer.import_file(path, timeout)


def init(
    config_dir: Path | str | None = None,
    app_config: dict[str, Any] | None = None,
    sink: FileSink | None = None,
    start: bool = True,
) -> LocalDataService:
    """
    Build a LocalDataService from the application configuration.

    Args:
        config_dir: Configuration directory (default ~/.vehicle-data)
        app_config: Validated YAML application config
        sink: Export destination (default: the configured export directory)
        start: Run the startup backup check and start the scheduler

    Returns:
        The service; call shutdown() when done
    """
    app_config = app_config or {}
    resolved_dir = resolve_config_dir(config_dir)

    db_path = resolve_db_path(resolved_dir, app_config.get("db_path"))
    db_path.parent.mkdir(parents=True, exist_ok=True)
    database = LocalDatabase(str(db_path))
    database.initialize()
    logger.debug(f"Using database {db_path}")

    if sink is None:
        sink = DirectorySink(resolve_export_dir(resolved_dir, app_config.get("export_dir")))

    service = LocalDataService(
        CollectionStore(database),
        sink,
        backup_defaults=backup_defaults_from_app_config(app_config),
        check_interval=parse_interval(app_config.get("daemon_interval", DEFAULT_CHECK_INTERVAL)),
        import_timeout=app_config.get("import_timeout", DEFAULT_IMPORT_TIMEOUT),
    )
    if start:
        service.start()
    return service
