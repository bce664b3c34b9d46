"""
Backup scheduler for periodic local snapshots.

Provides a BackupScheduler class that manages:
- A check at startup and a re-check every check_interval seconds
- Frequency rules (daily, weekly, monthly) against the last backup time
- A delayed re-check after backups are re-enabled
- Signal handling for graceful shutdown when run in the foreground
"""

from __future__ import annotations

import logging
import signal
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from vehicle_data.backup.manager import BackupManager
from vehicle_data.config.backup_config import BackupConfig, BackupFrequency
from vehicle_data.utils.timestamps import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# Default time between schedule checks, in seconds
DEFAULT_CHECK_INTERVAL = 3600

# Delay before the re-check that follows enabling backups, in seconds
DEFAULT_RECHECK_DELAY = 1.0


class DaemonError(Exception):
    """Base exception for scheduler errors."""

    pass


@dataclass
class SchedulerStats:
    """
    Statistics from scheduler operation.

    Tracks uptime and backup check information.
    """

    started_at: datetime = field(default_factory=utc_now)
    check_count: int = 0
    backup_count: int = 0
    backup_error_count: int = 0
    last_check_at: datetime | None = None
    last_backup_id: str | None = None


def is_backup_due(now: datetime, last_backup: datetime, frequency: str) -> bool:
    """
    Decide whether a backup is due.

    Args:
        now: Current aware datetime
        last_backup: Time of the last successful backup
        frequency: "daily", "weekly" or "monthly"

    Returns:
        True when at least one whole day (daily) or seven whole days (weekly)
        have passed, or when the calendar month differs (monthly). Unknown
        frequencies are never due.
    """
    days_between = (now - last_backup).days

    if frequency == BackupFrequency.DAILY.value:
        return days_between >= 1
    if frequency == BackupFrequency.WEEKLY.value:
        return days_between >= 7
    if frequency == BackupFrequency.MONTHLY.value:
        return (now.year, now.month) != (last_backup.year, last_backup.month)

    logger.warning(f"Unknown backup frequency '{frequency}', skipping backup")
    return False


class BackupScheduler:
    """
    Runs scheduled backups for a BackupManager.

    The check and the backup it triggers run under the manager's lock, so
    scheduled and manual backups never overlap.

    Usage:
        scheduler = BackupScheduler(manager, check_interval=3600)

        # Background worker thread
        scheduler.start()
        ...
        scheduler.shutdown()

        # Or block in the foreground until SIGTERM/SIGINT
        scheduler.run_forever()

    Attributes:
        manager: Backup manager that owns the config and history
        check_interval: Seconds between schedule checks
        recheck_delay: Seconds before the re-check after enabling backups
        stats: Scheduler statistics
    """

    def __init__(
        self,
        manager: BackupManager,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        recheck_delay: float = DEFAULT_RECHECK_DELAY,
    ):
        if check_interval <= 0:
            raise DaemonError(f"check_interval must be > 0, got {check_interval}")

        self.manager = manager
        self.check_interval = check_interval
        self.recheck_delay = recheck_delay
        self.stats = SchedulerStats()
        self._stop_event = threading.Event()
        self._worker: threading.Thread | None = None
        self._recheck_timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()
        self._original_sigterm_handler: Any = None
        self._original_sigint_handler: Any = None

    # =========================================================================
    # Checks
    # =========================================================================

    def check_and_perform_backup(self) -> bool:
        """
        Take a backup if one is due.

        Returns:
            True if a backup was taken
        """
        with self.manager.lock:
            self.stats.check_count += 1
            self.stats.last_check_at = utc_now()

            config = self.manager.config
            if not config.enabled:
                logger.debug("Scheduled backups disabled, skipping check")
                return False

            if config.last_backup is not None:
                last_backup = parse_timestamp(config.last_backup)
                if last_backup is None:
                    logger.warning(
                        f"Unparseable last backup time {config.last_backup!r}, "
                        "backing up now"
                    )
                elif not is_backup_due(self.manager.clock(), last_backup, config.frequency):
                    logger.debug(
                        f"No backup due (frequency: {config.frequency}, "
                        f"last: {config.last_backup})"
                    )
                    return False

            record = self.manager.perform_backup()

        if record is None:
            self.stats.backup_error_count += 1
            logger.warning("Scheduled backup failed, will retry at next check")
            return False

        self.stats.backup_count += 1
        self.stats.last_backup_id = record.id
        return True

    def _safe_check(self) -> None:
        # Errors must not kill the worker thread or timer
        try:
            self.check_and_perform_backup()
        except Exception as e:
            self.stats.backup_error_count += 1
            logger.error(f"Backup check failed: {e}")

    def set_config(self, **changes: Any) -> BackupConfig:
        """
        Update and persist the backup configuration.

        When the changes set enabled=True a re-check is scheduled after
        recheck_delay seconds.

        Raises:
            BackupConfigError: On unknown fields or invalid values
            StorageError: If the settings cannot be written
        """
        config = self.manager.update_config(**changes)
        if changes.get("enabled") is True:
            self.schedule_recheck()
        return config

    def schedule_recheck(self) -> None:
        """Run one check after recheck_delay seconds, replacing a pending one."""
        with self._timer_lock:
            if self._recheck_timer is not None:
                self._recheck_timer.cancel()
            timer = threading.Timer(self.recheck_delay, self._safe_check)
            timer.daemon = True
            self._recheck_timer = timer
            timer.start()
        logger.debug(f"Backup re-check scheduled in {self.recheck_delay}s")

    # =========================================================================
    # Background worker
    # =========================================================================

    def _loop(self) -> None:
        while not self._stop_event.wait(self.check_interval):
            self._safe_check()

    def start(self) -> None:
        """
        Check once now, then re-check every check_interval in a worker thread.

        Raises:
            DaemonError: If the scheduler is already running
        """
        if self.is_running():
            raise DaemonError("Backup scheduler is already running")

        logger.info(f"Starting backup scheduler (interval: {self.check_interval}s)")
        self._stop_event.clear()
        self.stats = SchedulerStats()
        self._safe_check()

        self._worker = threading.Thread(
            target=self._loop, name="backup-scheduler", daemon=True
        )
        self._worker.start()

    def shutdown(self, timeout: float | None = 5.0) -> None:
        """Stop the worker thread and cancel any pending re-check."""
        self._stop_event.set()

        with self._timer_lock:
            if self._recheck_timer is not None:
                self._recheck_timer.cancel()
                self._recheck_timer = None

        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
        self._worker = None
        logger.info("Backup scheduler stopped")

    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    # =========================================================================
    # Foreground mode
    # =========================================================================

    def _setup_signal_handlers(self) -> None:
        self._original_sigterm_handler = signal.signal(
            signal.SIGTERM, self._signal_handler
        )
        self._original_sigint_handler = signal.signal(
            signal.SIGINT, self._signal_handler
        )
        logger.debug("Signal handlers installed for SIGTERM and SIGINT")

    def _restore_signal_handlers(self) -> None:
        if self._original_sigterm_handler is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm_handler)
        if self._original_sigint_handler is not None:
            signal.signal(signal.SIGINT, self._original_sigint_handler)
        logger.debug("Signal handlers restored")

    def _signal_handler(self, signum: int, frame: object) -> None:
        signal_name = signal.Signals(signum).name
        logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        self._stop_event.set()

    def stop(self) -> None:
        """Request shutdown of run_forever() from another thread."""
        logger.info("Stop requested")
        self._stop_event.set()

    def run_forever(self) -> None:
        """
        Check now, then every check_interval, until SIGTERM/SIGINT or stop().

        Blocks the calling thread, which must be the main thread.
        """
        logger.info(
            f"Starting backup scheduler in foreground (interval: {self.check_interval}s)"
        )
        self._stop_event.clear()
        self.stats = SchedulerStats()
        self._setup_signal_handlers()

        try:
            self._safe_check()
            self._loop()
        finally:
            with self._timer_lock:
                if self._recheck_timer is not None:
                    self._recheck_timer.cancel()
                    self._recheck_timer = None
            self._restore_signal_handlers()
            logger.info("Backup scheduler stopped")


__all__ = [
    "BackupScheduler",
    "DaemonError",
    "SchedulerStats",
    "is_backup_due",
    "DEFAULT_CHECK_INTERVAL",
    "DEFAULT_RECHECK_DELAY",
]
