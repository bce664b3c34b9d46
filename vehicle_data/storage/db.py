"""
SQLite database module for local application data.

Provides a persistent string-key to JSON-text store. Each domain collection,
the backup history and the settings object live under one key.
"""

import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP
);
"""


class StorageError(Exception):
    """Raised when the local database cannot be read or written."""

    pass


class LocalDatabase:
    """
    SQLite key-value store.

    Every write replaces the whole value stored under a key; there are no
    partial or field-level updates.

    Usage:
        db = LocalDatabase('/path/to/vehicle_data.db')
        db.initialize()

        # Or use in-memory for testing:
        db = LocalDatabase(':memory:')
        db.initialize()
    """

    def __init__(self, db_path: str):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file, or ':memory:' for in-memory database
        """
        self.db_path = db_path
        self._shared_connection: Optional[sqlite3.Connection] = None
        # Serializes use of the shared in-memory connection across threads
        self._shared_lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection.

        In-memory databases use one shared connection so the data persists
        across operations. File databases get a new connection each time.
        """
        if self.db_path == ":memory:":
            if self._shared_connection is None:
                self._shared_connection = sqlite3.connect(
                    ":memory:", check_same_thread=False
                )
                self._shared_connection.row_factory = sqlite3.Row
            return self._shared_connection

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Commits on success, rolls back on error.

        Usage:
            with db.connection() as conn:
                conn.execute("SELECT key FROM kv_store")
        """
        is_shared = self.db_path == ":memory:"
        if is_shared:
            self._shared_lock.acquire()
        try:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                if not is_shared:
                    conn.close()
        finally:
            if is_shared:
                self._shared_lock.release()

    def initialize(self) -> None:
        """Create the key-value table if it doesn't exist."""
        try:
            with self.connection() as conn:
                conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize database {self.db_path}: {e}") from e

    def close(self) -> None:
        """Close the shared in-memory connection, discarding its data."""
        with self._shared_lock:
            if self._shared_connection is not None:
                self._shared_connection.close()
                self._shared_connection = None

    def get_value(self, key: str) -> Optional[str]:
        """
        Get the raw text stored under a key.

        Returns:
            The stored text, or None if the key is absent

        Raises:
            StorageError: If the database cannot be read
        """
        try:
            with self.connection() as conn:
                cursor = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read key '{key}': {e}") from e

        return row["value"] if row else None

    def set_value(self, key: str, value: str) -> None:
        """
        Store text under a key, replacing any previous value.

        Raises:
            StorageError: If the database cannot be written
        """
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, now),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write key '{key}': {e}") from e

    def set_values(self, values: dict[str, str]) -> None:
        """
        Store several keys in one transaction; either all or none are written.

        Raises:
            StorageError: If the database cannot be written
        """
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self.connection() as conn:
                conn.executemany(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    [(key, value, now) for key, value in values.items()],
                )
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to write keys {', '.join(sorted(values))}: {e}"
            ) from e

    def delete_value(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if a row was deleted, False if the key was absent
        """
        try:
            with self.connection() as conn:
                cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete key '{key}': {e}") from e

    def list_keys(self) -> list[str]:
        """Return all stored keys in sorted order."""
        try:
            with self.connection() as conn:
                cursor = conn.execute("SELECT key FROM kv_store ORDER BY key")
                return [row["key"] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list keys: {e}") from e
