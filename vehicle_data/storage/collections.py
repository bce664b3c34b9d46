"""
Collection-level access to the local key-value store.

Domain collections (vehicles, maintenance records, invoices, users), the
backup history and the settings object are stored as JSON text, one key
each. Reads never raise: missing or unparseable values come back empty.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from vehicle_data.storage.db import LocalDatabase, StorageError

logger = logging.getLogger(__name__)


class StorageKeys:
    """Fixed keys of the persisted state layout."""

    VEHICLES = "vehicles"
    MAINTENANCE = "maintenance"
    INVOICES = "invoices"
    USERS = "users"
    BACKUP_HISTORY = "backup-history"
    SETTINGS = "settings"


# Domain collections, in snapshot order
DOMAIN_COLLECTIONS = (
    StorageKeys.VEHICLES,
    StorageKeys.MAINTENANCE,
    StorageKeys.INVOICES,
    StorageKeys.USERS,
)


class CollectionStore:
    """
    Reads and writes whole collections as JSON arrays.

    Also acts as the domain data provider for backups and exports through
    get_vehicles(), get_maintenance_records(), get_invoices() and get_users().

    Usage:
        db = LocalDatabase(":memory:")
        db.initialize()
        store = CollectionStore(db)

        store.save_vehicles([{"id": "v1", "licensePlate": "京A12345"}])
        vehicles = store.get_vehicles()
    """

    def __init__(self, database: LocalDatabase):
        self.database = database

    def get(self, collection: str) -> list[Any]:
        """
        Load a collection.

        Returns an empty list when the key is absent, the text is not valid
        JSON, the JSON value is not a list, or the store cannot be read.
        """
        try:
            text = self.database.get_value(collection)
        except StorageError as e:
            logger.error(f"Failed to read collection '{collection}': {e}")
            return []

        if text is None:
            return []

        try:
            items = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse collection '{collection}': {e}")
            return []

        if not isinstance(items, list):
            logger.error(
                f"Collection '{collection}' is not a list "
                f"(got {type(items).__name__}), ignoring stored value"
            )
            return []

        return items

    def set(self, collection: str, items: list[Any]) -> None:
        """
        Replace a collection.

        Raises:
            StorageError: If the value cannot be serialized or written
        """
        try:
            text = json.dumps(items, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(
                f"Collection '{collection}' is not JSON serializable: {e}"
            ) from e

        self.database.set_value(collection, text)
        logger.debug(f"Saved {len(items)} item(s) to '{collection}'")

    def get_object(self, key: str) -> dict[str, Any]:
        """Load a JSON object value, {} when absent or unparseable."""
        try:
            text = self.database.get_value(key)
        except StorageError as e:
            logger.error(f"Failed to read '{key}': {e}")
            return {}

        if text is None:
            return {}

        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse '{key}': {e}")
            return {}

        return value if isinstance(value, dict) else {}

    def set_object(self, key: str, value: dict[str, Any]) -> None:
        """Replace a JSON object value."""
        try:
            text = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON serializable: {e}") from e

        self.database.set_value(key, text)

    def set_many(self, values: dict[str, Any]) -> None:
        """
        Replace several keys at once; either all are written or none.

        Raises:
            StorageError: If a value cannot be serialized or the write fails
        """
        encoded: dict[str, str] = {}
        for key, value in values.items():
            try:
                encoded[key] = json.dumps(value, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise StorageError(
                    f"Value for '{key}' is not JSON serializable: {e}"
                ) from e

        self.database.set_values(encoded)

    # =========================================================================
    # Domain data provider
    # =========================================================================

    def get_vehicles(self) -> list[dict[str, Any]]:
        return self.get(StorageKeys.VEHICLES)

    def save_vehicles(self, vehicles: list[dict[str, Any]]) -> None:
        self.set(StorageKeys.VEHICLES, vehicles)

    def get_maintenance_records(self) -> list[dict[str, Any]]:
        return self.get(StorageKeys.MAINTENANCE)

    def save_maintenance_records(self, records: list[dict[str, Any]]) -> None:
        self.set(StorageKeys.MAINTENANCE, records)

    def get_invoices(self) -> list[dict[str, Any]]:
        return self.get(StorageKeys.INVOICES)

    def save_invoices(self, invoices: list[dict[str, Any]]) -> None:
        self.set(StorageKeys.INVOICES, invoices)

    def get_users(self) -> list[dict[str, Any]]:
        return self.get(StorageKeys.USERS)

    def save_users(self, users: list[dict[str, Any]]) -> None:
        self.set(StorageKeys.USERS, users)

    def count(self, collection: str) -> int:
        """Number of items in a collection."""
        return len(self.get(collection))
