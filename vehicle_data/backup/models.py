"""
Backup data structures.

A BackupRecord wraps one DomainSnapshot (a copy of every domain collection)
with its identity and metadata. Both serialize to the JSON layout stored
under the ``backup-history`` key:

    {
        "id": "backup_20250906_1757148300000",
        "date": "2025-09-06T08:45:00+00:00",
        "size": 2048,
        "data": {
            "vehicles": [...],
            "maintenance": [...],
            "invoices": [...],
            "users": [...],
            "timestamp": "2025-09-06T08:45:00+00:00",
            "version": "1.0.0"
        }
    }
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from typing import Any

from vehicle_data.storage.collections import DOMAIN_COLLECTIONS

# Version tag written into every snapshot
SNAPSHOT_VERSION = "1.0.0"


@dataclass
class DomainSnapshot:
    """
    Point-in-time copy of all domain collections.

    A collection set to None was absent from the stored snapshot; restoring
    leaves that collection untouched.
    """

    vehicles: list[Any] | None = None
    maintenance: list[Any] | None = None
    invoices: list[Any] | None = None
    users: list[Any] | None = None
    timestamp: str | None = None
    version: str = SNAPSHOT_VERSION

    def collections(self) -> dict[str, list[Any]]:
        """Collections present in this snapshot, keyed by storage key."""
        present: dict[str, list[Any]] = {}
        for name in DOMAIN_COLLECTIONS:
            items = getattr(self, name)
            if items is not None:
                present[name] = items
        return present

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DomainSnapshot:
        if not isinstance(data, dict):
            raise ValueError(f"snapshot must be a dictionary, got {type(data).__name__}")

        kwargs: dict[str, Any] = {}
        for name in DOMAIN_COLLECTIONS:
            items = data.get(name)
            if items is not None and not isinstance(items, list):
                raise ValueError(
                    f"snapshot '{name}' must be a list, got {type(items).__name__}"
                )
            kwargs[name] = copy.deepcopy(items)

        return cls(
            timestamp=data.get("timestamp"),
            version=data.get("version", SNAPSHOT_VERSION),
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = copy.deepcopy(self.collections())
        result["timestamp"] = self.timestamp
        result["version"] = self.version
        return result

    def byte_size(self) -> int:
        """Size in bytes of the UTF-8 JSON serialization."""
        return len(json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8"))


@dataclass
class BackupRecord:
    """
    One retained backup.

    Attributes:
        id: Unique identifier, "backup_YYYYMMDD_<epoch-ms>"
        data: The snapshot
        date: ISO timestamp of creation
        size: Serialized snapshot size in bytes
    """

    id: str
    data: DomainSnapshot
    date: str
    size: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupRecord:
        """
        Build a record from its stored form.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"backup record must be a dictionary, got {type(data).__name__}")

        backup_id = data.get("id")
        if not isinstance(backup_id, str) or not backup_id:
            raise ValueError("backup record has no id")

        snapshot = DomainSnapshot.from_dict(data.get("data") or {})
        size = data.get("size")
        if not isinstance(size, int) or isinstance(size, bool):
            size = snapshot.byte_size()

        return cls(
            id=backup_id,
            data=snapshot,
            date=data.get("date") or snapshot.timestamp or "",
            size=size,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "data": self.data.to_dict(),
            "date": self.date,
            "size": self.size,
        }
