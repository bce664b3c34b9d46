"""
vehicle_data.storage - Local persistence

SQLite-backed key-value database and collection-level accessor.
"""

from vehicle_data.storage.collections import (
    DOMAIN_COLLECTIONS,
    CollectionStore,
    StorageKeys,
)
from vehicle_data.storage.db import LocalDatabase, StorageError

__all__ = [
    "CollectionStore",
    "DOMAIN_COLLECTIONS",
    "LocalDatabase",
    "StorageError",
    "StorageKeys",
]
