"""
Import of previously exported data files.

An import file is a JSON object; each recognized top-level key (vehicles,
maintenance, invoices, users) that is present replaces the stored
collection of the same name. Other keys, such as exportDate or version in
a full export, are ignored.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import nullcontext
from pathlib import Path
from typing import Any

from vehicle_data.storage.collections import DOMAIN_COLLECTIONS, CollectionStore
from vehicle_data.storage.db import StorageError

logger = logging.getLogger(__name__)

# Seconds allowed for reading and parsing an import file
DEFAULT_IMPORT_TIMEOUT = 30.0


class ImportDataError(Exception):
    """Raised when an import file cannot be read, parsed or stored."""

    pass


class ImportTimeoutError(ImportDataError):
    """Raised when reading and parsing an import file exceeds the deadline."""

    pass


def _read_and_parse(path: Path) -> dict[str, list[Any]]:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ImportDataError(f"Failed to read import file {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportDataError(f"Import file is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ImportDataError(
            f"Import file must contain a JSON object, got {type(data).__name__}"
        )

    collections: dict[str, list[Any]] = {}
    for name in DOMAIN_COLLECTIONS:
        items = data.get(name)
        if items is None:
            continue
        if not isinstance(items, list):
            raise ImportDataError(
                f"'{name}' in import file must be a list, got {type(items).__name__}"
            )
        collections[name] = items
    return collections


class DataImporter:
    """
    Replaces stored collections with the contents of an import file.

    Reading and parsing run in a worker thread under one deadline. Nothing is
    written unless both finish in time; the recognized collections are then
    written together in one transaction.

    Usage:
        importer = DataImporter(store)
        importer.import_file(Path("vehicle_management_export_2025-09-06.json"))
    """

    def __init__(
        self,
        store: CollectionStore,
        lock: threading.RLock | None = None,
        timeout: float = DEFAULT_IMPORT_TIMEOUT,
    ):
        """
        Args:
            store: Collection store to write into
            lock: Optional lock held while writing (the backup manager's)
            timeout: Default deadline in seconds for read and parse
        """
        self.store = store
        self.lock = lock
        self.timeout = timeout

    def import_file(self, path: Path | str, timeout: float | None = None) -> bool:
        """
        Import collections from a JSON file.

        Returns:
            True once the collections are written

        Raises:
            ImportTimeoutError: If read and parse do not finish before the deadline
            ImportDataError: If the file cannot be read, is not a JSON object,
                holds a recognized key that is not a list, or cannot be stored
        """
        path = Path(path)
        deadline = self.timeout if timeout is None else timeout

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="import")
        try:
            future = executor.submit(_read_and_parse, path)
            try:
                collections = future.result(timeout=deadline)
            except FutureTimeoutError as e:
                future.cancel()
                raise ImportTimeoutError(
                    f"Import of {path} timed out after {deadline}s; "
                    "the file may be too large"
                ) from e
        finally:
            # A timed-out read is abandoned; its result is never used
            executor.shutdown(wait=False)

        if not collections:
            logger.warning(f"No recognized collections in {path}, nothing imported")
            return True

        try:
            with self.lock if self.lock is not None else nullcontext():
                self.store.set_many(collections)
        except StorageError as e:
            raise ImportDataError(f"Failed to store imported data: {e}") from e

        summary = ", ".join(f"{name}: {len(items)}" for name, items in collections.items())
        logger.info(f"Imported {path} ({summary})")
        return True
