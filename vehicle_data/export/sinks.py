"""
Delivery targets for rendered export files.

A FileSink receives a file name, its bytes and MIME type. DirectorySink
writes into a directory on disk; MemorySink keeps payloads in memory.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from vehicle_data.export.formatter import ExportError

logger = logging.getLogger(__name__)


@runtime_checkable
class FileSink(Protocol):
    """Protocol that all export destinations implement."""

    def write(self, filename: str, data: bytes, mime_type: str) -> Path | None:
        """Deliver a file. Returns its path when it lands on disk."""
        ...


class DirectorySink:
    """
    Writes export files into a directory.

    Each file is written to a temporary name and renamed into place, so a
    reader never sees a partially written export. The temporary file is
    gone afterwards whether the write succeeded or failed.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory).expanduser()

    def write(self, filename: str, data: bytes, mime_type: str) -> Path:
        """
        Write data to directory/filename, replacing an existing file.

        Raises:
            ExportError: If the file cannot be written
        """
        if not filename or Path(filename).name != filename:
            raise ExportError(f"Invalid export file name: {filename!r}")

        target = self.directory / filename
        tmp: Path | None = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Unique name per write, so concurrent exports of one file never share it
            with tempfile.NamedTemporaryFile(
                dir=self.directory, prefix=f".{filename}.", suffix=".tmp", delete=False
            ) as handle:
                tmp = Path(handle.name)
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp, target)
        except OSError as e:
            raise ExportError(f"Failed to write {target}: {e}") from e
        finally:
            try:
                if tmp is not None and tmp.exists():
                    tmp.unlink()
            except OSError as e:
                logger.warning(f"Could not remove temporary file {tmp}: {e}")

        logger.info(f"Wrote {target} ({len(data)} bytes, {mime_type})")
        return target


@dataclass
class DeliveredFile:
    filename: str
    data: bytes
    mime_type: str


class MemorySink:
    """Collects delivered files in memory."""

    def __init__(self) -> None:
        self.files: list[DeliveredFile] = []

    def write(self, filename: str, data: bytes, mime_type: str) -> None:
        self.files.append(DeliveredFile(filename, data, mime_type))
        return None

    @property
    def last(self) -> DeliveredFile | None:
        return self.files[-1] if self.files else None
