"""
vehicle_data.export - Multi-format data export

JSON, CSV and SpreadsheetML rendering with placeholder records for empty
collections, and sinks that deliver the rendered files.
"""

from vehicle_data.export.fallback import DEFAULT_SEED, FallbackGenerator
from vehicle_data.export.formatter import (
    RECORD_TYPES,
    VALID_FORMATS,
    VALID_SCOPES,
    DomainDataProvider,
    ExportError,
    ExportFormatter,
    ExportPayload,
)
from vehicle_data.export.sinks import DeliveredFile, DirectorySink, FileSink, MemorySink

__all__ = [
    "ExportFormatter",
    "ExportPayload",
    "ExportError",
    "DomainDataProvider",
    "VALID_SCOPES",
    "VALID_FORMATS",
    "RECORD_TYPES",
    "FallbackGenerator",
    "DEFAULT_SEED",
    "FileSink",
    "DirectorySink",
    "MemorySink",
    "DeliveredFile",
]
