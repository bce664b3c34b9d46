"""
Export formatting for vehicle-shop data.

Renders the vehicles, maintenance and invoice collections as:
- JSON: the raw records with export metadata
- CSV: UTF-8 with BOM, every field quoted, one header row per section
- Excel: SpreadsheetML 2003 XML (opens in Excel and LibreOffice)

Empty sections are filled with synthetic records from FallbackGenerator so
an export is never empty.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import math
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from xml.dom import minidom
from xml.parsers.expat import ExpatError

from vehicle_data.backup.models import SNAPSHOT_VERSION, BackupRecord
from vehicle_data.export.fallback import FallbackGenerator
from vehicle_data.utils.timestamps import format_duration, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

VALID_SCOPES = ("vehicles", "maintenance", "invoices", "all")
VALID_FORMATS = ("json", "csv", "excel")
RECORD_TYPES = ("vehicle", "invoice", "maintenance")

FILE_EXTENSIONS = {"json": "json", "csv": "csv", "excel": "xls"}
MIME_TYPES = {
    "json": "application/json",
    "csv": "text/csv;charset=utf-8",
    "excel": "application/vnd.ms-excel",
}

# Sections of the "all" scope, in output order
ALL_SECTIONS = ("vehicles", "invoices", "maintenance")

SECTION_TITLES = {
    "vehicles": "Vehicle Summary",
    "invoices": "Invoice Summary",
    "maintenance": "Maintenance Summary",
}

RECORD_SOURCES = {
    "vehicle": "vehicle_management_page",
    "invoice": "invoice_management_page",
    "maintenance": "maintenance_page",
}

SERVICE_TYPE_LABELS = {"maintenance": "Repair", "insurance": "Insurance"}
MAINTENANCE_TYPE_LABELS = {"maintenance": "Routine Service", "accident": "Accident Repair"}
MAINTENANCE_STATUS_LABELS = {"completed": "Completed", "in-progress": "In Progress"}

SPREADSHEET_NS = "urn:schemas-microsoft-com:office:spreadsheet"

# Characters XML 1.0 does not allow in documents
_XML_ILLEGAL = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


class ExportError(Exception):
    """Raised when export content cannot be produced or delivered."""

    pass


class DomainDataProvider(Protocol):
    """Read access to the domain collections."""

    def get_vehicles(self) -> list[dict[str, Any]]: ...

    def get_maintenance_records(self) -> list[dict[str, Any]]: ...

    def get_invoices(self) -> list[dict[str, Any]]: ...

    def get_users(self) -> list[dict[str, Any]]: ...


@dataclass
class ExportPayload:
    """
    A rendered export file.

    Attributes:
        filename: Suggested file name
        content: Encoded file content
        mime_type: MIME type of the content
        used_fallback: True if any section was filled with synthetic records
        fallback_sections: Names of the sections that were filled
    """

    filename: str
    content: bytes
    mime_type: str
    used_fallback: bool = False
    fallback_sections: list[str] = field(default_factory=list)


@dataclass
class _Section:
    name: str
    records: list[Any]
    fallback: bool = False


def _text(record: Any, key: str) -> str:
    if not isinstance(record, dict):
        return ""
    value = record.get(key)
    return "" if value is None else str(value)


def _number(value: Any) -> int | float:
    """Coerce an amount to a number; missing, unparseable or non-finite amounts are 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def _cell_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _xml_text(value: Any) -> str:
    return _XML_ILLEGAL.sub("", _cell_text(value))


class ExportFormatter:
    """
    Renders domain data as JSON, CSV or SpreadsheetML exports.

    Usage:
        formatter = ExportFormatter(store)
        payload = formatter.render("vehicles", "csv")
        sink.write(payload.filename, payload.content, payload.mime_type)
    """

    def __init__(
        self,
        provider: DomainDataProvider,
        fallback: FallbackGenerator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.provider = provider
        self.fallback = fallback or FallbackGenerator()
        self.clock = clock

    # =========================================================================
    # Section data
    # =========================================================================

    def _load(self, name: str) -> list[Any]:
        if name == "vehicles":
            return self.provider.get_vehicles()
        if name == "invoices":
            return self.provider.get_invoices()
        return self.provider.get_maintenance_records()

    def _collect(self, scope: str) -> list[_Section]:
        names = ALL_SECTIONS if scope == "all" else (scope,)
        sections = []
        for name in names:
            records = self._load(name)
            if records:
                sections.append(_Section(name, records))
            else:
                logger.warning(f"No {name} data to export, using placeholder records")
                sections.append(_Section(name, self.fallback.section(name), fallback=True))
        return sections

    def _vehicle_lookup(self, sections: list[_Section]) -> dict[str, dict[str, Any]]:
        vehicles = [v for v in self.provider.get_vehicles() if isinstance(v, dict)]
        if any(s.name == "maintenance" and s.fallback for s in sections):
            vehicles += self.fallback.vehicles()
        return {str(v.get("id")): v for v in vehicles if v.get("id") is not None}

    # =========================================================================
    # Row projection
    # =========================================================================

    def _headers(self, name: str) -> list[str]:
        if name == "vehicles":
            return [
                "License Plate",
                "Brand",
                "Model",
                "Color",
                "Owner Name",
                "Contact",
                "Entry Time",
                "Exit Time",
                "Service Type",
                "Stay Duration",
            ]
        if name == "invoices":
            return [
                "Invoice Number",
                "Date",
                "License Plate",
                "Amount",
                "Invoice Type",
                "Status",
            ]
        return [
            "Work Order",
            "Vehicle (Plate + Model)",
            "Entry Time",
            "Exit Time",
            "Maintenance Type",
            "Status",
        ]

    def stay_duration(self, entry_time: Any, exit_time: Any, now: datetime) -> str:
        """Stay length; open stays are measured up to now."""
        entry = parse_timestamp(entry_time)
        if entry is None:
            return ""
        exit_ = parse_timestamp(exit_time) if exit_time else None
        return format_duration(entry, exit_ or now)

    def _vehicle_row(self, vehicle: Any, now: datetime) -> list[Any]:
        service_type = _text(vehicle, "serviceType")
        return [
            _text(vehicle, "licensePlate"),
            _text(vehicle, "brand"),
            _text(vehicle, "model"),
            _text(vehicle, "color"),
            _text(vehicle, "ownerName"),
            _text(vehicle, "contact"),
            _text(vehicle, "entryTime"),
            _text(vehicle, "exitTime"),
            SERVICE_TYPE_LABELS.get(service_type, "Other"),
            self.stay_duration(
                _text(vehicle, "entryTime"), _text(vehicle, "exitTime"), now
            ),
        ]

    def _invoice_row(self, invoice: Any) -> list[Any]:
        amount = invoice.get("amount") if isinstance(invoice, dict) else None
        return [
            _text(invoice, "invoiceNumber"),
            _text(invoice, "date"),
            _text(invoice, "vehicleLicensePlate"),
            _number(amount),
            "VAT Invoice" if _text(invoice, "type") == "vat" else "Standard Invoice",
            "Paid" if _text(invoice, "status") == "paid" else "Pending",
        ]

    def _maintenance_row(
        self, record: Any, vehicles: dict[str, dict[str, Any]]
    ) -> list[Any]:
        vehicle_id = _text(record, "vehicleId")
        vehicle = vehicles.get(vehicle_id)
        if vehicle is not None:
            vehicle_info = " ".join(
                _text(vehicle, key) for key in ("licensePlate", "brand", "model")
            )
        else:
            vehicle_info = f"Vehicle ID: {vehicle_id}"
        return [
            _text(record, "id"),
            vehicle_info,
            _text(record, "entryTime"),
            _text(record, "exitTime"),
            MAINTENANCE_TYPE_LABELS.get(_text(record, "type"), "Breakdown Repair"),
            MAINTENANCE_STATUS_LABELS.get(_text(record, "status"), "Pending"),
        ]

    def _rows(
        self, section: _Section, vehicles: dict[str, dict[str, Any]], now: datetime
    ) -> list[list[Any]]:
        if section.name == "vehicles":
            return [self._vehicle_row(v, now) for v in section.records]
        if section.name == "invoices":
            return [self._invoice_row(i) for i in section.records]
        return [self._maintenance_row(m, vehicles) for m in section.records]

    # =========================================================================
    # Renderers
    # =========================================================================

    def _render_json(self, scope: str, sections: list[_Section], now: datetime) -> str:
        data: dict[str, Any] = {
            "exportDate": now.isoformat(),
            "version": SNAPSHOT_VERSION,
            "type": scope,
        }
        for section in sections:
            data[section.name] = section.records

        fallback_sections = [s.name for s in sections if s.fallback]
        if fallback_sections:
            data["fallback"] = True
            data["fallbackSections"] = fallback_sections

        if not any(data.get(s.name) for s in sections):
            return ""
        return json.dumps(data, indent=2, ensure_ascii=False)

    def _render_csv(self, scope: str, sections: list[_Section], now: datetime) -> str:
        vehicles = self._vehicle_lookup(sections)
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

        for index, section in enumerate(sections):
            if scope == "all":
                if index > 0:
                    buffer.write("\n\n")
                writer.writerow([f"====== {SECTION_TITLES[section.name]} ======"])
            writer.writerow(self._headers(section.name))
            for row in self._rows(section, vehicles, now):
                writer.writerow([_cell_text(value) for value in row])

        content = buffer.getvalue()
        if not content.strip():
            return ""
        # BOM so spreadsheet applications detect UTF-8
        return "\ufeff" + content

    def _add_row(
        self, table: ET.Element, values: list[Any], style: str | None = None
    ) -> None:
        row = ET.SubElement(table, "Row")
        for value in values:
            cell = ET.SubElement(row, "Cell")
            if style:
                cell.set("ss:StyleID", style)
            data = ET.SubElement(cell, "Data")
            is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
            data.set("ss:Type", "Number" if is_number else "String")
            data.text = _xml_text(value)

    def _render_excel(self, scope: str, sections: list[_Section], now: datetime) -> str:
        vehicles = self._vehicle_lookup(sections)

        workbook = ET.Element("Workbook")
        workbook.set("xmlns", SPREADSHEET_NS)
        workbook.set("xmlns:o", "urn:schemas-microsoft-com:office:office")
        workbook.set("xmlns:x", "urn:schemas-microsoft-com:office:excel")
        workbook.set("xmlns:ss", SPREADSHEET_NS)
        workbook.set("xmlns:html", "http://www.w3.org/TR/REC-html40")

        styles = ET.SubElement(workbook, "Styles")
        header_style = ET.SubElement(styles, "Style")
        header_style.set("ss:ID", "header")
        ET.SubElement(header_style, "Font").set("ss:Bold", "1")

        worksheet = ET.SubElement(workbook, "Worksheet")
        worksheet.set("ss:Name", "Data")
        table = ET.SubElement(worksheet, "Table")

        for index, section in enumerate(sections):
            headers = self._headers(section.name)
            if scope == "all":
                if index > 0:
                    self._add_row(table, [""])
                title_row = ET.SubElement(table, "Row")
                title_cell = ET.SubElement(title_row, "Cell")
                title_cell.set("ss:MergeAcross", str(len(headers) - 1))
                title_cell.set("ss:StyleID", "header")
                title_data = ET.SubElement(title_cell, "Data")
                title_data.set("ss:Type", "String")
                title_data.text = _xml_text(SECTION_TITLES[section.name])
            self._add_row(table, headers, style="header")
            for row in self._rows(section, vehicles, now):
                self._add_row(table, row)

        # Pretty print XML
        rough_string = ET.tostring(workbook, encoding="unicode")
        reparsed = minidom.parseString(rough_string)
        pretty_xml = reparsed.toprettyxml(indent="  ", encoding="UTF-8").decode("utf-8")
        return "\n".join(line for line in pretty_xml.split("\n") if line.strip())

    # =========================================================================
    # Public API
    # =========================================================================

    def render(self, scope: str, fmt: str) -> ExportPayload:
        """
        Render one scope in one format.

        Args:
            scope: "vehicles", "maintenance", "invoices" or "all"
            fmt: "json", "csv" or "excel"

        Raises:
            ExportError: On an unknown scope or format, or empty content
        """
        if scope not in VALID_SCOPES:
            raise ExportError(
                f"Unknown export scope '{scope}'. Must be one of: {', '.join(VALID_SCOPES)}"
            )
        if fmt not in VALID_FORMATS:
            raise ExportError(
                f"Unknown export format '{fmt}'. Must be one of: {', '.join(VALID_FORMATS)}"
            )

        now = self.clock()
        sections = self._collect(scope)
        renderers = {
            "json": self._render_json,
            "csv": self._render_csv,
            "excel": self._render_excel,
        }
        try:
            text = renderers[fmt](scope, sections, now)
        except (ExpatError, TypeError, ValueError) as e:
            raise ExportError(f"Failed to render {scope} as {fmt}: {e}") from e
        if not text or not text.strip():
            raise ExportError(f"Export of {scope} as {fmt} produced no content")

        fallback_sections = [s.name for s in sections if s.fallback]
        return ExportPayload(
            filename=(
                f"vehicle_management_export_{scope}_{now:%Y-%m-%d}.{FILE_EXTENSIONS[fmt]}"
            ),
            content=text.encode("utf-8"),
            mime_type=MIME_TYPES[fmt],
            used_fallback=bool(fallback_sections),
            fallback_sections=fallback_sections,
        )

    def render_full_dump(self) -> ExportPayload:
        """All four collections as one re-importable JSON document."""
        now = self.clock()
        data = {
            "vehicles": self.provider.get_vehicles(),
            "maintenance": self.provider.get_maintenance_records(),
            "invoices": self.provider.get_invoices(),
            "users": self.provider.get_users(),
            "exportDate": now.isoformat(),
            "version": SNAPSHOT_VERSION,
        }
        return ExportPayload(
            filename=f"vehicle_management_export_{now:%Y-%m-%d}.json",
            content=json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8"),
            mime_type=MIME_TYPES["json"],
        )

    def render_backup(self, record: BackupRecord) -> ExportPayload:
        """A backup's snapshot as JSON, named after the backup date."""
        backup_date = parse_timestamp(record.date) or self.clock()
        content = json.dumps(record.data.to_dict(), indent=2, ensure_ascii=False)
        return ExportPayload(
            filename=f"vehicle_backup_{backup_date:%Y%m%d}.json",
            content=content.encode("utf-8"),
            mime_type=MIME_TYPES["json"],
        )

    def render_single_record(self, record_id: str, record_type: str) -> ExportPayload:
        """
        One vehicle, invoice or maintenance record as JSON.

        An id that is not found yields a synthetic record carrying that id.

        Raises:
            ExportError: On an unknown record type
        """
        if record_type not in RECORD_TYPES:
            raise ExportError(
                f"Unknown record type '{record_type}'. "
                f"Must be one of: {', '.join(RECORD_TYPES)}"
            )

        collection = {
            "vehicle": self.provider.get_vehicles,
            "invoice": self.provider.get_invoices,
            "maintenance": self.provider.get_maintenance_records,
        }[record_type]()
        record = next(
            (
                item
                for item in collection
                if isinstance(item, dict) and str(item.get("id")) == str(record_id)
            ),
            None,
        )
        used_fallback = record is None
        if used_fallback:
            logger.warning(
                f"{record_type} '{record_id}' not found, exporting placeholder record"
            )
            record = self.fallback.single_record(record_type, str(record_id))

        now = self.clock()
        data = {
            "exportDate": now.isoformat(),
            "version": SNAPSHOT_VERSION,
            "type": "single",
            "recordType": record_type,
            "source": RECORD_SOURCES[record_type],
            "record": record,
        }
        return ExportPayload(
            filename=(
                f"vehicle_management_single_{record_type}_{record_id}_{now:%Y-%m-%d}.json"
            ),
            content=json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8"),
            mime_type=MIME_TYPES["json"],
            used_fallback=used_fallback,
            fallback_sections=[record_type] if used_fallback else [],
        )
