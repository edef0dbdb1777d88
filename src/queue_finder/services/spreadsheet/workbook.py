"""End-to-end parsing of a legacy per-region Excel export."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from xml.etree import ElementTree as ET

from ...errors import HeaderNotFound, IngestionError
from ...models.domain import Appointment
from ..mapping import derive_data_period, from_spreadsheet_row
from .archive import extract_workbook_members
from .cells import parse_shared_strings
from .rows import find_header_row, map_columns, parse_rows

logger = logging.getLogger(__name__)

MONTH_NAMES = {
    "1": "styczeń",
    "2": "luty",
    "3": "marzec",
    "4": "kwiecień",
    "5": "maj",
    "6": "czerwiec",
    "7": "lipiec",
    "8": "sierpień",
    "9": "wrzesień",
    "10": "październik",
    "11": "listopad",
    "12": "grudzień",
}


@dataclass(frozen=True, slots=True)
class SpreadsheetParseResult:
    appointments: tuple[Appointment, ...]
    data_year: Optional[str] = None
    data_month: Optional[str] = None

    @property
    def data_period_label(self) -> Optional[str]:
        if not self.data_year or not self.data_month:
            return None
        month = self.data_month.lstrip("0") or self.data_month
        return f"{MONTH_NAMES.get(month, self.data_month)} {self.data_year}"


def parse_workbook(
    shared_strings_xml: Optional[bytes], worksheet_xml: bytes, region: str
) -> SpreadsheetParseResult:
    try:
        shared_strings = parse_shared_strings(shared_strings_xml)
    except ET.ParseError as exc:
        raise IngestionError(f"Shared strings XML is malformed: {exc}") from exc

    rows = parse_rows(worksheet_xml, shared_strings)
    logger.info(f"Parsed {len(rows)} rows and {len(shared_strings)} shared strings for {region}")
    if not rows:
        raise HeaderNotFound("Worksheet contains no rows.")

    header_index = find_header_row(rows)
    columns = map_columns(rows[header_index])
    columns.require()
    year, month = derive_data_period(rows, header_index, columns)

    appointments = []
    for row in rows[header_index + 1:]:
        appointment = from_spreadsheet_row(row, columns, region)
        if appointment is not None:
            appointments.append(appointment)

    skipped = len(rows) - header_index - 1 - len(appointments)
    if skipped:
        logger.debug(f"Skipped {skipped} sparse rows for {region}")
    logger.info(f"Created {len(appointments)} appointments for {region} (data: {year}-{month})")
    return SpreadsheetParseResult(tuple(appointments), data_year=year, data_month=month)


def load_workbook_bytes(payload: bytes, region: str) -> SpreadsheetParseResult:
    """Extract and parse a downloaded XLSX blob."""

    members = extract_workbook_members(payload)
    return parse_workbook(members.shared_strings, members.worksheet, region)
