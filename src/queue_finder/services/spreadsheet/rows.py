"""Row extraction, header detection and column mapping for worksheet XML."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence
from xml.etree import ElementTree as ET

from ...errors import HeaderNotFound, IngestionError, MissingRequiredColumns
from .cells import column_index_from_reference, decode_cell, local_name

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 5
YEAR_MARKER = "rok"
ALTERNATIVE_HEADER_PHRASES = ("nazwa świadczenia", "nazwa świadczeniodawcy", "nazwa placówki")


@dataclass(frozen=True, slots=True)
class HeaderRule:
    key: str
    phrases: tuple[str, ...]
    exact: bool = False
    excludes: tuple[str, ...] = ()

    def matches(self, normalized: str) -> bool:
        if any(excluded in normalized for excluded in self.excludes):
            return False
        if self.exact:
            return normalized in self.phrases
        return any(phrase in normalized for phrase in self.phrases)


# Order matters: the first matching rule claims the column.
HEADER_RULES: tuple[HeaderRule, ...] = (
    HeaderRule("year", ("rok",), exact=True),
    HeaderRule("month", ("miesiąc", "miesiac"), exact=True),
    HeaderRule("service_name", ("nazwa świadczenia",), excludes=("kod",)),
    HeaderRule("facility_name", ("nazwa świadczeniodawcy", "nazwa placówki")),
    HeaderRule("department_name", ("nazwa komórki",)),
    HeaderRule("cell_address", ("adres komórki",)),
    HeaderRule("number_waiting", ("liczba oczekujących",)),
    HeaderRule("first_available_date", ("pierwszy wolny termin",)),
    HeaderRule("average_wait", ("średni czas oczekiwania",)),
    HeaderRule("medical_category", ("kategoria medyczna",)),
)


@dataclass(slots=True)
class ColumnMap:
    """Zero-based column positions of the known headers."""

    year: Optional[int] = None
    month: Optional[int] = None
    service_name: Optional[int] = None
    facility_name: Optional[int] = None
    department_name: Optional[int] = None
    cell_address: Optional[int] = None
    number_waiting: Optional[int] = None
    first_available_date: Optional[int] = None
    average_wait: Optional[int] = None
    medical_category: Optional[int] = None

    @property
    def location(self) -> Optional[int]:
        # The cell-address column carries "city;street;phone", so it doubles as location.
        return self.cell_address

    def found(self) -> dict[str, int]:
        mapped = {rule.key: getattr(self, rule.key) for rule in HEADER_RULES}
        return {key: index for key, index in mapped.items() if index is not None}

    def require(self) -> tuple[int, int, int]:
        """Return (service, facility, location) columns or raise."""
        if self.service_name is None or self.facility_name is None or self.location is None:
            found = [f"{key}: {index}" for key, index in self.found().items()]
            raise MissingRequiredColumns(found)
        return self.service_name, self.facility_name, self.location


def parse_rows(worksheet_xml: bytes | str, shared_strings: Sequence[str]) -> list[list[str]]:
    """Turn worksheet XML into dense rows of cell text.

    Gaps inside a row's span are filled with ``""``; rows without any cell are
    skipped.
    """

    try:
        root = ET.fromstring(worksheet_xml)
    except ET.ParseError as exc:
        raise IngestionError(f"Worksheet XML is malformed: {exc}") from exc

    rows: list[list[str]] = []
    for row_node in root.iter():
        if local_name(row_node.tag) != "row":
            continue
        cells: dict[int, str] = {}
        next_index = 0
        for cell in row_node:
            if local_name(cell.tag) != "c":
                continue
            reference = cell.get("r")
            index = column_index_from_reference(reference) if reference else None
            if index is None:
                index = next_index
            cells[index] = decode_cell(cell, shared_strings)
            next_index = index + 1
        if not cells:
            continue
        width = max(cells) + 1
        rows.append([cells.get(position, "") for position in range(width)])
    return rows


def find_header_row(rows: Sequence[Sequence[str]]) -> int:
    """Locate the header row within the first few rows."""

    window = list(rows[:HEADER_SCAN_ROWS])
    for index, row in enumerate(window):
        if row and YEAR_MARKER in row[0].lower():
            return index

    for index, row in enumerate(window):
        row_text = " ".join(row).lower()
        if any(phrase in row_text for phrase in ALTERNATIVE_HEADER_PHRASES):
            logger.debug(f"Header row found at {index} using alternative detection")
            return index

    preview = [list(row[:5]) for row in window[:3]]
    logger.warning(f"Could not find header row. First rows: {preview}")
    raise HeaderNotFound()


def map_columns(header_row: Sequence[str]) -> ColumnMap:
    columns = ColumnMap()
    for index, header in enumerate(header_row):
        normalized = header.strip().lower()
        if not normalized:
            continue
        rule = next((rule for rule in HEADER_RULES if rule.matches(normalized)), None)
        if rule is not None and getattr(columns, rule.key) is None:
            setattr(columns, rule.key, index)
    logger.debug(f"Column map: {columns.found()}")
    return columns
