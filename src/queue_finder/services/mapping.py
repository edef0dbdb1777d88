"""Mapping of raw API records and spreadsheet rows onto ``Appointment``."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..models.domain import Appointment
from ..schemas.nfz import NFZQueue
from .spreadsheet.rows import ColumnMap
from .text import clean_text

logger = logging.getLogger(__name__)

UNKNOWN_FACILITY = "Nieznana placówka"
UNKNOWN_SERVICE = "Nieznane świadczenie"
ADDRESS_SEPARATOR = ";"


def _non_negative(value: Optional[int]) -> Optional[int]:
    if value is None or value < 0:
        return None
    return value


def _parse_count(value: str) -> Optional[int]:
    text = value.strip().replace(" ", "")
    if not text:
        return None
    try:
        return _non_negative(int(text))
    except ValueError:
        pass
    try:
        number = float(text.replace(",", "."))
    except ValueError:
        return None
    return _non_negative(int(number)) if number.is_integer() else None


def _cell(row: Sequence[str], column: Optional[int]) -> Optional[str]:
    if column is None or column >= len(row):
        return None
    return clean_text(row[column])


def split_cell_address(raw: str) -> tuple[str, Optional[str], Optional[str]]:
    """Split ``"city;street;phone"`` into (location, address, phone)."""

    parts = [part.strip() for part in raw.split(ADDRESS_SEPARATOR)]
    location = parts[0]
    street = parts[1] if len(parts) >= 2 else ""
    if location and street:
        address = f"{location}, {street}"
    else:
        address = location or street or None
    phone = parts[2] if len(parts) >= 3 and parts[2] else None
    return location, address, phone


def from_api_record(queue: NFZQueue, region: str) -> Optional[Appointment]:
    """Build an appointment from one ``/queues`` record; ``None`` when unusable."""

    attributes = queue.attributes
    if attributes is None:
        return None

    statistics = attributes.statistics
    provider_data = statistics.provider_data if statistics else None
    computed_data = statistics.computed_data if statistics else None
    average_days = provider_data.average_period if provider_data and provider_data.average_period is not None else None
    if average_days is None and computed_data is not None:
        average_days = computed_data.average_period

    dates = attributes.dates
    appointment = Appointment(
        api_id=queue.id,
        region=region,
        facility_name=clean_text(attributes.provider) or UNKNOWN_FACILITY,
        service_name=clean_text(attributes.benefit) or UNKNOWN_SERVICE,
        location=clean_text(attributes.locality) or "",
        first_available_date=dates.date if dates else None,
        waiting_time=str(average_days) if average_days is not None else None,
        phone_number=clean_text(attributes.phone),
        address=clean_text(attributes.address),
        number_of_waiting=_non_negative(provider_data.awaiting) if provider_data else None,
        data_preparation_date=dates.date_situation_as_at if dates else None,
        case_type=attributes.case,
        latitude=attributes.latitude,
        longitude=attributes.longitude,
        place_name=clean_text(attributes.place),
        average_waiting_days=average_days,
    )
    if not appointment.is_valid:
        logger.debug(f"Skipping queue {queue.id}: missing locality")
        return None
    return appointment


def from_spreadsheet_row(row: Sequence[str], columns: ColumnMap, region: str) -> Optional[Appointment]:
    """Build an appointment from one worksheet row; sparse rows yield ``None``."""

    service_name = _cell(row, columns.service_name)
    facility_name = _cell(row, columns.facility_name)
    cell_address = _cell(row, columns.location)
    if not service_name or not facility_name or not cell_address:
        return None

    location, address, phone = split_cell_address(cell_address)
    waiting = _cell(row, columns.average_wait)
    count = _cell(row, columns.number_waiting)

    appointment = Appointment(
        region=region,
        facility_name=facility_name,
        service_name=service_name,
        location=location,
        first_available_date=_cell(row, columns.first_available_date),
        waiting_time=f"{waiting} dni" if waiting else None,
        phone_number=phone,
        address=address,
        number_of_waiting=_parse_count(count) if count else None,
        medical_category=_cell(row, columns.medical_category),
        place_name=_cell(row, columns.department_name),
    )
    return appointment if appointment.is_valid else None


def derive_data_period(
    rows: Sequence[Sequence[str]], header_index: int, columns: ColumnMap
) -> tuple[Optional[str], Optional[str]]:
    """Read (year, month) of the data from the first row below the header."""

    if len(rows) <= header_index + 1:
        return None, None
    first = rows[header_index + 1]

    year: Optional[str] = None
    if columns.year is not None and columns.year < len(first):
        year = first[columns.year].strip() or None
    elif first:
        value = first[0].strip()
        if len(value) == 4 and value.isdigit():
            year = value

    month: Optional[str] = None
    if columns.month is not None and columns.month < len(first):
        month = first[columns.month].strip() or None
    elif len(first) > 1:
        value = first[1].strip()
        if value.isdigit() and 1 <= int(value) <= 12:
            month = value

    return year, month
