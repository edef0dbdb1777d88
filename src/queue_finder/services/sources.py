"""Record sources producing canonical appointments page by page."""

from __future__ import annotations

import logging
from typing import Protocol

from ..data.spreadsheet_repository import SpreadsheetRepository
from ..errors import InvalidRequest
from ..models.domain import Appointment, QueryCriteria, Region, SourcePage
from ..services.spreadsheet.workbook import SpreadsheetParseResult
from .mapping import from_api_record
from .nfz.client import NFZClient

logger = logging.getLogger(__name__)


class RawRecordSource(Protocol):
    async def fetch(self, criteria: QueryCriteria) -> SourcePage:
        ...

    def invalidate(self) -> None:
        ...


def _region_for(criteria: QueryCriteria) -> Region:
    if not criteria.region_code:
        raise InvalidRequest("Province code is required.")
    try:
        return Region.from_province_code(criteria.region_code)
    except ValueError as exc:
        raise InvalidRequest(str(exc)) from exc


class ApiRecordSource:
    """Live ``/queues`` records mapped onto appointments."""

    def __init__(self, client: NFZClient) -> None:
        self.client = client

    async def fetch(self, criteria: QueryCriteria) -> SourcePage:
        region = _region_for(criteria)
        page = await self.client.fetch_page(criteria)
        appointments = []
        for record in page.records:
            appointment = from_api_record(record, region.value)
            if appointment is not None:
                appointments.append(appointment)
        dropped = len(page.records) - len(appointments)
        if dropped:
            logger.debug(f"Dropped {dropped} unusable queue records")
        return SourcePage(tuple(appointments), has_next_page=page.has_next_page, total_count=page.total_count)

    def invalidate(self) -> None:
        return None


def _matches(appointment: Appointment, criteria: QueryCriteria) -> bool:
    benefit = (criteria.benefit or "").strip().lower()
    if benefit and benefit not in appointment.service_name.lower():
        return False
    locality = (criteria.locality or "").strip().lower()
    if locality and locality not in appointment.location.lower():
        return False
    return True


class SpreadsheetRecordSource:
    """Appointments from the per-region Excel export, filtered and paged locally.

    The export carries no case type, so the case filter is ignored.
    """

    def __init__(self, repository: SpreadsheetRepository) -> None:
        self.repository = repository
        self._loaded: dict[Region, SpreadsheetParseResult] = {}
        self._force_refresh = False

    async def _load(self, region: Region) -> SpreadsheetParseResult:
        result = self._loaded.get(region)
        if result is None:
            result = await self.repository.load(region, force_refresh=self._force_refresh)
            self._force_refresh = False
            self._loaded[region] = result
        return result

    async def fetch(self, criteria: QueryCriteria) -> SourcePage:
        region = _region_for(criteria)
        result = await self._load(region)
        matching = [item for item in result.appointments if _matches(item, criteria)]

        start = (max(1, criteria.page) - 1) * criteria.limit
        end = start + criteria.limit
        return SourcePage(
            tuple(matching[start:end]),
            has_next_page=end < len(matching),
            total_count=len(matching),
            data_period_label=result.data_period_label,
        )

    def invalidate(self) -> None:
        self._loaded.clear()
        self._force_refresh = True
