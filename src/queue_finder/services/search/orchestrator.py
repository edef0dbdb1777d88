"""Search state machine: remote paging, distance ranking and local reveal."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from ...config import settings
from ...errors import QueueFinderError, ValidationError
from ...models.domain import (
    Appointment,
    CaseType,
    PaginationState,
    QueryCriteria,
    RankedAppointment,
    Region,
    SourcePage,
)
from ..distance import DistanceResolver, DistanceTable
from ..location import UserLocation
from ..nfz.client import COMMON_BENEFITS
from ..sources import RawRecordSource
from .sorting import sort_appointments

logger = logging.getLogger(__name__)


class SearchState(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    DISPLAYING = "displaying"
    ERROR = "error"


class ServiceNameLookup(Protocol):
    async def search_service_names(self, query: str) -> list[str]:
        ...


@dataclass(frozen=True, slots=True)
class SearchSnapshot:
    state: SearchState
    region: Optional[Region]
    service_name: str
    locality: str
    urgent_only: bool
    results: tuple[RankedAppointment, ...]
    loaded_count: int
    total_count: Optional[int]
    has_more_results: bool
    is_loading_more: bool
    has_searched: bool
    error_message: Optional[str]
    data_period_label: Optional[str]
    last_updated: Optional[datetime]
    total_waiting: Optional[int]
    service_names: tuple[str, ...] = field(default_factory=tuple)


class SearchOrchestrator:
    """Owns the accumulated appointments of one user and pages through them.

    Two cursors are kept: the remote page of the record source and the local
    display page revealed to the caller. Every new search generation bumps a
    request token, and completions carrying an older token are dropped.
    """

    def __init__(
        self,
        source: RawRecordSource,
        names: ServiceNameLookup | None = None,
        resolver: DistanceResolver | None = None,
        location: UserLocation | None = None,
        page_size: int | None = None,
        display_page_size: int | None = None,
        load_more_threshold: int | None = None,
    ) -> None:
        self.source = source
        self.names = names
        self.resolver = resolver or DistanceResolver()
        self.location = location or UserLocation()
        self.page_size = page_size or settings.api_page_size
        self.load_more_threshold = load_more_threshold or settings.load_more_threshold

        self.region: Optional[Region] = None
        self.service_name = ""
        self.locality = ""
        self.urgent_only = False
        self.service_names: list[str] = []

        self.appointments: list[Appointment] = []
        self.distances = DistanceTable()
        self.pagination = PaginationState()
        self.pagination.display.page_size = display_page_size or settings.display_page_size

        self.state = SearchState.IDLE
        self.is_loading_more = False
        self.has_more_results = False
        self.has_searched = False
        self.error_message: Optional[str] = None
        self.data_period_label: Optional[str] = None
        self.last_updated: Optional[datetime] = None
        self._token = 0

    @property
    def request_token(self) -> int:
        return self._token

    def _next_token(self) -> int:
        self._token += 1
        return self._token

    def _is_stale(self, token: int) -> bool:
        if token != self._token:
            logger.debug(f"Discarding stale completion (token {token}, current {self._token})")
            return True
        return False

    def _clear_results(self) -> None:
        self.appointments = []
        self.distances = DistanceTable()
        self.pagination.reset()
        self.has_more_results = False
        self.is_loading_more = False
        self.error_message = None
        self.data_period_label = None

    def _criteria(self, page: int) -> QueryCriteria:
        return QueryCriteria(
            region_code=self.region.province_code if self.region else None,
            case_type=CaseType.URGENT if self.urgent_only else CaseType.STABLE,
            benefit=self.service_name or None,
            locality=self.locality or None,
            page=page,
            page_size=self.page_size,
        )

    def _update_has_more(self) -> None:
        buffered_beyond_view = len(self.appointments) > self.pagination.display.revealed
        self.has_more_results = self.pagination.remote.has_next_page or buffered_beyond_view

    async def _fetch_ranked(self, page: int) -> tuple[SourcePage, DistanceTable]:
        result = await self.source.fetch(self._criteria(page))
        batch_distances = DistanceTable()
        await self.resolver.resolve_batch(result.appointments, self.location.for_distance, batch_distances)
        return result, batch_distances

    def select_region(self, region: Region) -> None:
        """Start over in ``region`` with empty filters and the default name list."""

        self._next_token()
        self.region = region
        self.service_name = ""
        self.locality = ""
        self.urgent_only = False
        self._clear_results()
        self.has_searched = False
        self.state = SearchState.IDLE
        self.service_names = list(COMMON_BENEFITS)
        logger.info(f"Selected region {region.value}")

    def set_service_name(self, name: Optional[str]) -> None:
        self.service_name = (name or "").strip()

    def set_locality_filter(self, locality: Optional[str]) -> None:
        self.locality = (locality or "").strip()

    def set_urgent_only(self, urgent_only: bool) -> None:
        self.urgent_only = bool(urgent_only)

    async def search_service_names(self, query: str) -> list[str]:
        """Refresh the suggestion list; on failure the current list is kept."""

        if self.names is None:
            return self.service_names
        try:
            self.service_names = list(await self.names.search_service_names(query))
        except QueueFinderError as exc:
            logger.warning(f"Service name search for '{query}' failed: {exc}")
        return self.service_names

    async def search(self) -> bool:
        """Fetch the first page and reveal it.

        Returns ``False`` when a newer search started before this one
        completed, in which case nothing was applied.
        """

        if self.region is None:
            raise ValidationError("No region selected.")

        token = self._next_token()
        self._clear_results()
        self.state = SearchState.SEARCHING
        self.has_searched = True

        try:
            result, batch_distances = await self._fetch_ranked(1)
        except QueueFinderError as exc:
            if not self._is_stale(token):
                self.state = SearchState.ERROR
                self.error_message = exc.user_message
            logger.warning(f"Search failed: {exc}")
            raise

        if self._is_stale(token):
            return False

        self.distances = batch_distances
        self.appointments = sort_appointments(result.appointments, batch_distances)
        remote = self.pagination.remote
        remote.page = 1
        remote.has_next_page = result.has_next_page
        remote.total_count = result.total_count
        self.pagination.display.page = 0
        self.data_period_label = result.data_period_label
        self.last_updated = datetime.now(timezone.utc)
        self._update_has_more()
        self.state = SearchState.DISPLAYING
        logger.info(
            f"Search returned {len(self.appointments)} appointments (total={result.total_count}, more={self.has_more_results})"
        )
        return True

    async def load_more_if_needed(self, anchor_id: str) -> bool:
        """Reveal the next display page when ``anchor_id`` is near the bottom.

        Buffered records are revealed while a full display page is held or
        the source has nothing further; otherwise the next remote page is
        fetched, sorted among itself and appended. Returns whether the
        revealed window grew.
        """

        if not self.has_more_results or self.is_loading_more or self.state != SearchState.DISPLAYING:
            return False

        revealed = self.displayed_appointments()
        position = next((index for index, item in enumerate(revealed) if item.id == anchor_id), None)
        if position is None or position < len(revealed) - self.load_more_threshold:
            return False

        token = self._token
        self.is_loading_more = True
        try:
            display = self.pagination.display
            remote = self.pagination.remote
            buffered = len(self.appointments) - display.revealed
            if buffered < display.page_size and remote.has_next_page:
                next_page = remote.page + 1
                result, batch_distances = await self._fetch_ranked(next_page)
                if self._is_stale(token):
                    return False
                remote.page = next_page
                remote.has_next_page = result.has_next_page
                if result.total_count is not None:
                    remote.total_count = result.total_count
                self.distances.merge(batch_distances)
                self.appointments.extend(sort_appointments(result.appointments, batch_distances))
                logger.info(f"Loaded remote page {next_page} ({len(result.appointments)} appointments)")

            display.page += 1
            self.error_message = None
            self._update_has_more()
            return True
        except QueueFinderError as exc:
            if not self._is_stale(token):
                self.error_message = exc.user_message
            logger.warning(f"Loading more results failed: {exc}")
            return False
        finally:
            if token == self._token:
                self.is_loading_more = False

    async def refresh_data(self) -> bool:
        if self.region is None:
            raise ValidationError("No region selected.")
        self.source.invalidate()
        return await self.search()

    def reset_selection(self) -> None:
        self._next_token()
        self.region = None
        self.service_name = ""
        self.locality = ""
        self.urgent_only = False
        self.service_names = []
        self._clear_results()
        self.has_searched = False
        self.last_updated = None
        self.state = SearchState.IDLE

    def displayed_appointments(self) -> list[Appointment]:
        return self.appointments[: max(0, self.pagination.display.revealed)]

    def displayed_results(self) -> list[RankedAppointment]:
        return self.distances.rank(self.displayed_appointments())

    def total_waiting(self) -> Optional[int]:
        """Sum of known waiting counts over everything loaded; ``None`` without a region."""

        if self.region is None:
            return None
        return sum(item.number_of_waiting for item in self.appointments if item.number_of_waiting is not None)

    def snapshot(self) -> SearchSnapshot:
        return SearchSnapshot(
            state=self.state,
            region=self.region,
            service_name=self.service_name,
            locality=self.locality,
            urgent_only=self.urgent_only,
            results=tuple(self.displayed_results()),
            loaded_count=len(self.appointments),
            total_count=self.pagination.remote.total_count,
            has_more_results=self.has_more_results,
            is_loading_more=self.is_loading_more,
            has_searched=self.has_searched,
            error_message=self.error_message,
            data_period_label=self.data_period_label,
            last_updated=self.last_updated,
            total_waiting=self.total_waiting(),
            service_names=tuple(self.service_names),
        )
