"""Distance from the user to each appointment."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Iterable, Iterator, Optional

from ..config import settings
from ..errors import GeocodeUnavailable
from ..models.domain import Appointment, Coordinate, RankedAppointment
from .geocoding import Geocoder
from .geospatial import distance_between

logger = logging.getLogger(__name__)


class DistanceTable:
    """Side table of kilometres keyed by appointment id."""

    def __init__(self) -> None:
        self._distances: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._distances)

    def __contains__(self, appointment_id: object) -> bool:
        return appointment_id in self._distances

    def __iter__(self) -> Iterator[str]:
        return iter(self._distances)

    def get(self, appointment_id: str) -> Optional[float]:
        return self._distances.get(appointment_id)

    def set(self, appointment_id: str, distance_km: float) -> None:
        if distance_km < 0:
            raise ValueError("Distance cannot be negative.")
        self._distances[appointment_id] = distance_km

    def merge(self, other: "DistanceTable") -> None:
        self._distances.update(other._distances)

    def clear(self) -> None:
        self._distances.clear()

    def rank(self, appointments: Iterable[Appointment]) -> list[RankedAppointment]:
        return [RankedAppointment(item, self._distances.get(item.id)) for item in appointments]


class DistanceResolver:
    """Compute distances from stored coordinates, geocoding the address when absent.

    Successful geocoding results are memoised per query string, keeping the
    most recently used ``memo_size`` entries. Failures degrade to an absent
    distance for that record only.
    """

    def __init__(
        self,
        geocoder: Geocoder | None = None,
        country_suffix: str | None = None,
        memo_size: int | None = None,
    ) -> None:
        self.geocoder = geocoder
        self.country_suffix = country_suffix or settings.geocoder_country_suffix
        self.memo_size = memo_size if memo_size is not None else settings.geocode_memo_size
        self._memo: OrderedDict[str, Coordinate] = OrderedDict()

    def geocode_queries(self, appointment: Appointment) -> list[str]:
        queries = []
        if appointment.address:
            queries.append(f"{appointment.address}, {appointment.location}, {self.country_suffix}")
        queries.append(f"{appointment.location}, {self.country_suffix}")
        return queries

    async def _geocode(self, query: str) -> Coordinate:
        cached = self._memo.get(query)
        if cached is not None:
            self._memo.move_to_end(query)
            return cached
        if self.geocoder is None:
            raise GeocodeUnavailable("Geocoding is disabled.")
        coordinate = await self.geocoder.geocode(query)
        self._memo[query] = coordinate
        if len(self._memo) > self.memo_size:
            self._memo.popitem(last=False)
        return coordinate

    async def _locate(self, appointment: Appointment) -> Optional[Coordinate]:
        if appointment.coordinate is not None:
            return appointment.coordinate
        for query in self.geocode_queries(appointment):
            try:
                return await self._geocode(query)
            except GeocodeUnavailable as exc:
                logger.debug(f"Geocoding fallback for {appointment.id}: {exc}")
        return None

    async def resolve(self, appointment: Appointment, user_location: Optional[Coordinate]) -> Optional[float]:
        if user_location is None:
            return None
        target = await self._locate(appointment)
        if target is None:
            return None
        return distance_between(user_location, target)

    async def resolve_batch(
        self,
        appointments: Iterable[Appointment],
        user_location: Optional[Coordinate],
        table: DistanceTable,
    ) -> int:
        """Fill ``table`` for each appointment in order; returns how many got a distance."""

        if user_location is None:
            return 0
        resolved = 0
        for appointment in appointments:
            distance = await self.resolve(appointment, user_location)
            if distance is not None:
                table.set(appointment.id, distance)
                resolved += 1
        logger.debug(f"Resolved {resolved} distances")
        return resolved
