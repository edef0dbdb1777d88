"""Result ordering: nearest first, then soonest, then by facility."""

from __future__ import annotations

from typing import Iterable, Optional

from ...models.domain import Appointment
from ..distance import DistanceTable


def sort_key(appointment: Appointment, distance_km: Optional[float]) -> tuple:
    """Total-order key.

    Known distances come first, ascending. Records with a first available
    date precede undated ones so that the date tier stays transitive; the
    facility name and finally the id break remaining ties.
    """

    date = appointment.first_available_date or None
    return (
        distance_km is None,
        distance_km if distance_km is not None else 0.0,
        date is None,
        date or "",
        appointment.facility_name,
        appointment.id,
    )


def sort_appointments(appointments: Iterable[Appointment], distances: DistanceTable) -> list[Appointment]:
    """Return a new list in display order; re-sorting the result is a no-op."""

    return sorted(appointments, key=lambda item: sort_key(item, distances.get(item.id)))
