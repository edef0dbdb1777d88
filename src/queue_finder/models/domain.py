"""Domain models for appointment listings, regions and search state."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional

MAX_API_PAGE_SIZE = 25


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CaseType(IntEnum):
    STABLE = 1
    URGENT = 2


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float


class Region(str, Enum):
    """Polish voivodeships, the mandatory geographic filter."""

    DOLNOSLASKIE = "dolnośląskie"
    KUJAWSKO_POMORSKIE = "kujawsko-pomorskie"
    LUBELSKIE = "lubelskie"
    LUBUSKIE = "lubuskie"
    LODZKIE = "łódzkie"
    MALOPOLSKIE = "małopolskie"
    MAZOWIECKIE = "mazowieckie"
    OPOLSKIE = "opolskie"
    PODKARPACKIE = "podkarpackie"
    PODLASKIE = "podlaskie"
    POMORSKIE = "pomorskie"
    SLASKIE = "śląskie"
    SWIETOKRZYSKIE = "świętokrzyskie"
    WARMINSKO_MAZURSKIE = "warmińsko-mazurskie"
    WIELKOPOLSKIE = "wielkopolskie"
    ZACHODNIOPOMORSKIE = "zachodniopomorskie"

    @property
    def display_name(self) -> str:
        return "-".join(part.capitalize() for part in self.value.split("-"))

    @property
    def province_code(self) -> str:
        """Two-digit province code used by the NFZ API (01-16)."""
        return f"{list(Region).index(self) + 1:02d}"

    @property
    def file_id(self) -> str:
        """Identifier of the legacy Excel export on the download site."""
        return _REGION_FILE_IDS[self]

    @property
    def center(self) -> Coordinate:
        lat, lon = _REGION_CENTERS[self]
        return Coordinate(lat, lon)

    @classmethod
    def from_province_code(cls, code: str) -> "Region":
        for region in cls:
            if region.province_code == code.strip().zfill(2):
                return region
        raise ValueError(f"Unknown province code '{code}'.")

    @classmethod
    def parse(cls, value: str) -> "Region":
        """Accept a slug (any case) or a province code."""
        text = value.strip()
        if text.isdigit():
            return cls.from_province_code(text)
        for region in cls:
            if region.value == text.lower():
                return region
        raise ValueError(f"Unknown region '{value}'.")

    @classmethod
    def nearest(cls, latitude: float, longitude: float) -> "Region":
        """Pick the region whose centre is closest to the coordinate."""
        return min(
            cls,
            key=lambda region: math.hypot(latitude - region.center.latitude, longitude - region.center.longitude),
        )


_REGION_FILE_IDS: dict[Region, str] = {
    Region.DOLNOSLASKIE: "45fc4182-1dcd-25aa-e063-b4200a0a751b",
    Region.KUJAWSKO_POMORSKIE: "45fc5222-cd85-9739-e063-b4200a0a78c0",
    Region.LUBELSKIE: "45fc5429-3ab0-ba1b-e063-b4200a0af4c4",
    Region.LUBUSKIE: "45fc5429-3ab1-ba1b-e063-b4200a0af4c4",
    Region.LODZKIE: "45fc5762-77c1-ce0c-e063-b4200a0a3c21",
    Region.MALOPOLSKIE: "45fc59f2-b860-e575-e063-b4200a0a3730",
    Region.MAZOWIECKIE: "45fde959-0f4b-b7f7-e063-b4200a0af33c",
    Region.OPOLSKIE: "45fc5c60-251c-ee6b-e063-b4200a0a6c46",
    Region.PODKARPACKIE: "45fc5e44-466e-06a1-e063-b4200a0af845",
    Region.PODLASKIE: "45fc607e-5c87-1b03-e063-b4200a0a2515",
    Region.POMORSKIE: "45fc630f-700a-27ff-e063-b4200a0a193b",
    Region.SLASKIE: "45fc6734-4428-4920-e063-b4200a0a8ca7",
    Region.SWIETOKRZYSKIE: "45fc8269-3f4b-176c-e063-b4200a0a9b89",
    Region.WARMINSKO_MAZURSKIE: "45fc8478-c807-3445-e063-b4200a0a64cb",
    Region.WIELKOPOLSKIE: "45fc8478-c808-3445-e063-b4200a0a64cb",
    Region.ZACHODNIOPOMORSKIE: "45fc8768-3a19-3c1a-e063-b4200a0aee51",
}

_REGION_CENTERS: dict[Region, tuple[float, float]] = {
    Region.DOLNOSLASKIE: (51.1, 17.0),
    Region.KUJAWSKO_POMORSKIE: (53.0, 18.5),
    Region.LUBELSKIE: (51.2, 22.6),
    Region.LUBUSKIE: (52.0, 15.5),
    Region.LODZKIE: (51.8, 19.5),
    Region.MALOPOLSKIE: (50.1, 19.9),
    Region.MAZOWIECKIE: (52.2, 21.0),
    Region.OPOLSKIE: (50.7, 17.9),
    Region.PODKARPACKIE: (50.0, 22.0),
    Region.PODLASKIE: (53.1, 23.2),
    Region.POMORSKIE: (54.4, 18.6),
    Region.SLASKIE: (50.3, 19.0),
    Region.SWIETOKRZYSKIE: (50.9, 20.6),
    Region.WARMINSKO_MAZURSKIE: (53.8, 20.5),
    Region.WIELKOPOLSKIE: (52.4, 16.9),
    Region.ZACHODNIOPOMORSKIE: (53.4, 14.6),
}


@dataclass(frozen=True, slots=True)
class Appointment:
    """A single queue listing: one service offered by one facility.

    Instances are immutable. The distance to the user is kept outside the
    entity, in a ``DistanceTable`` keyed by ``id``.
    """

    region: str
    facility_name: str
    service_name: str
    location: str
    id: str = field(default_factory=_new_id)
    api_id: Optional[str] = None
    first_available_date: Optional[str] = None
    waiting_time: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    number_of_waiting: Optional[int] = None
    last_updated: datetime = field(default_factory=_utcnow)
    data_preparation_date: Optional[str] = None
    medical_category: Optional[str] = None
    case_type: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    place_name: Optional[str] = None
    average_waiting_days: Optional[int] = None

    @property
    def is_urgent(self) -> bool:
        return self.case_type == CaseType.URGENT

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    @property
    def is_valid(self) -> bool:
        return bool(self.facility_name and self.service_name and self.location)


@dataclass(frozen=True, slots=True)
class RankedAppointment:
    """Appointment joined with its distance for presentation."""

    appointment: Appointment
    distance_km: Optional[float]


@dataclass(frozen=True, slots=True)
class QueryCriteria:
    region_code: Optional[str]
    case_type: Optional[CaseType] = CaseType.STABLE
    benefit: Optional[str] = None
    locality: Optional[str] = None
    page: int = 1
    page_size: int = MAX_API_PAGE_SIZE

    @property
    def limit(self) -> int:
        return max(1, min(self.page_size, MAX_API_PAGE_SIZE))


@dataclass(slots=True)
class RemoteCursor:
    page: int = 1
    has_next_page: bool = False
    total_count: Optional[int] = None

    def reset(self) -> None:
        self.page = 1
        self.has_next_page = False
        self.total_count = None


@dataclass(slots=True)
class DisplayCursor:
    """Local reveal cursor; ``page`` is -1 until the first page is revealed."""

    page_size: int = 20
    page: int = -1

    @property
    def revealed(self) -> int:
        return (self.page + 1) * self.page_size

    def reset(self) -> None:
        self.page = -1


@dataclass(slots=True)
class PaginationState:
    remote: RemoteCursor = field(default_factory=RemoteCursor)
    display: DisplayCursor = field(default_factory=DisplayCursor)

    def reset(self) -> None:
        self.remote.reset()
        self.display.reset()


@dataclass(frozen=True, slots=True)
class SourcePage:
    """One batch of canonical appointments from a record source."""

    appointments: tuple[Appointment, ...]
    has_next_page: bool
    total_count: Optional[int] = None
    data_period_label: Optional[str] = None


@dataclass(frozen=True, slots=True)
class NamePage:
    names: tuple[str, ...]
    has_next_page: bool
    total_count: Optional[int] = None
