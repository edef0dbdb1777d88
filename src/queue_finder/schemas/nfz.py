"""Wire schemas of the NFZ 'Terminy Leczenia' API (api-version 1.3)."""

from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NFZMeta(_WireModel):
    context: Optional[str] = Field(default=None, alias="@context")
    count: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None


class NFZLinks(_WireModel):
    first: Optional[str] = None
    prev: Optional[str] = None
    self_: Optional[str] = Field(default=None, alias="self")
    next: Optional[str] = None
    last: Optional[str] = None


class NFZProviderData(_WireModel):
    awaiting: Optional[int] = None
    removed: Optional[int] = None
    average_period: Optional[int] = Field(default=None, alias="average-period")
    update: Optional[str] = None


class NFZComputedData(_WireModel):
    average_period: Optional[int] = Field(default=None, alias="average-period")


class NFZStatistics(_WireModel):
    provider_data: Optional[NFZProviderData] = Field(default=None, alias="provider-data")
    computed_data: Optional[NFZComputedData] = Field(default=None, alias="computed-data")


class NFZDates(_WireModel):
    applicable: Optional[bool] = None
    date: Optional[str] = None
    date_situation_as_at: Optional[str] = Field(default=None, alias="date-situation-as-at")


class NFZQueueAttributes(_WireModel):
    case: Optional[int] = None
    benefit: Optional[str] = None
    many_places: Optional[str] = Field(default=None, alias="many-places")
    provider: Optional[str] = None
    provider_code: Optional[str] = Field(default=None, alias="provider-code")
    regon_provider: Optional[str] = Field(default=None, alias="regon-provider")
    nip_provider: Optional[str] = Field(default=None, alias="nip-provider")
    teryt_provider: Optional[str] = Field(default=None, alias="teryt-provider")
    place: Optional[str] = None
    address: Optional[str] = None
    locality: Optional[str] = None
    phone: Optional[str] = None
    teryt_place: Optional[str] = Field(default=None, alias="teryt-place")
    registry_number: Optional[str] = Field(default=None, alias="registry-number")
    id_resort_part_vii: Optional[str] = Field(default=None, alias="id-resort-part-VII")
    id_resort_part_viii: Optional[str] = Field(default=None, alias="id-resort-part-VIII")
    benefits_for_children: Optional[str] = Field(default=None, alias="benefits-for-children")
    covid19: Optional[str] = Field(default=None, alias="covid-19")
    toilet: Optional[str] = None
    ramp: Optional[str] = None
    car_park: Optional[str] = Field(default=None, alias="car-park")
    elevator: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    statistics: Optional[NFZStatistics] = None
    dates: Optional[NFZDates] = None
    benefits_provided: Optional[str] = Field(default=None, alias="benefits-provided")


class NFZQueue(_WireModel):
    type: Optional[str] = None
    id: Optional[str] = None
    attributes: Optional[NFZQueueAttributes] = None


class NFZEnvelope(_WireModel, Generic[T]):
    """Response envelope shared by every endpoint."""

    meta: Optional[NFZMeta] = None
    links: Optional[NFZLinks] = None
    data: T

    def has_next_page(self) -> bool:
        if self.links is not None and self.links.next:
            return True
        if self.meta is not None and self.meta.count is not None:
            page = self.meta.page or 1
            limit = self.meta.limit or 0
            return limit > 0 and page * limit < self.meta.count
        return False


QueueListEnvelope = NFZEnvelope[List[NFZQueue]]
QueueEnvelope = NFZEnvelope[NFZQueue]
NameListEnvelope = NFZEnvelope[List[str]]
