"""Request and response schemas for the search API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, Field


class RegionModel(BaseModel):
    slug: str
    name: str
    province_code: str
    latitude: float
    longitude: float


class NameListResponse(BaseModel):
    items: List[str]
    total: int


class CreateSessionRequest(BaseModel):
    source: Literal["api", "spreadsheet"] = "api"


class RegionSelectionRequest(BaseModel):
    region: str = Field(..., description="Region slug or two-digit province code")


class FiltersRequest(BaseModel):
    service_name: str | None = None
    locality: str | None = None
    urgent_only: bool | None = None


class LocationRequest(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class LoadMoreRequest(BaseModel):
    anchor_id: str


class ServiceNameQuery(BaseModel):
    query: str = ""


class AppointmentModel(BaseModel):
    id: str
    api_id: str | None = None
    region: str
    facility_name: str
    service_name: str
    location: str
    address: str | None = None
    phone_number: str | None = None
    place_name: str | None = None
    first_available_date: str | None = None
    waiting_time: str | None = None
    number_of_waiting: int | None = None
    average_waiting_days: int | None = None
    medical_category: str | None = None
    case_type: int | None = None
    is_urgent: bool
    latitude: float | None = None
    longitude: float | None = None
    data_preparation_date: str | None = None
    distance_km: float | None = None


class SessionResponse(BaseModel):
    session_id: str
    state: str
    region: RegionModel | None = None
    service_name: str
    locality: str
    urgent_only: bool
    items: List[AppointmentModel]
    loaded_count: int
    total: int | None = None
    has_more_results: bool
    is_loading_more: bool
    has_searched: bool
    error_message: str | None = None
    data_period_label: str | None = None
    last_updated: datetime | None = None
    total_waiting: int | None = None
    service_names: List[str] = Field(default_factory=list)


class LoadMoreResponse(BaseModel):
    loaded: bool
    session: SessionResponse


class SpreadsheetSummaryResponse(BaseModel):
    region: str
    appointments: int
    data_year: str | None = None
    data_month: str | None = None
    data_period_label: str | None = None
    items: List[AppointmentModel]
