"""Search session endpoints driving one orchestrator per client."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...errors import QueueFinderError
from ...models.domain import RankedAppointment, Region
from ...schemas.search import (
    AppointmentModel,
    CreateSessionRequest,
    FiltersRequest,
    LoadMoreRequest,
    LoadMoreResponse,
    LocationRequest,
    RegionSelectionRequest,
    ServiceNameQuery,
    SessionResponse,
)
from ...services.search.orchestrator import SearchOrchestrator
from ...services.search.sessions import SessionRegistry, SourceKind
from ..dependencies import get_registry
from ..errors import to_http_exception
from .regions import region_model

router = APIRouter(prefix="/sessions", tags=["sessions"])


def appointment_model(ranked: RankedAppointment) -> AppointmentModel:
    item = ranked.appointment
    return AppointmentModel(
        id=item.id,
        api_id=item.api_id,
        region=item.region,
        facility_name=item.facility_name,
        service_name=item.service_name,
        location=item.location,
        address=item.address,
        phone_number=item.phone_number,
        place_name=item.place_name,
        first_available_date=item.first_available_date,
        waiting_time=item.waiting_time,
        number_of_waiting=item.number_of_waiting,
        average_waiting_days=item.average_waiting_days,
        medical_category=item.medical_category,
        case_type=item.case_type,
        is_urgent=item.is_urgent,
        latitude=item.latitude,
        longitude=item.longitude,
        data_preparation_date=item.data_preparation_date,
        distance_km=round(ranked.distance_km, 3) if ranked.distance_km is not None else None,
    )


def session_response(session_id: str, orchestrator: SearchOrchestrator) -> SessionResponse:
    snapshot = orchestrator.snapshot()
    return SessionResponse(
        session_id=session_id,
        state=snapshot.state.value,
        region=region_model(snapshot.region) if snapshot.region else None,
        service_name=snapshot.service_name,
        locality=snapshot.locality,
        urgent_only=snapshot.urgent_only,
        items=[appointment_model(ranked) for ranked in snapshot.results],
        loaded_count=snapshot.loaded_count,
        total=snapshot.total_count,
        has_more_results=snapshot.has_more_results,
        is_loading_more=snapshot.is_loading_more,
        has_searched=snapshot.has_searched,
        error_message=snapshot.error_message,
        data_period_label=snapshot.data_period_label,
        last_updated=snapshot.last_updated,
        total_waiting=snapshot.total_waiting,
        service_names=list(snapshot.service_names),
    )


def _require_session(registry: SessionRegistry, session_id: str) -> SearchOrchestrator:
    orchestrator = registry.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found.")
    return orchestrator


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: CreateSessionRequest | None = None,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    kind = SourceKind(payload.source) if payload else SourceKind.API
    session_id, orchestrator = registry.create(kind)
    return session_response(session_id, orchestrator)


@router.get("/{session_id}", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionResponse:
    return session_response(session_id, _require_session(registry, session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> Response:
    if not registry.delete(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{session_id}/region", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def select_region(
    session_id: str,
    payload: RegionSelectionRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    orchestrator = _require_session(registry, session_id)
    try:
        region = Region.parse(payload.region)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    orchestrator.select_region(region)
    return session_response(session_id, orchestrator)


@router.put("/{session_id}/filters", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def update_filters(
    session_id: str,
    payload: FiltersRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    orchestrator = _require_session(registry, session_id)
    if payload.service_name is not None:
        orchestrator.set_service_name(payload.service_name)
    if payload.locality is not None:
        orchestrator.set_locality_filter(payload.locality)
    if payload.urgent_only is not None:
        orchestrator.set_urgent_only(payload.urgent_only)
    return session_response(session_id, orchestrator)


@router.put("/{session_id}/location", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def update_location(
    session_id: str,
    payload: LocationRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    orchestrator = _require_session(registry, session_id)
    orchestrator.location.update(payload.latitude, payload.longitude)
    return session_response(session_id, orchestrator)


@router.post("/{session_id}/service-names", response_model=SessionResponse, status_code=status.HTTP_200_OK)
async def search_service_names(
    session_id: str,
    payload: ServiceNameQuery,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    orchestrator = _require_session(registry, session_id)
    await orchestrator.search_service_names(payload.query)
    return session_response(session_id, orchestrator)


@router.post("/{session_id}/search", response_model=SessionResponse, status_code=status.HTTP_200_OK)
async def run_search(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionResponse:
    orchestrator = _require_session(registry, session_id)
    try:
        await orchestrator.search()
    except QueueFinderError as exc:
        raise to_http_exception(exc) from exc
    return session_response(session_id, orchestrator)


@router.post("/{session_id}/load-more", response_model=LoadMoreResponse, status_code=status.HTTP_200_OK)
async def load_more(
    session_id: str,
    payload: LoadMoreRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> LoadMoreResponse:
    orchestrator = _require_session(registry, session_id)
    loaded = await orchestrator.load_more_if_needed(payload.anchor_id)
    return LoadMoreResponse(loaded=loaded, session=session_response(session_id, orchestrator))


@router.post("/{session_id}/refresh", response_model=SessionResponse, status_code=status.HTTP_200_OK)
async def refresh(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionResponse:
    orchestrator = _require_session(registry, session_id)
    try:
        await orchestrator.refresh_data()
    except QueueFinderError as exc:
        raise to_http_exception(exc) from exc
    return session_response(session_id, orchestrator)


@router.post("/{session_id}/reset", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def reset(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionResponse:
    orchestrator = _require_session(registry, session_id)
    orchestrator.reset_selection()
    return session_response(session_id, orchestrator)
