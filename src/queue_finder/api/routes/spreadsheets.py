"""Legacy per-region spreadsheet endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...data.spreadsheet_repository import SpreadsheetRepository
from ...errors import QueueFinderError
from ...models.domain import RankedAppointment, Region
from ...schemas.search import SpreadsheetSummaryResponse
from ..dependencies import get_spreadsheet_repository
from ..errors import to_http_exception
from .sessions import appointment_model

router = APIRouter(prefix="/spreadsheets", tags=["spreadsheets"])


@router.get("/{region}", response_model=SpreadsheetSummaryResponse, status_code=status.HTTP_200_OK)
async def load_spreadsheet(
    region: str,
    refresh: bool = Query(default=False, description="Ignore the cached file"),
    limit: int = Query(default=20, ge=0, le=500, description="Number of appointments to include"),
    repository: SpreadsheetRepository = Depends(get_spreadsheet_repository),
) -> SpreadsheetSummaryResponse:
    try:
        selected = Region.parse(region)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    try:
        result = await repository.load(selected, force_refresh=refresh)
    except QueueFinderError as exc:
        raise to_http_exception(exc) from exc

    return SpreadsheetSummaryResponse(
        region=selected.value,
        appointments=len(result.appointments),
        data_year=result.data_year,
        data_month=result.data_month,
        data_period_label=result.data_period_label,
        items=[appointment_model(RankedAppointment(item, None)) for item in result.appointments[:limit]],
    )
