"""Benefit and locality name lookups."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import QueueFinderError
from ...models.domain import Region
from ...schemas.search import NameListResponse
from ...services.nfz.client import NFZClient
from ..dependencies import get_nfz_client
from ..errors import to_http_exception

router = APIRouter(tags=["catalog"])


@router.get("/benefits", response_model=NameListResponse, status_code=status.HTTP_200_OK)
async def search_benefits(
    query: str = Query(default="", description="Benefit name fragment; short fragments return common benefits"),
    all_pages: bool = Query(default=False, description="Walk every result page"),
    client: NFZClient = Depends(get_nfz_client),
) -> NameListResponse:
    try:
        if all_pages and query.strip():
            names = await client.fetch_all_benefits(name=query)
        else:
            names = await client.search_service_names(query)
    except QueueFinderError as exc:
        raise to_http_exception(exc) from exc
    return NameListResponse(items=names, total=len(names))


@router.get("/localities", response_model=NameListResponse, status_code=status.HTTP_200_OK)
async def search_localities(
    region: str | None = Query(default=None, description="Region slug or province code"),
    name: str | None = Query(default=None, description="Locality name fragment"),
    client: NFZClient = Depends(get_nfz_client),
) -> NameListResponse:
    province = None
    if region:
        try:
            province = Region.parse(region).province_code
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        names = await client.fetch_all_localities(province=province, name=name)
    except QueueFinderError as exc:
        raise to_http_exception(exc) from exc
    return NameListResponse(items=names, total=len(names))
