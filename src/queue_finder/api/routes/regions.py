"""Region catalogue endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Query, status

from ...models.domain import Region
from ...schemas.search import RegionModel

router = APIRouter(prefix="/regions", tags=["regions"])


def region_model(region: Region) -> RegionModel:
    return RegionModel(
        slug=region.value,
        name=region.display_name,
        province_code=region.province_code,
        latitude=region.center.latitude,
        longitude=region.center.longitude,
    )


@router.get("", response_model=List[RegionModel], status_code=status.HTTP_200_OK)
def list_regions() -> List[RegionModel]:
    return [region_model(region) for region in Region]


@router.get("/nearest", response_model=RegionModel, status_code=status.HTTP_200_OK)
def nearest_region(
    latitude: float = Query(..., ge=-90.0, le=90.0),
    longitude: float = Query(..., ge=-180.0, le=180.0),
) -> RegionModel:
    return region_model(Region.nearest(latitude, longitude))
