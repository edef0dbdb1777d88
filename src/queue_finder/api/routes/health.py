"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...config import settings
from ...services.search.sessions import SessionRegistry
from ..dependencies import get_registry

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/details", status_code=status.HTTP_200_OK)
def health_details(registry: SessionRegistry = Depends(get_registry)) -> dict:
    return {
        "status": "ok",
        "nfz_api": settings.nfz_api_base_url,
        "api_version": settings.nfz_api_version,
        "geocoding_enabled": settings.geocoding_enabled,
        "active_sessions": len(registry),
    }
