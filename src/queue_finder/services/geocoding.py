"""Address geocoding over a Nominatim-compatible HTTP endpoint."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from ..config import settings
from ..errors import GeocodeUnavailable
from ..models.domain import Coordinate
from .geospatial import is_valid_coordinate

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    async def geocode(self, query: str) -> Coordinate:
        """Resolve a free-text address; raises ``GeocodeUnavailable``."""
        ...


class NominatimGeocoder:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                headers={"Accept": "application/json", "User-Agent": self.user_agent},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def geocode(self, query: str) -> Coordinate:
        params = {"q": query, "format": "json", "limit": "1"}
        try:
            response = await self._get_client().get("/search", params=params)
            response.raise_for_status()
            payload: Any = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GeocodeUnavailable(f"Geocoding '{query}' failed: {exc}") from exc

        if not isinstance(payload, list) or not payload:
            raise GeocodeUnavailable(f"No geocoding result for '{query}'.")

        first = payload[0]
        try:
            latitude = float(first["lat"])
            longitude = float(first["lon"])
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodeUnavailable(f"Malformed geocoding result for '{query}'.") from exc

        if not is_valid_coordinate(latitude, longitude):
            raise GeocodeUnavailable(f"Geocoding '{query}' returned an invalid coordinate.")
        return Coordinate(latitude, longitude)
