"""Per-region spreadsheet loader, cache first with download fallback."""

from __future__ import annotations

import asyncio
import logging

import httpx

from ..config import settings
from ..errors import HtmlPayload, IngestionError, TransportError, http_error_for_status
from ..models.domain import Region
from ..persistence.filesystem import SpreadsheetCache
from ..services.spreadsheet.workbook import SpreadsheetParseResult, load_workbook_bytes
from .download_links import BROWSER_USER_AGENT, DownloadLinkResolver

logger = logging.getLogger(__name__)


class SpreadsheetRepository:
    def __init__(
        self,
        resolver: DownloadLinkResolver | None = None,
        cache: SpreadsheetCache | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.resolver = resolver or DownloadLinkResolver(transport=transport)
        self.cache = cache or SpreadsheetCache()
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._transport = transport

    async def download(self, region: Region) -> bytes:
        url = await self.resolver.resolve(region)
        logger.info(f"Downloading spreadsheet for {region.value}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": BROWSER_USER_AGENT},
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.TransportError as exc:
            raise TransportError(f"Spreadsheet download for {region.value} failed: {exc}") from exc

        if not response.is_success:
            raise http_error_for_status(response.status_code, f"Spreadsheet download returned HTTP {response.status_code}")
        return response.content

    def _parse_cached(self, region: Region) -> SpreadsheetParseResult | None:
        if not self.cache.is_fresh(region.value):
            return None
        try:
            return load_workbook_bytes(self.cache.load(region.value), region.value)
        except (OSError, IngestionError) as exc:
            logger.warning(f"Discarding cached spreadsheet for {region.value}: {exc}")
            self.cache.delete(region.value)
            return None

    async def load(self, region: Region, *, force_refresh: bool = False) -> SpreadsheetParseResult:
        """Parsed appointments of ``region``; only a successfully parsed download is cached.

        Cache file access and workbook parsing run in a worker thread.
        """

        if not force_refresh:
            cached = await asyncio.to_thread(self._parse_cached, region)
            if cached is not None:
                logger.info(f"Using cached spreadsheet for {region.value}")
                return cached

        payload = await self.download(region)
        try:
            result = await asyncio.to_thread(load_workbook_bytes, payload, region.value)
        except HtmlPayload:
            self.resolver.invalidate()
            raise
        await asyncio.to_thread(self.cache.save, region.value, payload)
        return result
