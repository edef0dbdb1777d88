"""Resolution of per-region spreadsheet download URLs."""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from ..config import settings
from ..models.domain import Region
from ..services.text import decode_html_entities

logger = logging.getLogger(__name__)

DOWNLOAD_PAGE_PATH = "/Download"
XLSX_MIME_PARAM = "application%2Fvnd.openxmlformats-officedocument.spreadsheetml.sheet"
BROWSER_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

_LINK_PATTERN = re.compile(r'<a[^>]*href="(/DownloadFile/[^"]+)"[^>]*>[\s\S]*?</span>([^<]+)</a>')


def parse_download_links(html: str, base_url: str) -> dict[Region, str]:
    """Extract ``/DownloadFile/...`` anchors labelled with a region name."""

    by_name = {region.value: region for region in Region}
    links: dict[Region, str] = {}
    for href, label in _LINK_PATTERN.findall(html):
        name = decode_html_entities(label).strip().lower()
        region = by_name.get(name)
        if region is not None:
            links[region] = f"{base_url}{decode_html_entities(href)}"
    return links


def fallback_url(region: Region, base_url: str | None = None) -> str:
    base = (base_url or settings.download_base_url).rstrip("/")
    return f"{base}/DownloadFile/{region.file_id}?mime={XLSX_MIME_PARAM}"


class DownloadLinkCache:
    """In-memory region to URL map, filled by one scrape until invalidated."""

    def __init__(self) -> None:
        self._links: dict[Region, str] = {}
        self.populated = False

    def get(self, region: Region) -> Optional[str]:
        return self._links.get(region)

    def fill(self, links: dict[Region, str]) -> None:
        self._links = dict(links)
        self.populated = True

    def invalidate(self) -> None:
        self._links.clear()
        self.populated = False

    def __len__(self) -> int:
        return len(self._links)


class DownloadLinkResolver:
    """Scrape the download page once, falling back to the known file ids."""

    def __init__(
        self,
        base_url: str | None = None,
        cache: DownloadLinkCache | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.download_base_url).rstrip("/")
        self.cache = cache or DownloadLinkCache()
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._transport = transport

    async def _scrape(self) -> None:
        url = f"{self.base_url}{DOWNLOAD_PAGE_PATH}"
        logger.info(f"Scraping download links from {url}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": BROWSER_USER_AGENT},
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning(f"Could not fetch download page: {exc}")
            return

        if response.status_code != 200:
            logger.warning(f"Download page returned HTTP {response.status_code}")
            return

        links = parse_download_links(response.text, self.base_url)
        self.cache.fill(links)
        logger.info(f"Scraped {len(links)} download links")

    async def resolve(self, region: Region) -> str:
        if not self.cache.populated:
            await self._scrape()
        url = self.cache.get(region)
        if url is not None:
            return url
        url = fallback_url(region, self.base_url)
        logger.info(f"Using known file id URL for {region.value}: {url}")
        return url

    def invalidate(self) -> None:
        self.cache.invalidate()
