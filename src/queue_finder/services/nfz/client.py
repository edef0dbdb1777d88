"""Async HTTP client for the NFZ 'Terminy Leczenia' API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from ...config import settings
from ...errors import (
    DecodeError,
    HttpError,
    InvalidRequest,
    ServerError,
    TransportError,
    http_error_for_status,
)
from ...models.domain import MAX_API_PAGE_SIZE, NamePage, QueryCriteria
from ...schemas.nfz import NameListEnvelope, NFZQueue, QueueEnvelope, QueueListEnvelope

logger = logging.getLogger(__name__)

EnvelopeT = TypeVar("EnvelopeT", bound=BaseModel)

# The /benefits endpoint needs a search term, so short prefixes get this list instead.
COMMON_BENEFITS: tuple[str, ...] = (
    "PORADNIA ALERGOLOGICZNA",
    "PORADNIA CHIRURGII OGÓLNEJ",
    "PORADNIA CHIRURGII URAZOWO-ORTOPEDYCZNEJ",
    "PORADNIA DERMATOLOGICZNA",
    "PORADNIA DIABETOLOGICZNA",
    "PORADNIA ENDOKRYNOLOGICZNA",
    "PORADNIA GASTROENTEROLOGICZNA",
    "PORADNIA GINEKOLOGICZNO-POŁOŻNICZA",
    "PORADNIA KARDIOLOGICZNA",
    "PORADNIA NEUROLOGICZNA",
    "PORADNIA OKULISTYCZNA",
    "PORADNIA ORTOPEDYCZNA",
    "PORADNIA OTORYNOLARYNGOLOGICZNA",
    "PORADNIA REUMATOLOGICZNA",
    "PORADNIA UROLOGICZNA",
    "PORADNIA ZDROWIA PSYCHICZNEGO",
    "ENDOPROTEZOPLASTYKA STAWU BIODROWEGO",
    "ENDOPROTEZOPLASTYKA STAWU KOLANOWEGO",
    "OPERACJA ZAĆMY",
    "REZONANS MAGNETYCZNY",
    "TOMOGRAFIA KOMPUTEROWA",
    "ŚWIADCZENIA Z ZAKRESU FIZJOTERAPII AMBULATORYJNEJ",
)


@dataclass(frozen=True, slots=True)
class QueuePage:
    records: tuple[NFZQueue, ...]
    has_next_page: bool
    total_count: Optional[int] = None


async def fetch_all_paged(
    fetch_page: Callable[[int], Awaitable[NamePage]],
    max_iterations: Optional[int] = None,
) -> list[str]:
    """Accumulate every page of names, stopping at the safety cap.

    The cap guards against pagination metadata that never reports the end.
    """

    cap = max_iterations or settings.max_paged_iterations
    names: list[str] = []
    page = 1
    while page <= cap:
        result = await fetch_page(page)
        names.extend(result.names)
        if not result.has_next_page:
            break
        page += 1
    else:
        logger.warning(f"Stopped paging after {cap} iterations; pagination metadata never ended")
    return sorted(names)


class NFZClient:
    """Typed, paginated access to the NFZ queue API.

    Transport failures and 5xx responses are retried with linear backoff;
    other HTTP errors surface immediately through the error taxonomy.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.nfz_api_base_url).rstrip("/")
        self.api_version = api_version or settings.nfz_api_version
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.backoff_seconds
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "NFZClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

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

    def _fixed_params(self) -> dict[str, str]:
        return {"format": settings.nfz_api_format, "api-version": self.api_version}

    async def _get(self, path: str, params: dict[str, str]) -> Any:
        client = self._get_client()
        attempt = 0
        while True:
            try:
                response = await client.get(path, params=params)
            except httpx.TransportError as exc:
                error: HttpError | TransportError = TransportError(f"Request to {path} failed: {exc}")
                cause: Exception = exc
            else:
                if response.is_success:
                    try:
                        return response.json()
                    except ValueError as exc:
                        preview = response.text[:200]
                        raise DecodeError(f"Response from {path} is not JSON: {preview!r}") from exc
                error = http_error_for_status(response.status_code, f"{path} returned HTTP {response.status_code}")
                cause = error
                if not isinstance(error, ServerError):
                    raise error

            attempt += 1
            if attempt > self.max_retries:
                if error is cause:
                    raise error
                raise error from cause
            wait_time = self.backoff_seconds * attempt
            logger.debug(f"NFZ request {path} failed ({error}), retrying in {wait_time:.1f}s ({attempt}/{self.max_retries})")
            await asyncio.sleep(wait_time)

    @staticmethod
    def _decode(envelope_type: Type[EnvelopeT], payload: Any, path: str) -> EnvelopeT:
        try:
            return envelope_type.model_validate(payload)
        except SchemaValidationError as exc:
            logger.warning(f"Unexpected response schema from {path}: {exc.error_count()} errors")
            raise DecodeError(f"Response from {path} does not match the expected schema.") from exc

    async def fetch_page(self, criteria: QueryCriteria) -> QueuePage:
        """Fetch one page of queues matching ``criteria``."""

        if not criteria.region_code:
            raise InvalidRequest("Province code is required.")

        params = {
            "province": criteria.region_code,
            "case": str(int(criteria.case_type or 1)),
            "page": str(max(1, criteria.page)),
            "limit": str(criteria.limit),
            **self._fixed_params(),
        }
        if criteria.benefit and criteria.benefit.strip():
            params["benefit"] = criteria.benefit.strip()
        if criteria.locality and criteria.locality.strip():
            params["locality"] = criteria.locality.strip()

        payload = await self._get("/queues", params)
        envelope = self._decode(QueueListEnvelope, payload, "/queues")
        total = envelope.meta.count if envelope.meta else None
        has_next = envelope.has_next_page()
        if not has_next and total is not None:
            has_next = max(1, criteria.page) * criteria.limit < total
        logger.info(
            f"Fetched {len(envelope.data)} queues (province={criteria.region_code}, page={params['page']}, total={total})"
        )
        return QueuePage(records=tuple(envelope.data), has_next_page=has_next, total_count=total)

    async def fetch_queue(self, queue_id: str) -> NFZQueue:
        if not queue_id:
            raise InvalidRequest("Queue id is required.")
        path = f"/queues/{queue_id}"
        payload = await self._get(path, self._fixed_params())
        return self._decode(QueueEnvelope, payload, path).data

    async def _fetch_names(self, path: str, params: dict[str, str]) -> NamePage:
        payload = await self._get(path, {**params, **self._fixed_params()})
        envelope = self._decode(NameListEnvelope, payload, path)
        return NamePage(
            names=tuple(envelope.data),
            has_next_page=envelope.has_next_page(),
            total_count=envelope.meta.count if envelope.meta else None,
        )

    async def fetch_benefits(self, name: str | None = None, page: int = 1, limit: int = MAX_API_PAGE_SIZE) -> NamePage:
        params = {"page": str(page), "limit": str(min(limit, MAX_API_PAGE_SIZE))}
        if name and name.strip():
            params["name"] = name.strip()
        return await self._fetch_names("/benefits", params)

    async def fetch_localities(
        self,
        province: str | None = None,
        name: str | None = None,
        page: int = 1,
        limit: int = MAX_API_PAGE_SIZE,
    ) -> NamePage:
        params = {"page": str(page), "limit": str(min(limit, MAX_API_PAGE_SIZE))}
        if province and province.strip():
            params["province"] = province.strip()
        if name and name.strip():
            params["name"] = name.strip()
        return await self._fetch_names("/localities", params)

    async def search_service_names(self, query: str) -> list[str]:
        """Benefit names matching ``query``; short queries get the common list."""

        term = query.strip()
        if len(term) < settings.benefit_query_min_length:
            return list(COMMON_BENEFITS)
        result = await self.fetch_benefits(name=term)
        if not result.names:
            logger.info(f"No benefits found for '{term}', showing common benefits")
            return list(COMMON_BENEFITS)
        return list(result.names)

    async def fetch_all_benefits(self, name: str | None = None) -> list[str]:
        return await fetch_all_paged(lambda page: self.fetch_benefits(name=name, page=page))

    async def fetch_all_localities(self, province: str | None = None, name: str | None = None) -> list[str]:
        return await fetch_all_paged(lambda page: self.fetch_localities(province=province, name=name, page=page))
