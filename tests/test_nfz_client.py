import httpx
import pytest

from src.queue_finder.errors import (
    BadRequest,
    DecodeError,
    HttpError,
    InvalidRequest,
    NotFound,
    RateLimited,
    ServerError,
    TransportError,
)
from src.queue_finder.models.domain import CaseType, NamePage, QueryCriteria
from src.queue_finder.services.nfz.client import COMMON_BENEFITS, NFZClient, fetch_all_paged


def _queues_payload(count: int, total: int, page: int = 1, with_next: bool = False) -> dict:
    links = {"self": f"/queues?page={page}"}
    if with_next:
        links["next"] = f"/queues?page={page + 1}"
    return {
        "meta": {"count": total, "page": page, "limit": 25},
        "links": links,
        "data": [
            {"type": "queues", "id": f"q{page}-{i}", "attributes": {"provider": "P", "benefit": "B", "locality": "L"}}
            for i in range(count)
        ],
    }


def _client(handler, **kwargs) -> NFZClient:
    return NFZClient(
        base_url="https://nfz.test/app-itl-api",
        transport=httpx.MockTransport(handler),
        backoff_seconds=0,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_fetch_page_sends_required_and_fixed_parameters() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_queues_payload(25, 60))

    async with _client(handler) as client:
        page = await client.fetch_page(QueryCriteria(region_code="07", case_type=CaseType.URGENT, page=1, page_size=50))

    params = seen[0].url.params
    assert seen[0].url.path == "/app-itl-api/queues"
    assert params["province"] == "07"
    assert params["case"] == "2"
    assert params["limit"] == "25"
    assert params["format"] == "json"
    assert params["api-version"] == "1.3"
    assert "benefit" not in params
    assert "locality" not in params
    assert seen[0].headers["Accept"] == "application/json"
    assert len(page.records) == 25
    assert page.total_count == 60
    assert page.has_next_page is True


@pytest.mark.asyncio
async def test_optional_filters_sent_only_when_non_empty() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_queues_payload(1, 1))

    async with _client(handler) as client:
        await client.fetch_page(QueryCriteria(region_code="07", benefit="PORADNIA OKULISTYCZNA", locality="   "))

    assert seen[0].url.params["benefit"] == "PORADNIA OKULISTYCZNA"
    assert "locality" not in seen[0].url.params


@pytest.mark.asyncio
async def test_next_page_follows_links_then_count() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        if page == 1:
            payload = _queues_payload(25, 30, page=1, with_next=True)
            payload["meta"] = None
            return httpx.Response(200, json=payload)
        return httpx.Response(200, json=_queues_payload(5, 30, page=2))

    async with _client(handler) as client:
        first = await client.fetch_page(QueryCriteria(region_code="01", page=1))
        second = await client.fetch_page(QueryCriteria(region_code="01", page=2))

    assert first.has_next_page is True
    assert first.total_count is None
    assert second.has_next_page is False


@pytest.mark.asyncio
async def test_missing_region_is_rejected_without_network() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _client(handler) as client:
        with pytest.raises(InvalidRequest):
            await client.fetch_page(QueryCriteria(region_code=None))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [(400, BadRequest), (404, NotFound), (429, RateLimited), (503, ServerError), (418, HttpError)],
)
async def test_status_codes_map_to_error_taxonomy(status_code: int, error_type: type) -> None:
    async with _client(lambda request: httpx.Response(status_code, text="error"), max_retries=0) as client:
        with pytest.raises(error_type) as excinfo:
            await client.fetch_page(QueryCriteria(region_code="07"))
    assert excinfo.value.status_code == status_code


@pytest.mark.asyncio
async def test_server_errors_are_retried_but_client_errors_are_not() -> None:
    calls = {"count": 0}

    def flaky(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] < 3:
            return httpx.Response(502)
        return httpx.Response(200, json=_queues_payload(2, 2))

    async with _client(flaky, max_retries=2) as client:
        page = await client.fetch_page(QueryCriteria(region_code="07"))
    assert calls["count"] == 3
    assert len(page.records) == 2

    calls["count"] = 0

    def rate_limited(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(429)

    async with _client(rate_limited, max_retries=2) as client:
        with pytest.raises(RateLimited):
            await client.fetch_page(QueryCriteria(region_code="07"))
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_network_failure_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler, max_retries=1) as client:
        with pytest.raises(TransportError) as excinfo:
            await client.fetch_page(QueryCriteria(region_code="07"))
    assert isinstance(excinfo.value, ConnectionError)


@pytest.mark.asyncio
async def test_undecodable_bodies_raise_decode_error() -> None:
    async with _client(lambda request: httpx.Response(200, text="<html>oops</html>")) as client:
        with pytest.raises(DecodeError):
            await client.fetch_page(QueryCriteria(region_code="07"))

    async with _client(lambda request: httpx.Response(200, json={"data": "not-a-list"})) as client:
        with pytest.raises(DecodeError):
            await client.fetch_page(QueryCriteria(region_code="07"))


@pytest.mark.asyncio
async def test_short_benefit_queries_never_hit_the_network() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _client(handler) as client:
        assert await client.search_service_names("po") == list(COMMON_BENEFITS)
        assert await client.search_service_names("   ") == list(COMMON_BENEFITS)


@pytest.mark.asyncio
async def test_benefit_search_uses_api_and_falls_back_when_empty() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.params["name"]
        data = ["PORADNIA KARDIOLOGICZNA"] if name == "kardio" else []
        return httpx.Response(200, json={"meta": {"count": len(data)}, "data": data})

    async with _client(handler) as client:
        assert await client.search_service_names(" kardio ") == ["PORADNIA KARDIOLOGICZNA"]
        assert await client.search_service_names("xyz") == list(COMMON_BENEFITS)


@pytest.mark.asyncio
async def test_fetch_all_paged_accumulates_and_sorts() -> None:
    pages = {1: ("c", "a"), 2: ("b",)}

    async def fetch(page: int) -> NamePage:
        return NamePage(names=pages[page], has_next_page=page < 2)

    assert await fetch_all_paged(fetch) == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_fetch_all_paged_stops_at_safety_cap() -> None:
    calls = []

    async def endless(page: int) -> NamePage:
        calls.append(page)
        return NamePage(names=(f"n{page:03d}",), has_next_page=True)

    names = await fetch_all_paged(endless, max_iterations=100)
    assert len(calls) == 100
    assert names[0] == "n001"
    assert names[-1] == "n100"


@pytest.mark.asyncio
async def test_fetch_all_localities_walks_pages() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        assert request.url.params["province"] == "12"
        data = ["KATOWICE", "BYTOM"] if page == 1 else ["GLIWICE"]
        links = {"next": "/localities?page=2"} if page == 1 else {}
        return httpx.Response(200, json={"meta": {"count": 3, "page": page, "limit": 25}, "links": links, "data": data})

    async with _client(handler) as client:
        assert await client.fetch_all_localities(province="12") == ["BYTOM", "GLIWICE", "KATOWICE"]
