from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from src.queue_finder.api.dependencies import get_nfz_client, get_registry, get_spreadsheet_repository
from src.queue_finder.data.download_links import DownloadLinkResolver
from src.queue_finder.data.spreadsheet_repository import SpreadsheetRepository
from src.queue_finder.main import create_app
from src.queue_finder.persistence.filesystem import FileStorage, SpreadsheetCache
from src.queue_finder.services.distance import DistanceResolver
from src.queue_finder.services.nfz.client import NFZClient
from src.queue_finder.services.search.sessions import SessionRegistry


def _queue(page: int, index: int) -> dict:
    return {
        "type": "queues",
        "id": f"q-{page}-{index}",
        "attributes": {
            "case": 1,
            "benefit": "PORADNIA KARDIOLOGICZNA",
            "provider": f"Placówka {page}-{index:02d}",
            "locality": "WARSZAWA",
            "latitude": 52.0 + index / 100,
            "longitude": 21.0,
            "statistics": {"provider-data": {"awaiting": 2, "average-period": 10}},
            "dates": {"date": "2025-05-01"},
        },
    }


def nfz_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/queues"):
        if request.url.params["province"] == "16":
            return httpx.Response(429)
        page = int(request.url.params["page"])
        total = 30
        count = min(25, total - (page - 1) * 25)
        return httpx.Response(
            200,
            json={"meta": {"count": total, "page": page, "limit": 25}, "data": [_queue(page, i) for i in range(count)]},
        )
    if path.endswith("/benefits"):
        return httpx.Response(200, json={"meta": {"count": 1}, "data": ["PORADNIA KARDIOLOGICZNA"]})
    if path.endswith("/localities"):
        return httpx.Response(200, json={"meta": {"count": 2, "page": 1, "limit": 25}, "data": ["RADOM", "PŁOCK"]})
    return httpx.Response(404)


@pytest.fixture
def api_client(tmp_path: Path) -> TestClient:
    client = NFZClient(base_url="https://nfz.test/app-itl-api", transport=httpx.MockTransport(nfz_handler))
    registry = SessionRegistry(client=client, resolver=DistanceResolver(None), storage=FileStorage(root=tmp_path))

    app = create_app()
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_nfz_client] = lambda: client
    return TestClient(app)


def test_health_and_regions(api_client: TestClient) -> None:
    assert api_client.get("/api/health").json() == {"status": "ok"}

    regions = api_client.get("/api/regions").json()
    assert len(regions) == 16
    assert regions[6]["slug"] == "mazowieckie"
    assert regions[6]["province_code"] == "07"

    nearest = api_client.get("/api/regions/nearest", params={"latitude": 50.06, "longitude": 19.94})
    assert nearest.json()["slug"] == "małopolskie"


def test_benefit_and_locality_lookups(api_client: TestClient) -> None:
    short = api_client.get("/api/benefits", params={"query": "po"}).json()
    assert short["total"] > 10

    found = api_client.get("/api/benefits", params={"query": "kardio"}).json()
    assert found["items"] == ["PORADNIA KARDIOLOGICZNA"]

    localities = api_client.get("/api/localities", params={"region": "mazowieckie", "name": "r"}).json()
    assert localities["items"] == ["PŁOCK", "RADOM"]

    assert api_client.get("/api/localities", params={"region": "atlantyda"}).status_code == 422


def test_session_search_and_load_more(api_client: TestClient) -> None:
    created = api_client.post("/api/sessions", json={"source": "api"})
    assert created.status_code == 201
    session_id = created.json()["session_id"]

    assert api_client.post(f"/api/sessions/{session_id}/search").status_code == 422

    selected = api_client.put(f"/api/sessions/{session_id}/region", json={"region": "07"}).json()
    assert selected["region"]["slug"] == "mazowieckie"
    assert selected["service_names"]

    api_client.put(f"/api/sessions/{session_id}/filters", json={"service_name": "PORADNIA KARDIOLOGICZNA"})
    api_client.put(f"/api/sessions/{session_id}/location", json={"latitude": 52.0, "longitude": 21.0})

    searched = api_client.post(f"/api/sessions/{session_id}/search").json()
    assert searched["state"] == "displaying"
    assert len(searched["items"]) == 20
    assert searched["loaded_count"] == 25
    assert searched["total"] == 30
    assert searched["has_more_results"] is True
    assert searched["items"][0]["distance_km"] == 0.0
    assert searched["total_waiting"] == 50

    anchor = searched["items"][-1]["id"]
    more = api_client.post(f"/api/sessions/{session_id}/load-more", json={"anchor_id": anchor}).json()
    assert more["loaded"] is True
    assert more["session"]["loaded_count"] == 30
    assert len(more["session"]["items"]) == 30
    assert more["session"]["has_more_results"] is False

    reset = api_client.post(f"/api/sessions/{session_id}/reset").json()
    assert reset["state"] == "idle"
    assert reset["region"] is None

    assert api_client.delete(f"/api/sessions/{session_id}").status_code == 204
    assert api_client.get(f"/api/sessions/{session_id}").status_code == 404


def test_upstream_rate_limit_maps_to_429(api_client: TestClient) -> None:
    session_id = api_client.post("/api/sessions").json()["session_id"]
    api_client.put(f"/api/sessions/{session_id}/region", json={"region": "zachodniopomorskie"})

    response = api_client.post(f"/api/sessions/{session_id}/search")

    assert response.status_code == 429
    state = api_client.get(f"/api/sessions/{session_id}").json()
    assert state["state"] == "error"
    assert state["error_message"]


def test_spreadsheet_endpoint(api_client: TestClient, tmp_path: Path, region_workbook: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/Download":
            return httpx.Response(503)
        return httpx.Response(200, content=region_workbook)

    transport = httpx.MockTransport(handler)
    repository = SpreadsheetRepository(
        resolver=DownloadLinkResolver(base_url="https://files.test", transport=transport),
        cache=SpreadsheetCache(FileStorage(root=tmp_path)),
        transport=transport,
    )
    api_client.app.dependency_overrides[get_spreadsheet_repository] = lambda: repository

    response = api_client.get("/api/spreadsheets/mazowieckie", params={"limit": 2})

    assert response.status_code == 200
    payload = response.json()
    assert payload["appointments"] == 3
    assert payload["data_period_label"] == "marzec 2025"
    assert len(payload["items"]) == 2
    assert payload["items"][0]["waiting_time"] == "45 dni"
