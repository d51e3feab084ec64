import time
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.reading_store import build_default_store
from services.broadcaster import build_default_broadcaster
from services.ingest import IngestService, build_default_ingest_service
from services.query import build_default_query_service
from settings import get_settings

_CACHES = (
    build_default_ingest_service,
    build_default_query_service,
    build_default_broadcaster,
    build_default_store,
    get_settings,
)


def _clear_caches() -> None:
    for cache in _CACHES:
        cache.cache_clear()


@pytest.fixture
def api_client(monkeypatch, clock) -> Iterator[TestClient]:
    monkeypatch.setattr("datastore.reading_store.utc_now", clock)
    _clear_caches()

    app = create_app()
    with TestClient(app) as client:
        yield client

    _clear_caches()


def _post(client: TestClient, **payload) -> dict:
    response = client.post("/api/sensor-data", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return
        time.sleep(0.01)
    pytest.fail("Condition not met before timeout.")


def test_lifespan_rebuilds_services_per_app_instance(monkeypatch, clock) -> None:
    monkeypatch.setattr("datastore.reading_store.utc_now", clock)
    _clear_caches()
    app = create_app()

    with TestClient(app):
        store_during = build_default_store()
        assert build_default_ingest_service().store is store_during

    store_after = build_default_store()
    try:
        assert store_after is not store_during
    finally:
        _clear_caches()


def test_ingest_and_read_latest(api_client: TestClient) -> None:
    body = _post(api_client, temperature=24.5, humidity=55, device_id="lab")

    assert body["success"] is True
    assert body["message"] == "Data received successfully"
    data = body["data"]
    assert data["temperature"] == 24.5
    assert data["humidity"] == 55
    assert data["status"] == "Normal"
    assert data["device_id"] == "lab"
    assert data["received_at"] == "2024-01-01T12:00:00Z"

    latest = api_client.get("/api/sensor-data/latest")
    assert latest.status_code == 200
    latest_body = latest.json()
    assert latest_body["success"] is True
    assert latest_body["data"] == data
    assert latest_body["lastUpdate"] == "2024-01-01T12:00:00Z"


def test_status_defaults_from_threshold(api_client: TestClient) -> None:
    assert _post(api_client, temperature=31, humidity=40)["data"]["status"] == "Abnormal"
    assert _post(api_client, temperature=25, humidity=40)["data"]["status"] == "Normal"


def test_missing_temperature_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post("/api/sensor-data", json={"humidity": 40})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields: temperature and humidity"
    assert api_client.get("/api/status").json()["totalReadings"] == 0


def test_non_numeric_temperature_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post("/api/sensor-data", json={"temperature": "hot", "humidity": 40})

    assert response.status_code == 400
    assert "temperature" in response.json()["message"]
    assert api_client.get("/api/status").json()["totalReadings"] == 0


def test_malformed_json_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/sensor-data",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()


def test_unexpected_failure_returns_internal_error(api_client: TestClient, monkeypatch) -> None:
    def explode(self, submission):
        raise RuntimeError("boom")

    monkeypatch.setattr(IngestService, "normalize", explode)

    response = api_client.post("/api/sensor-data", json={"temperature": 20, "humidity": 40})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "message": "boom"}


def test_latest_without_data_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/api/sensor-data/latest")

    assert response.status_code == 404
    assert response.json() == {"error": "No sensor data available"}


def test_history_filters_by_range_and_limit(api_client: TestClient, clock) -> None:
    _post(api_client, temperature=20, humidity=40)
    clock.advance(2 * 3600)
    _post(api_client, temperature=21, humidity=41)
    _post(api_client, temperature=22, humidity=42)

    everything = api_client.get("/api/sensor-data", params={"timeRange": "all"}).json()
    assert everything["success"] is True
    assert everything["count"] == 3

    recent = api_client.get("/api/sensor-data", params={"timeRange": "1h"}).json()
    assert [r["temperature"] for r in recent["data"]] == [21.0, 22.0]
    assert recent["count"] == 2
    assert recent["lastUpdate"] == "2024-01-01T14:00:00Z"

    limited = api_client.get("/api/sensor-data", params={"limit": 1}).json()
    assert [r["temperature"] for r in limited["data"]] == [22.0]


def test_history_rejects_unknown_range(api_client: TestClient) -> None:
    response = api_client.get("/api/sensor-data", params={"timeRange": "2d"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_status_reports_connectivity_window(api_client: TestClient, clock) -> None:
    before = api_client.get("/api/status").json()
    assert before["success"] is True
    assert before["connected"] is False
    assert before["lastUpdate"] is None

    _post(api_client, temperature=20, humidity=40)
    assert api_client.get("/api/status").json()["connected"] is True

    clock.advance(60)
    after = api_client.get("/api/status").json()
    assert after["connected"] is False
    assert after["totalReadings"] == 1
    assert after["uptime"] >= 0


def test_health(api_client: TestClient) -> None:
    response = api_client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["timestamp"] == "2024-01-01T12:00:00Z"
    assert body["lastUpdate"] is None
    assert body["uptime"] >= 0


def test_unmatched_route_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Endpoint not found", "path": "/api/nope"}


def test_root_lists_entry_points(api_client: TestClient) -> None:
    body = api_client.get("/").json()

    assert body["websocket"] == "/ws"
    assert body["api"] == "/api/sensor-data"


def test_live_subscriber_receives_new_readings(api_client: TestClient) -> None:
    broadcaster = build_default_broadcaster()

    with api_client.websocket_connect("/ws") as websocket:
        _wait_for(lambda: broadcaster.subscriber_count == 1)
        posted = _post(api_client, temperature=26, humidity=48)
        message = websocket.receive_json()

    assert message["type"] == "sensor-data"
    assert message["data"] == posted["data"]


def test_live_subscriber_gets_latest_on_connect(api_client: TestClient) -> None:
    _post(api_client, temperature=20, humidity=40)
    latest = _post(api_client, temperature=21, humidity=41)

    with api_client.websocket_connect("/ws") as websocket:
        message = websocket.receive_json()

    assert message == {"type": "sensor-data", "data": latest["data"]}


def test_live_subscriber_is_removed_on_disconnect(api_client: TestClient) -> None:
    broadcaster = build_default_broadcaster()

    with api_client.websocket_connect("/ws"):
        _wait_for(lambda: broadcaster.subscriber_count == 1)

    _wait_for(lambda: broadcaster.subscriber_count == 0)


def test_dashboard_renders_chart_and_summary(api_client: TestClient) -> None:
    empty = api_client.get("/ui")
    assert empty.status_code == 200
    assert "Waiting for the first reading" in empty.text

    _post(api_client, temperature=20, humidity=40)
    _post(api_client, temperature=32, humidity=60)

    page = api_client.get("/ui", params={"timeRange": "1h", "theme": "dark"})
    assert page.status_code == 200
    assert "Device online" in page.text
    assert '<html lang="en" class="dark">' in page.text
    assert "<path d=\"M 0.0" in page.text
    assert "Abnormal Readings" in page.text
    assert "50%" in page.text
