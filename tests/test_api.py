"""HTTP and WebSocket surface tests, run through FastAPI's TestClient."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from smokewatch.config import Settings
from smokewatch.domain.errors import StorageError
from smokewatch.domain.geo import Coordinates
from smokewatch.geocode.resolver import StaticResolver
from smokewatch.main import create_app
from smokewatch.services.container import build_services
from smokewatch.store.history_store import InMemoryHistoryStore

from tests.test_normalizer import _envelope, _payload

_COORDS = {
    "Library": Coordinates(latitude=37.5826, longitude=127.0106),
    "Gym": Coordinates(latitude=37.5830, longitude=127.0120),
    "Main Gate": Coordinates(latitude=37.5820, longitude=127.0095),
}


class UnlistableHistoryStore(InMemoryHistoryStore):
    """Appends and reads work; the directory listing does not."""

    async def list_addresses(self) -> set[str]:
        raise StorageError("*", "cannot list history directory: permission denied")


def _make_client(**overrides) -> TestClient:
    fields = {"history_backend": "memory", "rebuild_on_startup": False, "local_timezone": "UTC"}
    fields.update(overrides)
    settings = Settings(**fields)
    services = build_services(settings, resolver=StaticResolver(_COORDS))
    return TestClient(create_app(settings, services))


@pytest.fixture
def client():
    with _make_client() as c:
        yield c


def _now_payload(**overrides) -> dict:
    """Alert payload without a timestamp, so it lands at receipt time."""
    payload = _payload(**overrides)
    payload.pop("timestamp", None)
    return payload


# ── Ingestion ────────────────────────────────────────────────────────────────


class TestPostEvent:
    def test_accepted(self, client) -> None:
        resp = client.post("/api/events", json=_payload())
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "accepted"
        assert body["point"]["address"] == "Library"
        assert body["point"]["status"] == "alert"

    def test_envelope_accepted(self, client) -> None:
        resp = client.post("/api/events", json=_envelope(_payload(address="Gym")))
        assert resp.status_code == 200
        assert resp.json()["address"] == "Gym"

    def test_rejected_names_missing_fields(self, client) -> None:
        resp = client.post("/api/events", json={"photo": "p"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["status"] == "rejected"
        assert set(body["missing_fields"]) == {"address", "status"}

    def test_non_object_rejected(self, client) -> None:
        resp = client.post("/api/events", json=[1, 2, 3])
        assert resp.status_code == 422
        assert resp.json()["status"] == "rejected"

    def test_queued_ingestion_reaches_workers(self, client) -> None:
        resp = client.post("/api/events", params={"wait": "false"}, json=_payload())
        assert resp.status_code == 202
        assert resp.json() == {"status": "queued"}

        pipeline = client.app.state.services.pipeline
        client.portal.call(pipeline.join)
        assert client.get("/api/points/Library").json()["status"] == "alert"
        assert client.get("/health").json()["outcomes"]["accepted"] == 1

    def test_unresolvable_address_is_retryable(self, client) -> None:
        resp = client.post("/api/events", json=_payload(address="Atlantis"))
        assert resp.status_code == 503
        assert resp.json()["status"] == "unresolved"
        assert client.get("/api/points").json()["count"] == 0


class TestEventSocket:
    def test_round_trip(self, client) -> None:
        with client.websocket_connect("/ws/event") as ws:
            ws.send_json(_payload())
            first = ws.receive_json()
            ws.send_json({"status": "smoking"})
            second = ws.receive_json()
        assert first["status"] == "accepted"
        assert second["status"] == "rejected"
        assert second["missing_fields"] == ["address"]

    def test_invalid_json_keeps_connection_open(self, client) -> None:
        with client.websocket_connect("/ws/event") as ws:
            ws.send_text("{not json")
            assert ws.receive_json()["status"] == "rejected"
            ws.send_json(_payload(address="Gym"))
            assert ws.receive_json()["status"] == "accepted"


# ── Map view ─────────────────────────────────────────────────────────────────


class TestPoints:
    def test_list_points(self, client) -> None:
        client.post("/api/events", json=_payload())
        client.post("/api/events", json=_payload(address="Gym", status="clear", photo=None))
        body = client.get("/api/points").json()
        assert body["count"] == 2
        assert [p["address"] for p in body["points"]] == ["Library", "Gym"]
        assert body["status_counts"] == {"clear": 1, "alert": 1}

    def test_get_point(self, client) -> None:
        client.post("/api/events", json=_payload(address="Main Gate"))
        resp = client.get("/api/points/Main Gate")
        assert resp.status_code == 200
        body = resp.json()
        assert body["coordinates"] == {"latitude": 37.5820, "longitude": 127.0095}
        assert body["alert_count"] == 1

    def test_unknown_point_404(self, client) -> None:
        assert client.get("/api/points/Nowhere").status_code == 404

    def test_history_oldest_first(self, client) -> None:
        client.post("/api/events", json=_payload(photo="late", timestamp="2026-03-02T11:00:00Z"))
        client.post("/api/events", json=_payload(photo="early", timestamp="2026-03-02T08:00:00Z"))
        client.post("/api/events", json=_payload(status="clear", photo=None))
        body = client.get("/api/points/Library/history").json()
        assert body["count"] == 2
        assert [e["photo"] for e in body["entries"]] == ["early", "late"]
        assert body["entries"][0]["timestamp"] == "2026-03-02T08:00:00Z"

    def test_clear_keeps_last_photo(self, client) -> None:
        client.post("/api/events", json=_payload(photo="evidence"))
        client.post("/api/events", json=_payload(status="clear", photo=None))
        body = client.get("/api/points/Library").json()
        assert body["status"] == "clear"
        assert body["photo"] == "evidence"


# ── Statistics ───────────────────────────────────────────────────────────────


class TestStatistics:
    def test_counts_recent_alerts(self, client) -> None:
        client.post("/api/events", json=_now_payload())
        client.post("/api/events", json=_now_payload())
        client.post("/api/events", json=_now_payload(address="Gym"))
        body = client.get("/api/statistics").json()
        assert body["window_days"] == 7
        assert body["per_location_counts"] == {"Library": 2, "Gym": 1}
        assert body["total_entries"] == 3
        assert sum(body["weekday_counts"]) == 3
        assert sum(body["hour_of_day_counts"]) == 3
        assert len(body["hour_of_day_points"]) == 3

    def test_old_alerts_outside_window(self, client) -> None:
        client.post("/api/events", json=_payload(timestamp="2020-01-01T00:00:00Z"))
        body = client.get("/api/statistics").json()
        assert body["per_location_counts"] == {}

    def test_window_must_be_positive(self, client) -> None:
        assert client.get("/api/statistics", params={"window_days": 0}).status_code == 422


# ── Lifecycle ────────────────────────────────────────────────────────────────


class TestLifecycle:
    def test_health(self, client) -> None:
        client.post("/api/events", json=_payload())
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["watch_points"] == 1
        assert body["merge_policy"] == "last_applied"
        assert body["pipeline_running"] is True
        assert body["outcomes"]["accepted"] == 1
        assert {a["adapter_name"] for a in body["adapters"]} == {"notification_envelope", "flat_payload"}

    def test_seed_addresses_at_startup(self) -> None:
        with _make_client(seed_addresses=["Library", "Atlantis"]) as c:
            body = c.get("/api/points").json()
        assert [p["address"] for p in body["points"]] == ["Library"]
        assert body["points"][0]["status"] == "clear"

    def test_unreadable_history_does_not_block_startup(self) -> None:
        settings = Settings(history_backend="memory", rebuild_on_startup=True)
        services = build_services(
            settings, resolver=StaticResolver(_COORDS), history=UnlistableHistoryStore()
        )
        with TestClient(create_app(settings, services)) as c:
            assert c.get("/health").json()["watch_points"] == 0
            assert c.post("/api/events", json=_payload()).status_code == 200

    def test_rebuild_from_shared_history(self) -> None:
        settings = Settings(history_backend="memory", rebuild_on_startup=True)
        first = build_services(settings, resolver=StaticResolver(_COORDS))
        with TestClient(create_app(settings, first)) as c:
            c.post("/api/events", json=_payload())

        second = build_services(settings, resolver=StaticResolver(_COORDS), history=first.history)
        with TestClient(create_app(settings, second)) as c:
            body = c.get("/api/points/Library").json()
        assert body["status"] == "alert"
        assert body["alert_count"] == 1
