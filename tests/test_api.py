# ==============================================================================
# Tests for the HTTP Interface (api/)
# ==============================================================================
"""
Tests for the FastAPI endpoints using a memory-only store.

The app owns the store: TestClient's context runs the lifespan, which
connects it on entry and closes it on exit.
"""

from unittest.mock import patch

import pytest

from sitepulse.api.routes import TRANSPARENT_GIF
from sitepulse.core.errors import StoreError
from tests.conftest import CHROME_DESKTOP


# ==============================================================================
# Collection
# ==============================================================================


class TestCollect:
    """Tests for GET/POST /collect."""

    def test_returns_transparent_gif(self, client):
        response = client.get("/collect", params={"uid": "v-1", "url": "/home"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/gif"
        assert response.content == TRANSPARENT_GIF
        assert response.content.startswith(b"GIF89a")

    @pytest.mark.parametrize("params", [{}, {"uid": "v-1", "url": "/a", "event_type": "click"}])
    def test_no_cache_headers(self, client, params):
        response = client.get("/collect", params=params)

        assert response.headers["cache-control"] == "no-store, no-cache, must-revalidate, private"
        assert response.headers["pragma"] == "no-cache"
        assert response.headers["expires"] == "0"

    def test_event_stored(self, client, memory_store):
        client.get(
            "/collect",
            params={"uid": "v-1", "url": "/pricing", "referrer": "https://t.co/x"},
            headers={"User-Agent": CHROME_DESKTOP, "X-Forwarded-For": "198.51.100.4, 10.0.0.1"},
        )

        (event,) = memory_store.query()
        assert event.visitor_id == "v-1"
        assert event.url == "/pricing"
        assert event.referrer == "https://t.co/x"
        assert event.client_signature == CHROME_DESKTOP
        assert event.client_address == "198.51.100.4"
        assert event.event_type == "pageview"

    def test_request_without_parameters_recorded(self, client, memory_store):
        client.get("/collect")
        assert memory_store.count() == 1

    def test_post_reads_query_string(self, client, memory_store):
        response = client.post("/collect?uid=v-9&url=/exit&event_type=leave")

        assert response.status_code == 200
        (event,) = memory_store.query()
        assert (event.visitor_id, event.url, event.event_type) == ("v-9", "/exit", "leave")

    def test_store_failure_returns_json_error(self, client, memory_store):
        with patch.object(memory_store, "append", side_effect=StoreError("boom")):
            response = client.get("/collect", params={"url": "/a"})

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}


# ==============================================================================
# Reports
# ==============================================================================


class TestStats:
    """Tests for GET /api/stats."""

    def test_report_shape(self, client):
        client.get("/collect", params={"uid": "v-1", "url": "/home"})
        client.get("/collect", params={"uid": "v-2", "url": "/home"})

        response = client.get("/api/stats", params={"range": "all"})
        assert response.status_code == 200

        body = response.json()
        assert body["totalEvents"] == 2
        assert body["uniqueVisitors"] == 2
        assert body["topPages"] == [{"value": "/home", "count": 2}]
        assert body["range"]["name"] == "all"
        assert body["periodUnit"] == "day"
        assert set(body["channels"]) == {"direct", "search", "social", "referral"}

    def test_default_range_is_today(self, client):
        body = client.get("/api/stats").json()
        assert body["range"]["name"] == "today"
        assert body["periodUnit"] == "hour"

    @pytest.mark.parametrize(
        "params",
        [
            {"range": "fortnight"},
            {"range": "custom", "start": "2024-06-01"},
            {"range": "custom", "start": "2024-06-10", "end": "2024-06-01"},
        ],
    )
    def test_invalid_range_is_400(self, client, params):
        response = client.get("/api/stats", params=params)
        assert response.status_code == 400
        assert response.json()["detail"]

    def test_store_failure_is_500(self, client, memory_store):
        with patch.object(memory_store, "first_seen", side_effect=StoreError("boom")):
            response = client.get("/api/stats")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}


class TestFlow:
    """Tests for GET /api/flow."""

    def test_flow_graph(self, client):
        client.get("/collect", params={"uid": "v-1", "url": "/home", "referrer": ""})
        client.get("/collect", params={"uid": "v-1", "url": "/docs"})

        body = client.get("/api/flow").json()
        assert body["maxLayer"] == 5
        assert body["totalSessions"] == 1
        assert {"source": "Direct Entry", "target": "L1: /home", "value": 1} in body["links"]
        assert {"name": "Direct Entry"} in body["nodes"]

    def test_layers_clamped(self, client):
        assert client.get("/api/flow", params={"layers": 50}).json()["maxLayer"] == 10
        assert client.get("/api/flow", params={"layers": 0}).json()["maxLayer"] == 1

    def test_empty(self, client):
        body = client.get("/api/flow").json()
        assert body["nodes"] == []
        assert body["links"] == []


class TestVisitors:
    """Tests for GET /api/visitors."""

    def test_listing(self, client):
        client.get(
            "/collect",
            params={"uid": "v-1", "url": "/a"},
            headers={"User-Agent": CHROME_DESKTOP, "X-Forwarded-For": "198.51.100.4"},
        )

        body = client.get("/api/visitors").json()
        assert body["limit"] == 20
        assert body["addresses"] == ["198.51.100.4"]
        (visitor,) = body["visitors"]
        assert visitor["visitorId"] == "v-1"
        assert visitor["device"] == {"type": "desktop", "browser": "Chrome", "os": "Windows"}

    def test_limit_clamped(self, client):
        assert client.get("/api/visitors", params={"limit": 1000}).json()["limit"] == 100
        assert client.get("/api/visitors", params={"limit": -5}).json()["limit"] == 1


# ==============================================================================
# Data management
# ==============================================================================


class TestPurge:
    """Tests for DELETE /api/data."""

    @pytest.mark.parametrize("params", [{}, {"confirm": "yes"}, {"confirm": "delete_all_data"}])
    def test_wrong_token_leaves_data(self, client, memory_store, params):
        for i in range(3):
            client.get("/collect", params={"uid": "v-1", "url": f"/p{i}"})
        before = memory_store.query()

        response = client.delete("/api/data", params=params)

        assert response.status_code == 400
        assert memory_store.query() == before

    def test_purge_with_token(self, client, memory_store):
        for i in range(3):
            client.get("/collect", params={"uid": "v-1", "url": f"/p{i}"})

        response = client.delete("/api/data", params={"confirm": "DELETE_ALL_DATA"})

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "deleted": 3}
        assert memory_store.query() == []
        assert client.get("/api/stats", params={"range": "all"}).json()["totalEvents"] == 0


# ==============================================================================
# Health and lifecycle
# ==============================================================================


class TestHealth:
    """Tests for GET /health."""

    def test_health(self, client):
        client.get("/collect")

        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["events"] == 1
        assert body["version"]


class TestLifespan:
    """The app connects its store on startup and persists it on shutdown."""

    def test_events_persisted_on_shutdown(self, settings):
        from fastapi.testclient import TestClient

        from sitepulse.api import create_app
        from sitepulse.infrastructure.repositories import SQLiteEventRepository

        with TestClient(create_app(settings=settings)) as client:
            client.get("/collect", params={"uid": "v-1", "url": "/a"})

        data_file = settings.store.data_file_path
        assert data_file.exists()

        reloaded = SQLiteEventRepository(data_file)
        reloaded.connect()
        try:
            assert reloaded.count() == 1
        finally:
            reloaded.close()
