"""Tests for the capture sink API endpoints."""

import pytest
from fastapi.testclient import TestClient

from src.collector.app import create_app
from src.warehouse.db import count_events, fetch_events, get_connection


@pytest.fixture
def db():
    """In-memory DuckDB connection shared with the app."""
    conn = get_connection(db_path=":memory:")
    yield conn
    conn.close()


@pytest.fixture
def client(db):
    """Test client backed by an in-memory DuckDB."""
    with TestClient(create_app(conn=db)) as c:
        yield c


def _payload(**overrides) -> dict:
    payload = {
        "api_key": "phc_1",
        "event": "signup",
        "distinct_id": "user_1",
        "properties": {"plan": "pro"},
        "timestamp": "2024-01-01T12:00:00+00:00",
    }
    payload.update(overrides)
    return payload


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestCaptureEndpoint:
    def test_capture_valid_event(self, client, db):
        response = client.post("/capture/", json=_payload())
        assert response.status_code == 200
        assert response.json() == {"status": 1}
        assert count_events(db) == 1

    def test_capture_stores_properties(self, client, db):
        client.post("/capture/", json=_payload(properties={"amount": 29.99}))
        [row] = fetch_events(db)
        assert row == {
            "event": "signup",
            "distinct_id": "user_1",
            "properties": {"amount": 29.99},
        }

    def test_capture_without_timestamp(self, client, db):
        payload = _payload()
        del payload["timestamp"]
        response = client.post("/capture/", json=payload)
        assert response.status_code == 200
        assert count_events(db) == 1

    def test_capture_rejects_missing_distinct_id(self, client, db):
        payload = _payload()
        del payload["distinct_id"]
        response = client.post("/capture/", json=payload)
        assert response.status_code == 422
        assert count_events(db) == 0

    def test_capture_rejects_empty_event(self, client):
        response = client.post("/capture/", json=_payload(event=""))
        assert response.status_code == 422

    def test_same_event_twice_stored_twice(self, client, db):
        client.post("/capture/", json=_payload())
        client.post("/capture/", json=_payload())
        assert count_events(db, event="signup") == 2


class TestApiKeyRestriction:
    @pytest.fixture
    def restricted(self, db):
        with TestClient(create_app(conn=db, api_keys=["phc_allowed"])) as c:
            yield c

    def test_unknown_key_rejected(self, restricted, db):
        response = restricted.post("/capture/", json=_payload(api_key="phc_other"))
        assert response.status_code == 401
        assert count_events(db) == 0

    def test_known_key_accepted(self, restricted, db):
        response = restricted.post("/capture/", json=_payload(api_key="phc_allowed"))
        assert response.status_code == 200
        assert count_events(db) == 1


class TestOwnedConnection:
    def test_opens_database_on_startup(self, tmp_path):
        db_path = tmp_path / "captures.duckdb"
        with TestClient(create_app(db_path=db_path)) as c:
            assert c.post("/capture/", json=_payload()).status_code == 200

        conn = get_connection(db_path)
        try:
            assert count_events(conn) == 1
        finally:
            conn.close()
