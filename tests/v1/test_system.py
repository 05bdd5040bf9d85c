"""Tests for system endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from tests.conftest import FakeClock


def test_system_config(client: TestClient) -> None:
    """Public configuration carries geometry and limits but no storage locations."""
    r = client.get("/api/v1/system/config")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert {"app", "canvas", "challenge", "rate_limit", "storage"} <= set(data)
    assert data["canvas"]["slider_track_length"] == 280
    assert data["challenge"]["max_attempts"] == 5
    assert data["challenge"]["expiry_seconds"] == 300
    assert data["rate_limit"]["per_window"] == 10
    assert "session_path" not in data["storage"]
    assert "database_url" not in data["storage"]


def test_manual_cleanup_removes_expired(client: TestClient, clock: FakeClock) -> None:
    for _ in range(3):
        client.get("/api/v1/captcha/challenge")
    clock.advance(301)
    client.get("/api/v1/captcha/challenge")

    r = client.post("/api/v1/system/cleanup")
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"cleaned": 3, "memory": 3, "durable": 0}
    assert client.get("/api/v1/captcha/status").json()["activeChallenges"] == 1
