from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # no DATABASE_URL / REDIS_URL under test
    assert data["checks"] == {"database": "not_configured", "redis": "not_configured"}


def test_ready_without_database(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200
