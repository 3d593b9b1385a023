"""Tests for the /health endpoint."""


def test_health_returns_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200

    data = resp.json()
    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert "timestamp" in data


def test_health_needs_no_token(client):
    resp = client.get("/health", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 200
