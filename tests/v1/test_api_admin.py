"""Tests for the administrative endpoints."""

from __future__ import annotations

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from gatehouse.core.settings import settings
from tests.conftest import ADMIN_HEADERS


def test_admin_requires_token(client: TestClient) -> None:
    assert client.get("/api/v1/admin/blacklist").status_code == status.HTTP_401_UNAUTHORIZED
    wrong = {"Authorization": "Bearer nope"}
    assert client.get("/api/v1/admin/blacklist", headers=wrong).status_code == 401


def test_admin_disabled_without_configured_token(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "admin_token", None)
    r = client.get("/api/v1/admin/blacklist", headers=ADMIN_HEADERS)
    assert r.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_blacklist_lifecycle(client: TestClient) -> None:
    """Operators can add, inspect, count and remove blacklist entries."""
    r = client.post(
        "/api/v1/admin/blacklist",
        json={"ip": "8.8.4.4", "reason": "abuse report", "duration_seconds": 7200},
        headers=ADMIN_HEADERS,
    )
    assert r.status_code == status.HTTP_201_CREATED
    assert r.json()["auto"] is False
    assert r.json()["duration_seconds"] == 7200

    listing = client.get("/api/v1/admin/blacklist", headers=ADMIN_HEADERS).json()
    assert [entry["origin"] for entry in listing] == ["8.8.4.4"]

    details = client.get("/api/v1/admin/blacklist/8.8.4.4", headers=ADMIN_HEADERS).json()
    assert details["reason"] == "abuse report"

    stats = client.get("/api/v1/admin/blacklist-stats", headers=ADMIN_HEADERS).json()
    assert stats == {"total_blacklisted": 1, "auto_blacklisted": 0, "manual_blacklisted": 1}

    r = client.delete("/api/v1/admin/blacklist", params={"ip": "8.8.4.4"}, headers=ADMIN_HEADERS)
    assert r.json() == {"removed": True}
    r = client.delete("/api/v1/admin/blacklist", params={"ip": "8.8.4.4"}, headers=ADMIN_HEADERS)
    assert r.status_code == status.HTTP_404_NOT_FOUND
    r = client.get("/api/v1/admin/blacklist/8.8.4.4", headers=ADMIN_HEADERS)
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_blacklist_rejects_invalid_ip(client: TestClient) -> None:
    r = client.post("/api/v1/admin/blacklist", json={"ip": "not-an-ip"}, headers=ADMIN_HEADERS)
    assert r.status_code == 422


def test_defensive_mode_toggle(client: TestClient) -> None:
    r = client.post(
        "/api/v1/admin/defensive-mode",
        json={"reason": "incident 42", "duration_seconds": 600},
        headers=ADMIN_HEADERS,
    )
    body = r.json()
    assert body["is_under_attack"] is True
    assert body["mode"]["reason"] == "incident 42"
    assert body["mode"]["activated_by"] == "admin"

    status_body = client.get("/api/v1/admin/defensive-mode", headers=ADMIN_HEADERS).json()
    assert status_body["is_under_attack"] is True

    r = client.delete("/api/v1/admin/defensive-mode", headers=ADMIN_HEADERS)
    assert r.json()["is_under_attack"] is False


def test_clear_lockout(client: TestClient, guard) -> None:
    for _ in range(5):
        guard.login_failed("8.8.8.8", "alice")
    r = client.delete("/api/v1/admin/lockouts/8.8.8.8", headers=ADMIN_HEADERS)
    assert r.json() == {"cleared": True}
    assert not guard.tracker.is_locked("8.8.8.8")


def test_cleanup_purges_expired_rows(client: TestClient, store, clock) -> None:
    store.set("ip_violations:x", [], 10)
    clock.advance(11)
    r = client.post("/api/v1/admin/cleanup", headers=ADMIN_HEADERS)
    assert r.json() == {"purged": 1}
