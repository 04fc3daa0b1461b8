"""Tests for the guarded login endpoints."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from gatehouse.api.v1.dependencies import get_credential_verifier

FORWARDED = {"X-Forwarded-For": "8.8.8.8"}
GOOD = {"username": "alice", "password": "correct-horse"}
BAD = {"username": "alice", "password": "wrong"}


class StaticVerifier:
    def verify(self, username: str, password: str) -> bool:
        return (username, password) == ("alice", "correct-horse")


@pytest.fixture()
def verifier_override(app: FastAPI, client: TestClient) -> Iterator[None]:
    app.dependency_overrides[get_credential_verifier] = StaticVerifier
    yield
    app.dependency_overrides.pop(get_credential_verifier, None)


def test_default_verifier_denies(client: TestClient) -> None:
    r = client.post("/api/v1/auth/login", json=GOOD, headers=FORWARDED)
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.usefixtures("verifier_override")
def test_valid_credentials_log_in(client: TestClient) -> None:
    r = client.post("/api/v1/auth/login", json=GOOD, headers=FORWARDED)
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"authenticated": True, "username": "alice"}


@pytest.mark.usefixtures("verifier_override")
def test_lockout_after_repeated_failures(client: TestClient) -> None:
    """Five bad passwords earn 401s, the sixth attempt is locked out."""
    for _ in range(5):
        r = client.post("/api/v1/auth/login", json=BAD, headers=FORWARDED)
        assert r.status_code == status.HTTP_401_UNAUTHORIZED

    r = client.post("/api/v1/auth/login", json=GOOD, headers=FORWARDED)
    assert r.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert r.headers["Retry-After"] == "900"
    assert "15 minutes" in r.json()["detail"]["message"]


@pytest.mark.usefixtures("verifier_override")
def test_success_resets_failures(client: TestClient, guard) -> None:
    for _ in range(4):
        client.post("/api/v1/auth/login", json=BAD, headers=FORWARDED)
    assert client.post("/api/v1/auth/login", json=GOOD, headers=FORWARDED).status_code == 200
    assert guard.tracker.attempt_count("8.8.8.8") == 0


@pytest.mark.usefixtures("verifier_override")
def test_empty_credentials_are_not_counted(client: TestClient, guard) -> None:
    r = client.post("/api/v1/auth/login", json={"username": "alice"}, headers=FORWARDED)
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    assert guard.tracker.attempt_count("8.8.8.8") == 0


@pytest.mark.usefixtures("verifier_override")
def test_filled_decoy_field_is_forbidden(client: TestClient) -> None:
    payload = {**GOOD, "website_url": "http://spam.example"}
    r = client.post("/api/v1/auth/login", json=payload, headers=FORWARDED)
    assert r.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.usefixtures("verifier_override")
def test_logout_clears_lockout(client: TestClient, guard) -> None:
    for _ in range(5):
        client.post("/api/v1/auth/login", json=BAD, headers=FORWARDED)
    assert client.post("/api/v1/auth/logout", headers=FORWARDED).json() == {"status": "ok"}
    assert not guard.tracker.is_locked("8.8.8.8")
    assert client.post("/api/v1/auth/login", json=GOOD, headers=FORWARDED).status_code == 200


@pytest.mark.usefixtures("verifier_override")
def test_scripted_clients_get_not_found(client: TestClient) -> None:
    headers = {**FORWARDED, "User-Agent": "curl/8.4.0"}
    r = client.post("/api/v1/auth/login", json=GOOD, headers=headers)
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json()["detail"]["message"] == "Not found."

    assert client.post("/api/v1/auth/login", json=GOOD, headers=FORWARDED).status_code == 200
