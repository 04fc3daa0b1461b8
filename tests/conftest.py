# tests/conftest.py
from __future__ import annotations

import os
import re
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("CLEANUP_INTERVAL_SECONDS", "0")

from gatehouse.api.v1.dependencies import get_guard_dep
from gatehouse.core.settings import Settings
from gatehouse.main import app as fastapi_app
from gatehouse.models import Submission
from gatehouse.services.audit import AuditLog
from gatehouse.services.guard import SubmissionGuard, build_guard
from gatehouse.services.store import MemoryStore

# One second into a UTC minute, so attack buckets do not roll over mid-test.
START_TIME = 1_760_000_041.0
MODERN_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0 Safari/537.36"
)
ADMIN_HEADERS = {"Authorization": "Bearer test-admin-token"}
_QUESTION = re.compile(r"^What is (\d+) ([+\-*]) (\d+)\?$")


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingAudit(AuditLog):
    """Audit sink that keeps events in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def log_security_event(self, event_code, message, context=None) -> None:
        self.events.append((event_code, message, dict(context or {})))

    @property
    def codes(self) -> list[str]:
        return [code for code, _, _ in self.events]


def solve_question(question: str) -> str:
    """Compute the answer to a generated challenge question."""
    match = _QUESTION.match(question)
    assert match, question
    a, op, b = int(match.group(1)), match.group(2), int(match.group(3))
    if op == "+":
        return str(a + b)
    if op == "-":
        return str(a - b)
    return str(a * b)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def audit() -> RecordingAudit:
    return RecordingAudit()


@pytest.fixture()
def store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture()
def make_settings() -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture()
def config(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture()
def guard(
    config: Settings, store: MemoryStore, audit: RecordingAudit, clock: FakeClock
) -> SubmissionGuard:
    return build_guard(config, store, audit, clock)


@pytest.fixture()
def make_submission() -> Callable[..., Submission]:
    def _make(origin: str = "203.0.113.7", **kwargs: Any) -> Submission:
        kwargs.setdefault("fields", {"name": "Ada", "message": "Hello, I would like a quote."})
        kwargs.setdefault("user_agent", MODERN_USER_AGENT)
        kwargs.setdefault("request_path", "/contact")
        return Submission(origin=origin, **kwargs)

    return _make


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, guard: SubmissionGuard) -> Iterator[TestClient]:
    app.dependency_overrides[get_guard_dep] = lambda: guard
    try:
        with TestClient(
            app, base_url="http://test", headers={"User-Agent": MODERN_USER_AGENT}
        ) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
