"""Tests for automated client detection on login."""

from __future__ import annotations

import pytest

from gatehouse.models import LoginAttempt
from gatehouse.services.bot_defense import LoginBotDetector
from gatehouse.services.store import MemoryStore
from tests.conftest import MODERN_USER_AGENT

ORIGIN = "203.0.113.7"


@pytest.fixture()
def bots(store: MemoryStore, config, audit, clock) -> LoginBotDetector:
    return LoginBotDetector(store, config, audit, clock)


def _login(**kwargs) -> LoginAttempt:
    kwargs.setdefault("user_agent", MODERN_USER_AGENT)
    kwargs.setdefault("accept_headers_present", True)
    return LoginAttempt(origin=ORIGIN, username="admin", password="pw", **kwargs)


def test_browser_requests_pass(bots: LoginBotDetector, audit) -> None:
    assert bots.inspect(_login()) is None
    assert bots.activity(ORIGIN) == []
    assert "BOT_BLOCKED" not in audit.codes


@pytest.mark.parametrize(
    "agent",
    ["curl/8.4.0", "python-requests/2.32", "sqlmap/1.8#stable", "Googlebot/2.1 (+http://x)"],
)
def test_tool_user_agents_are_flagged(bots: LoginBotDetector, audit, agent: str) -> None:
    reason = bots.inspect(_login(user_agent=agent))
    assert reason is not None and reason.startswith("automated user agent")
    assert "BOT_BLOCKED" in audit.codes


def test_short_or_empty_user_agent_is_flagged(bots: LoginBotDetector) -> None:
    assert bots.inspect(_login(user_agent="")) == "user agent missing or too short"
    assert bots.inspect(_login(user_agent="Mozilla")) == "user agent missing or too short"


def test_missing_accept_headers_are_flagged(bots: LoginBotDetector) -> None:
    assert bots.inspect(_login(accept_headers_present=False)) == "no accept headers"


def test_unknown_request_metadata_is_not_judged(bots: LoginBotDetector) -> None:
    attempt = LoginAttempt(origin=ORIGIN, username="admin", password="pw")
    assert bots.inspect(attempt) is None


def test_login_bursts_are_flagged(bots: LoginBotDetector, clock) -> None:
    """Sixteen requests in a minute pass, the seventeenth does not."""
    for _ in range(16):
        assert bots.inspect(_login()) is None
    assert bots.inspect(_login()) == "more than 15 login requests per minute"

    clock.advance(61)
    assert bots.inspect(_login()) is None


def test_repeat_offenders_get_an_extended_block(
    bots: LoginBotDetector, config, clock
) -> None:
    """After more than three bot hits even a browser is turned away."""
    for _ in range(3):
        bots.inspect(_login(user_agent="curl/8.4.0"))
    assert not bots.is_blocked(ORIGIN)

    bots.inspect(_login(user_agent="curl/8.4.0"))
    assert bots.is_blocked(ORIGIN)
    assert bots.inspect(_login()) == "extended bot block active"
    assert len(bots.activity(ORIGIN)) == 4

    clock.advance(config.bot_block_seconds)
    assert not bots.is_blocked(ORIGIN)


def test_activity_keeps_the_latest_ten(bots: LoginBotDetector) -> None:
    for index in range(12):
        bots.track(_login(request_path=f"/login/{index}"), "manual")
    activity = bots.activity(ORIGIN)
    assert len(activity) == 10
    assert activity[0].request_path == "/login/2"
    assert activity[-1].method == "POST"
