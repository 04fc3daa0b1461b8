"""Tests for the form rate limiter."""

from __future__ import annotations

from gatehouse.services.rate_limit import FormRateLimiter


def test_limit_and_window(store, make_settings, audit, clock) -> None:
    """Submissions beyond the limit are refused until the window passes."""
    limiter = FormRateLimiter(store, make_settings(form_rate_limit=3, form_rate_window=30), audit)
    assert [limiter.allow("203.0.113.9") for _ in range(4)] == [True, True, True, False]
    assert audit.codes == ["FORM_SPAM_BLOCKED"]
    assert limiter.count("203.0.113.9") == 3

    clock.advance(31)
    assert limiter.allow("203.0.113.9") is True


def test_origins_are_independent(store, config, audit) -> None:
    limiter = FormRateLimiter(store, config, audit)
    for _ in range(5):
        limiter.allow("203.0.113.9")
    assert limiter.allow("203.0.113.9") is False
    assert limiter.allow("203.0.113.10") is True
