"""Tests for the violation ledger and blacklist."""

from __future__ import annotations

import pytest

from gatehouse.services.blacklist import ViolationLedger
from gatehouse.services.store import MemoryStore


@pytest.fixture()
def ledger(store: MemoryStore, config, audit, clock) -> ViolationLedger:
    return ViolationLedger(store, config, audit, clock)


def test_blacklists_exactly_at_threshold(ledger: ViolationLedger, audit) -> None:
    """Four violations are tolerated, the fifth bans the origin."""
    for _ in range(4):
        ledger.record("203.0.113.9", "honeypot")
    assert not ledger.is_blacklisted("203.0.113.9")

    assert ledger.record("203.0.113.9", "honeypot") == 5
    assert ledger.is_blacklisted("203.0.113.9")
    assert "IP_AUTO_BLACKLISTED" in audit.codes


def test_auto_blacklist_reason_lists_distinct_types(ledger: ViolationLedger) -> None:
    for kind in ["honeypot", "honeypot", "rate_limit", "too_fast", "honeypot"]:
        ledger.record("203.0.113.9", kind, user_agent="curl/8.0")

    entry = ledger.get_blacklist_details("203.0.113.9")
    assert entry is not None
    assert entry.reason == "Auto-blacklist: 5 violations (honeypot, rate_limit, too_fast)"
    assert entry.auto is True
    assert entry.duration_seconds == 86_400
    assert len(entry.violations) == 5
    assert entry.violations[0].user_agent == "curl/8.0"


def test_blacklist_expires(ledger: ViolationLedger, clock) -> None:
    ledger.manual_blacklist("203.0.113.9", "abuse report", duration_seconds=3600)
    clock.advance(3599)
    assert ledger.is_blacklisted("203.0.113.9")
    clock.advance(1)
    assert not ledger.is_blacklisted("203.0.113.9")


def test_violations_expire_with_window(ledger: ViolationLedger, clock) -> None:
    """Violations older than the window no longer count toward a ban."""
    for _ in range(4):
        ledger.record("203.0.113.9", "spam_pattern")
    clock.advance(3601)
    assert ledger.violation_count("203.0.113.9") == 0
    assert ledger.record("203.0.113.9", "spam_pattern") == 1
    assert not ledger.is_blacklisted("203.0.113.9")


def test_disabled_blacklist_only_records(store, make_settings, audit, clock) -> None:
    ledger = ViolationLedger(store, make_settings(ip_blacklist_enabled=False), audit, clock)
    for _ in range(6):
        ledger.record("203.0.113.9", "honeypot")
    assert ledger.violation_count("203.0.113.9") == 6
    assert not ledger.is_blacklisted("203.0.113.9")


def test_manual_blacklist_and_removal(ledger: ViolationLedger, audit) -> None:
    entry = ledger.manual_blacklist("198.51.100.4", "manual review")
    assert entry.auto is False
    assert entry.duration_seconds == 86_400
    assert audit.codes[-1] == "IP_BLACKLISTED"

    assert ledger.remove_from_blacklist("198.51.100.4") is True
    assert audit.codes[-1] == "IP_REMOVED_FROM_BLACKLIST"
    assert ledger.remove_from_blacklist("198.51.100.4") is False
    assert ledger.get_blacklist_details("198.51.100.4") is None


def test_listing_and_stats(ledger: ViolationLedger, clock) -> None:
    ledger.manual_blacklist("198.51.100.1", "first")
    clock.advance(5)
    for _ in range(5):
        ledger.record("198.51.100.2", "rate_limit")

    entries = ledger.list_blacklisted()
    assert [entry.origin for entry in entries] == ["198.51.100.2", "198.51.100.1"]
    assert ledger.blacklist_stats() == {
        "total_blacklisted": 2,
        "auto_blacklisted": 1,
        "manual_blacklisted": 1,
    }


def test_ipv6_spellings_hit_the_same_entry(ledger: ViolationLedger) -> None:
    """An address banned in expanded form is removable in compressed form."""
    for _ in range(5):
        ledger.record("2001:4860:0:0::8888", "honeypot")
    assert ledger.is_blacklisted("2001:4860::8888")
    assert ledger.remove_from_blacklist("2001:4860::8888") is True
    assert not ledger.is_blacklisted("2001:4860:0:0::8888")
