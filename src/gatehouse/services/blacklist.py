"""Violation ledger with automatic and manual origin blacklisting.

Violations accumulate per origin inside a sliding window; once the window
holds ``ip_blacklist_threshold`` of them the origin is blacklisted for
``ip_blacklist_duration``. The two durations are independent: the window is
short so offenders are caught quickly, the ban is long so they stay out.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from gatehouse.core.settings import Settings, settings
from gatehouse.core.time import Clock, from_timestamp
from gatehouse.models import BlacklistEntry, ViolationRecord
from gatehouse.services.audit import AuditLog, get_audit_log
from gatehouse.services.store import ExpiringStore
from gatehouse.utils.hash import origin_key

logger = logging.getLogger(__name__)

VIOLATIONS_PREFIX = "ip_violations"
BLACKLIST_PREFIX = "ip_blacklist"


def auto_blacklist_reason(violations: list[ViolationRecord]) -> str:
    """Describe an automatic ban, listing violation types in first-seen order."""
    kinds = list(dict.fromkeys(v.type for v in violations))
    return f"Auto-blacklist: {len(violations)} violations ({', '.join(kinds)})"


class ViolationLedger:
    """Record violations and manage the blacklist built from them."""

    def __init__(
        self,
        store: ExpiringStore,
        config: Settings | None = None,
        audit: AuditLog | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._settings = config or settings
        self._audit = audit or get_audit_log()
        self._clock = clock or time.time

    def _violations(self, origin: str) -> list[ViolationRecord]:
        raw = self._store.get(origin_key(VIOLATIONS_PREFIX, origin)) or []
        return [ViolationRecord.model_validate(item) for item in raw]

    def record(
        self,
        origin: str,
        violation_type: str,
        user_agent: str | None = "",
        request_path: str = "",
    ) -> int:
        """Append a violation and blacklist the origin once the threshold is hit.

        Args:
            origin: Resolved client address
            violation_type: Short tag such as ``honeypot`` or ``rate_limit``
            user_agent: Client user agent, ``Unknown`` when empty
            request_path: Path of the offending request

        Returns:
            Number of violations currently held for the origin.
        """
        violations = self._violations(origin)
        violations.append(
            ViolationRecord(
                type=violation_type,
                timestamp=from_timestamp(self._clock()),
                user_agent=user_agent or "Unknown",
                request_path=request_path,
            )
        )
        self._store.set(
            origin_key(VIOLATIONS_PREFIX, origin),
            [v.model_dump(mode="json") for v in violations],
            self._settings.ip_violation_window,
        )

        count = len(violations)
        self._audit.log_security_event(
            "SECURITY_VIOLATION_RECORDED",
            f"Security violation '{violation_type}' recorded for IP {origin}",
            {
                "ip": origin,
                "violation_type": violation_type,
                "total_violations": count,
                "threshold": self._settings.ip_blacklist_threshold,
            },
        )

        if self._settings.ip_blacklist_enabled and count >= self._settings.ip_blacklist_threshold:
            self.auto_blacklist(origin, violations)
        return count

    def auto_blacklist(self, origin: str, violations: list[ViolationRecord]) -> BlacklistEntry:
        """Ban an origin because of its accumulated violations."""
        reason = auto_blacklist_reason(violations)
        entry = BlacklistEntry(
            origin=origin,
            reason=reason,
            created_at=from_timestamp(self._clock()),
            duration_seconds=self._settings.ip_blacklist_duration,
            auto=True,
            user_agent=violations[-1].user_agent if violations else "Unknown",
            violations=violations,
        )
        self._store.set(
            origin_key(BLACKLIST_PREFIX, origin),
            entry.model_dump(mode="json"),
            entry.duration_seconds,
        )
        self._audit.log_security_event(
            "IP_AUTO_BLACKLISTED",
            f"IP {origin} automatically blacklisted",
            {
                "ip": origin,
                "reason": reason,
                "violation_count": len(violations),
                "duration": entry.duration_seconds,
            },
        )
        logger.warning("Auto-blacklisted %s for %ss: %s", origin, entry.duration_seconds, reason)
        return entry

    def is_blacklisted(self, origin: str) -> bool:
        return self._store.get(origin_key(BLACKLIST_PREFIX, origin)) is not None

    def manual_blacklist(
        self,
        origin: str,
        reason: str,
        duration_seconds: int | None = None,
        user_agent: str = "",
    ) -> BlacklistEntry:
        """Ban an origin on operator request.

        Args:
            origin: Address to ban
            reason: Free-text explanation shown to operators
            duration_seconds: Ban length; configured duration when omitted
            user_agent: Optional user agent to keep with the entry

        Returns:
            The stored blacklist entry.
        """
        duration = duration_seconds or self._settings.ip_blacklist_duration
        entry = BlacklistEntry(
            origin=origin,
            reason=reason,
            created_at=from_timestamp(self._clock()),
            duration_seconds=duration,
            auto=False,
            user_agent=user_agent or "Unknown",
        )
        self._store.set(
            origin_key(BLACKLIST_PREFIX, origin), entry.model_dump(mode="json"), duration
        )
        self._audit.log_security_event(
            "IP_BLACKLISTED",
            f"IP {origin} manually blacklisted",
            {"ip": origin, "reason": reason, "duration": duration},
        )
        return entry

    def remove_from_blacklist(self, origin: str) -> bool:
        """Lift a ban. Returns False when the origin was not banned."""
        removed = self._store.delete(origin_key(BLACKLIST_PREFIX, origin))
        if removed:
            self._audit.log_security_event(
                "IP_REMOVED_FROM_BLACKLIST",
                f"IP {origin} removed from blacklist",
                {"ip": origin},
            )
        return removed

    def get_blacklist_details(self, origin: str) -> BlacklistEntry | None:
        raw = self._store.get(origin_key(BLACKLIST_PREFIX, origin))
        if raw is None:
            return None
        return BlacklistEntry.model_validate(raw)

    def violation_count(self, origin: str) -> int:
        return len(self._violations(origin))

    def list_blacklisted(self) -> list[BlacklistEntry]:
        """Return every live blacklist entry, newest first."""
        entries: list[BlacklistEntry] = []
        for key in self._store.keys(f"{BLACKLIST_PREFIX}:"):
            raw = self._store.get(key)
            if raw is None:
                # expired between listing and reading
                continue
            entries.append(BlacklistEntry.model_validate(raw))
        entries.sort(key=lambda entry: entry.created_at, reverse=True)
        return entries

    def blacklist_stats(self) -> dict[str, Any]:
        entries = self.list_blacklisted()
        automatic = sum(1 for entry in entries if entry.auto)
        return {
            "total_blacklisted": len(entries),
            "auto_blacklisted": automatic,
            "manual_blacklisted": len(entries) - automatic,
        }
