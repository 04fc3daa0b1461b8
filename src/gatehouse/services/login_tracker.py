"""Per-origin failed login counting and temporary lockout."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from gatehouse.core.settings import Settings, settings
from gatehouse.services.audit import AuditLog, get_audit_log
from gatehouse.services.store import ExpiringStore
from gatehouse.utils.hash import origin_key

logger = logging.getLogger(__name__)

ATTEMPTS_PREFIX = "login_attempts"
LOCKOUT_PREFIX = "lockout"
LOCKOUT_MESSAGE = "Too many failed login attempts. Try again in {minutes} minutes."


@dataclass(frozen=True)
class LockoutDecision:
    """Outcome of a lockout check for one login attempt."""

    allowed: bool
    message: str = ""
    retry_after_seconds: int = 0


def lockout_message(remaining_seconds: int) -> str:
    """Return the user-facing lockout text for the remaining duration."""
    minutes = max(1, math.ceil(remaining_seconds / 60))
    return LOCKOUT_MESSAGE.format(minutes=minutes)


class LoginAttemptTracker:
    """Count failed logins per origin and lock the origin out at a threshold.

    The username is reported in audit events but never becomes part of a
    store key, so rotating usernames from one address does not reset the
    counter.
    """

    def __init__(
        self,
        store: ExpiringStore,
        config: Settings | None = None,
        audit: AuditLog | None = None,
    ) -> None:
        self._store = store
        self._settings = config or settings
        self._audit = audit or get_audit_log()

    @property
    def max_attempts(self) -> int:
        return self._settings.login_max_attempts

    @property
    def lockout_seconds(self) -> int:
        return self._settings.login_lockout_seconds

    def record_failure(self, origin: str, username: str = "") -> int:
        """Register one failed login and lock the origin out when due.

        Args:
            origin: Resolved client address
            username: Username that was attempted, for the audit trail only

        Returns:
            The attempt count after this failure.
        """
        count = self._store.incr(origin_key(ATTEMPTS_PREFIX, origin), self.lockout_seconds)
        if count >= self.max_attempts:
            self._store.set(origin_key(LOCKOUT_PREFIX, origin), True, self.lockout_seconds)
            self._audit.log_security_event(
                "LOGIN_LOCKOUT",
                f"IP {origin} locked out after {count} failed login attempts",
                {
                    "ip": origin,
                    "attempts": count,
                    "lockout_duration": self.lockout_seconds,
                    "username": username,
                },
            )
        return count

    def check_lockout(self, origin: str, username: str, password: str) -> LockoutDecision:
        """Reject the attempt while the origin is locked out.

        Empty credentials pass through untouched; the credential check
        downstream reports those.
        """
        if not username or not password:
            return LockoutDecision(allowed=True)

        remaining = self._store.ttl(origin_key(LOCKOUT_PREFIX, origin))
        if remaining is None:
            return LockoutDecision(allowed=True)

        return LockoutDecision(
            allowed=False,
            message=lockout_message(remaining),
            retry_after_seconds=remaining,
        )

    def is_locked(self, origin: str) -> bool:
        return self._store.get(origin_key(LOCKOUT_PREFIX, origin)) is not None

    def attempt_count(self, origin: str) -> int:
        value = self._store.get(origin_key(ATTEMPTS_PREFIX, origin))
        return int(value) if value is not None else 0

    def clear_on_success(self, origin: str) -> bool:
        """Forget all failure state for an origin.

        Returns:
            True if a counter or lockout flag was removed.
        """
        removed_counter = self._store.delete(origin_key(ATTEMPTS_PREFIX, origin))
        removed_flag = self._store.delete(origin_key(LOCKOUT_PREFIX, origin))
        return removed_counter or removed_flag

    def clear_on_password_change(self, origin: str, username: str = "") -> bool:
        """Clear failure state after a server-side password change."""
        removed = self.clear_on_success(origin)
        self._audit.log_security_event(
            "LOGIN_ATTEMPTS_CLEARED",
            f"Login attempts cleared for IP {origin} after password change",
            {"ip": origin, "username": username},
        )
        logger.info("Cleared login failure state for %s", origin)
        return removed
