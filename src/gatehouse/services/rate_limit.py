"""Fixed-window rate limiting for form submissions."""

from __future__ import annotations

import logging

from gatehouse.core.settings import Settings, settings
from gatehouse.services.audit import AuditLog, get_audit_log
from gatehouse.services.store import ExpiringStore
from gatehouse.utils.hash import origin_key

logger = logging.getLogger(__name__)

RATE_PREFIX = "form_rate"


class FormRateLimiter:
    """Allow at most ``form_rate_limit`` submissions per origin and window.

    Login failures are counted elsewhere; the two never share a counter.
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

    def allow(self, origin: str) -> bool:
        """Return True and count the submission, or False when over the limit."""
        key = origin_key(RATE_PREFIX, origin)
        current = self._store.get(key)
        if current is not None and int(current) >= self._settings.form_rate_limit:
            self._audit.log_security_event(
                "FORM_SPAM_BLOCKED",
                f"Form submission rate limit exceeded for IP {origin}",
                {
                    "ip": origin,
                    "submissions": int(current),
                    "limit": self._settings.form_rate_limit,
                    "window": self._settings.form_rate_window,
                },
            )
            logger.info("Form rate limit reached for %s", origin)
            return False

        self._store.incr(key, self._settings.form_rate_window)
        return True

    def count(self, origin: str) -> int:
        value = self._store.get(origin_key(RATE_PREFIX, origin))
        return int(value) if value is not None else 0
