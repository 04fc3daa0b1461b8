"""Detection of automated clients on the login surface.

Scripted login traffic gives itself away through tool user agents, missing
``Accept`` headers or request bursts no person produces. Origins that keep
tripping these checks are shut out for a longer, separate period.
"""

from __future__ import annotations

import logging
import time
from typing import Final

from gatehouse.core.settings import Settings, settings
from gatehouse.core.time import Clock, from_timestamp
from gatehouse.models import BotActivityRecord, LoginAttempt
from gatehouse.services.audit import AuditLog, get_audit_log
from gatehouse.services.store import ExpiringStore
from gatehouse.utils.hash import origin_key

logger = logging.getLogger(__name__)

ACCESS_PREFIX = "login_access"
ACTIVITY_PREFIX = "bot_activity"
BLOCK_PREFIX = "extended_bot_block"

ACCESS_WINDOW_SECONDS: Final[int] = 60
ACTIVITY_TTL_SECONDS: Final[int] = 3600
ACTIVITY_KEPT: Final[int] = 10
MIN_USER_AGENT_LENGTH: Final[int] = 10

BOT_AGENT_MARKERS: Final[tuple[str, ...]] = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "scan",
    "wget",
    "curl",
    "python",
    "php",
    "perl",
    "java",
    "masscan",
    "nmap",
    "nikto",
    "sqlmap",
    "gobuster",
    "dirb",
    "dirbuster",
    "wpscan",
    "nuclei",
    "httpx",
)


class LoginBotDetector:
    """Flag login requests that look automated and track repeat offenders."""

    def __init__(
        self,
        store: ExpiringStore,
        config: Settings | None = None,
        audit: AuditLog | None = None,
        clock: Clock | None = None,
        markers: tuple[str, ...] = BOT_AGENT_MARKERS,
    ) -> None:
        self._store = store
        self._settings = config or settings
        self._audit = audit or get_audit_log()
        self._clock = clock or time.time
        self.markers = markers

    def is_blocked(self, origin: str) -> bool:
        return self._store.get(origin_key(BLOCK_PREFIX, origin)) is not None

    def activity(self, origin: str) -> list[BotActivityRecord]:
        raw = self._store.get(origin_key(ACTIVITY_PREFIX, origin)) or []
        return [BotActivityRecord.model_validate(item) for item in raw]

    def _reason(self, login: LoginAttempt) -> str | None:
        agent = login.user_agent
        if agent is not None:
            lowered = agent.strip().lower()
            for marker in self.markers:
                if marker in lowered:
                    return f"automated user agent: {marker}"
            if len(lowered) < MIN_USER_AGENT_LENGTH:
                return "user agent missing or too short"

        if login.accept_headers_present is False:
            return "no accept headers"

        key = origin_key(ACCESS_PREFIX, login.origin)
        current = self._store.get(key)
        if current is not None and int(current) > self._settings.bot_login_rate_limit:
            return f"more than {self._settings.bot_login_rate_limit} login requests per minute"
        self._store.incr(key, ACCESS_WINDOW_SECONDS)
        return None

    def inspect(self, login: LoginAttempt) -> str | None:
        """Judge one login request.

        Args:
            login: The attempt, with whatever request metadata the caller has

        Returns:
            Why the request was judged automated, or None for a human-looking
            request.
        """
        if self.is_blocked(login.origin):
            return "extended bot block active"
        reason = self._reason(login)
        if reason is not None:
            self.track(login, reason)
        return reason

    def track(self, login: LoginAttempt, reason: str) -> int:
        """Remember a bot hit; too many within the hour start an extended block.

        Returns:
            Number of bot hits currently held for the origin.
        """
        origin = login.origin
        activity = self.activity(origin)
        activity.append(
            BotActivityRecord(
                reason=reason,
                timestamp=from_timestamp(self._clock()),
                user_agent=login.user_agent or "Unknown",
                method=login.method,
                request_path=login.request_path,
            )
        )
        activity = activity[-ACTIVITY_KEPT:]
        self._store.set(
            origin_key(ACTIVITY_PREFIX, origin),
            [item.model_dump(mode="json") for item in activity],
            ACTIVITY_TTL_SECONDS,
        )

        self._audit.log_security_event(
            "BOT_BLOCKED",
            "Bot/crawler blocked from login page",
            {"ip": origin, "reason": reason, "user_agent": login.user_agent or "Unknown"},
        )

        if len(activity) > self._settings.bot_activity_threshold:
            self._store.set(
                origin_key(BLOCK_PREFIX, origin), True, self._settings.bot_block_seconds
            )
            logger.warning(
                "Extended bot block for %s after %d automated requests", origin, len(activity)
            )
        return len(activity)
