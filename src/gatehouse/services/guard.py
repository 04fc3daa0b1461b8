"""Layered decision pipeline in front of forms and logins.

Gates run in a fixed order and the first rejection wins:

1. blacklist
2. defensive mode (solved challenge required)
3. decoy field
4. timing
5. rate limit
6. content heuristics

Rejections from gates 3-6 feed the violation ledger and the attack monitor,
which in turn drive blacklisting and defensive mode. Gates 1-2 only log.

Logins run gates 1-3, with an automated-client check between 2 and 3, then
the lockout check. Only failed credentials, counted by the host through
``login_failed``, escalate from there.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import TypeVar

from gatehouse.core.settings import Settings, settings
from gatehouse.core.time import Clock
from gatehouse.models import LoginAttempt, Submission
from gatehouse.services.attack_monitor import AttackMonitor
from gatehouse.services.audit import AuditLog, get_audit_log
from gatehouse.services.blacklist import ViolationLedger
from gatehouse.services.bot_defense import LoginBotDetector
from gatehouse.services.challenge import ChallengeService
from gatehouse.services.heuristics import Heuristic, default_heuristics, run_heuristics
from gatehouse.services.login_tracker import LoginAttemptTracker
from gatehouse.services.rate_limit import FormRateLimiter
from gatehouse.services.store import ExpiringStore, StoreUnavailableError, get_store

logger = logging.getLogger(__name__)

T = TypeVar("T")

MESSAGE_DENIED = "Access denied."
MESSAGE_CHALLENGE = "Please solve the security challenge to continue."
MESSAGE_REJECTED = "Your submission could not be accepted."
MESSAGE_TOO_FAST = "Please take a moment before submitting."
MESSAGE_RATE_LIMITED = "Too many submissions. Please wait before trying again."
MESSAGE_UNAVAILABLE = "Service temporarily unavailable. Please try again later."
MESSAGE_NOT_FOUND = "Not found."


@dataclass(frozen=True)
class GuardDecision:
    """Verdict for one request.

    ``message`` is safe to show to end users; ``reason`` is for logs and
    operators only.
    """

    allowed: bool
    gate: str | None = None
    reason: str = ""
    message: str = ""
    violation: str | None = None
    retry_after_seconds: int | None = None
    challenge_required: bool = False

    @classmethod
    def allow(cls) -> GuardDecision:
        return cls(allowed=True)


def _answer_present(value: str | None) -> bool:
    return value is not None and str(value).strip() != ""


class SubmissionGuard:
    """Run the gate pipeline for form submissions and login attempts."""

    def __init__(
        self,
        tracker: LoginAttemptTracker,
        ledger: ViolationLedger,
        monitor: AttackMonitor,
        challenges: ChallengeService,
        rate_limiter: FormRateLimiter,
        heuristics: list[Heuristic] | None = None,
        config: Settings | None = None,
        audit: AuditLog | None = None,
        clock: Clock | None = None,
        store: ExpiringStore | None = None,
        bots: LoginBotDetector | None = None,
    ) -> None:
        self.store = store
        self.bots = bots
        self.tracker = tracker
        self.ledger = ledger
        self.monitor = monitor
        self.challenges = challenges
        self.rate_limiter = rate_limiter
        self.heuristics = heuristics if heuristics is not None else default_heuristics()
        self._settings = config or settings
        self._audit = audit or get_audit_log()
        self._clock = clock or time.time

    # Store failure policy helpers

    def _fail_open(self, label: str, call: Callable[[], T], default: T) -> T:
        try:
            return call()
        except StoreUnavailableError as err:
            logger.warning("Store unavailable during %s, continuing: %s", label, err)
            return default

    def _unavailable(self, origin: str, gate: str, err: Exception) -> GuardDecision:
        logger.warning("Store unavailable during %s gate for %s: %s", gate, origin, err)
        return GuardDecision(
            allowed=False,
            gate="store_unavailable",
            reason=f"store unavailable at {gate} gate",
            message=MESSAGE_UNAVAILABLE,
        )

    def _record(
        self, origin: str, violation: str, user_agent: str | None, request_path: str
    ) -> None:
        """Feed a rejection into the ledger and the attack monitor."""
        self._fail_open(
            "violation recording",
            lambda: self.ledger.record(origin, violation, user_agent, request_path),
            0,
        )
        self._fail_open("attack recording", lambda: self.monitor.record_attack(origin), 0)

    def _reject(
        self,
        event_prefix: str,
        origin: str,
        gate: str,
        reason: str,
        message: str,
        violation: str | None = None,
        retry_after_seconds: int | None = None,
        challenge_required: bool = False,
    ) -> GuardDecision:
        self._audit.log_security_event(
            f"{event_prefix}_{gate.upper()}",
            f"Request blocked by {gate} gate: {origin}",
            {"ip": origin, "reason": reason},
        )
        return GuardDecision(
            allowed=False,
            gate=gate,
            reason=reason,
            message=message,
            violation=violation,
            retry_after_seconds=retry_after_seconds,
            challenge_required=challenge_required,
        )

    # Shared gates

    def _access_gates(
        self,
        event_prefix: str,
        origin: str,
        token: str | None,
        answer: str | None,
    ) -> GuardDecision | None:
        """Blacklist and defensive-mode gates; these fail closed."""
        if self._settings.ip_blacklist_enabled:
            try:
                banned = self.ledger.is_blacklisted(origin)
            except StoreUnavailableError as err:
                return self._unavailable(origin, "blacklist", err)
            if banned:
                return self._reject(
                    event_prefix, origin, "blacklist", "origin is blacklisted", MESSAGE_DENIED
                )

        if self._settings.under_attack_enabled:
            try:
                active = self.monitor.is_active()
                solved = (
                    active
                    and _answer_present(token)
                    and _answer_present(answer)
                    and self.challenges.validate(answer, token)
                )
            except StoreUnavailableError as err:
                return self._unavailable(origin, "under_attack", err)
            if active and not solved:
                return self._reject(
                    event_prefix,
                    origin,
                    "under_attack",
                    "defensive mode requires a solved challenge",
                    MESSAGE_CHALLENGE,
                    challenge_required=True,
                )
        return None

    def _decoy_gate(
        self,
        event_prefix: str,
        origin: str,
        value: str | None,
        user_agent: str | None,
        request_path: str,
    ) -> GuardDecision | None:
        if not self._settings.honeypot_enabled or not _answer_present(value):
            return None
        self._record(origin, "honeypot", user_agent, request_path)
        return self._reject(
            event_prefix, origin, "honeypot", "decoy field was filled", MESSAGE_REJECTED, "honeypot"
        )

    # Entry points

    def check_submission(self, submission: Submission) -> GuardDecision:
        """Decide whether a form submission may proceed.

        Args:
            submission: The submission with its resolved origin

        Returns:
            A decision; rejections are never raised.
        """
        origin = submission.origin
        agent = submission.user_agent
        path = submission.request_path

        blocked = self._access_gates(
            "FORM_BLOCKED", origin, submission.challenge_token, submission.challenge_answer
        )
        if blocked:
            return blocked

        blocked = self._decoy_gate(
            "FORM_BLOCKED",
            origin,
            submission.fields.get(self._settings.honeypot_field),
            agent,
            path,
        )
        if blocked:
            return blocked

        if self._settings.timing_protection and submission.started_at is not None:
            elapsed = self._clock() - submission.started_at
            if elapsed < self._settings.min_submission_seconds:
                self._record(origin, "too_fast", agent, path)
                return self._reject(
                    "FORM_BLOCKED",
                    origin,
                    "too_fast",
                    f"submitted after {elapsed:.2f}s",
                    MESSAGE_TOO_FAST,
                    "too_fast",
                )

        if not self._fail_open("rate limiting", lambda: self.rate_limiter.allow(origin), True):
            self._record(origin, "rate_limit", agent, path)
            return self._reject(
                "FORM_BLOCKED",
                origin,
                "rate_limit",
                "form rate limit exceeded",
                MESSAGE_RATE_LIMITED,
                "rate_limit",
                retry_after_seconds=self._settings.form_rate_window,
            )

        match = run_heuristics(self.heuristics, submission, self._settings)
        if match is not None:
            self._record(origin, match.violation, agent, path)
            return self._reject(
                "FORM_BLOCKED",
                origin,
                match.violation,
                match.detail,
                MESSAGE_REJECTED,
                match.violation,
            )

        return GuardDecision.allow()

    def check_login(self, login: LoginAttempt) -> GuardDecision:
        """Decide whether a login attempt may reach credential verification."""
        origin = login.origin
        blocked = self._access_gates(
            "LOGIN_BLOCKED", origin, login.challenge_token, login.challenge_answer
        )
        if blocked:
            return blocked

        if self._settings.bot_protection_enabled and self.bots is not None:
            bots = self.bots
            reason = self._fail_open("bot detection", lambda: bots.inspect(login), None)
            if reason is not None:
                return self._reject("LOGIN_BLOCKED", origin, "bot", reason, MESSAGE_NOT_FOUND)

        blocked = self._decoy_gate(
            "LOGIN_BLOCKED", origin, login.decoy_value, login.user_agent, login.request_path
        )
        if blocked:
            return blocked

        lockout = self._fail_open(
            "lockout check",
            lambda: self.tracker.check_lockout(origin, login.username, login.password),
            None,
        )
        if lockout is not None and not lockout.allowed:
            return GuardDecision(
                allowed=False,
                gate="lockout",
                reason="origin is locked out",
                message=lockout.message,
                retry_after_seconds=lockout.retry_after_seconds,
            )
        return GuardDecision.allow()

    def login_failed(
        self,
        origin: str,
        username: str = "",
        user_agent: str | None = "",
        request_path: str = "",
    ) -> int:
        """Count a failed login; a resulting lockout also counts as a violation.

        Returns:
            The attempt count, or 0 when the store could not be reached.
        """
        count = self._fail_open(
            "login failure recording",
            lambda: self.tracker.record_failure(origin, username),
            0,
        )
        if count >= self.tracker.max_attempts:
            self._record(origin, "login_lockout", user_agent, request_path)
        return count

    def login_succeeded(self, origin: str) -> None:
        """Forget failure state after a successful login or a logout."""
        self._fail_open("login success", lambda: self.tracker.clear_on_success(origin), False)

    def password_changed(self, origin: str, username: str = "") -> bool:
        """Forget failure state once the host application changes a password.

        Returns:
            Whether any failure state was removed.
        """
        return self._fail_open(
            "password change",
            lambda: self.tracker.clear_on_password_change(origin, username),
            False,
        )


def build_guard(
    config: Settings | None = None,
    store: ExpiringStore | None = None,
    audit: AuditLog | None = None,
    clock: Clock | None = None,
    heuristics: list[Heuristic] | None = None,
) -> SubmissionGuard:
    """Wire a guard and its components around one store."""
    config = config or settings
    store = store if store is not None else get_store()
    audit = audit or get_audit_log()
    clock = clock or time.time
    return SubmissionGuard(
        tracker=LoginAttemptTracker(store, config, audit),
        ledger=ViolationLedger(store, config, audit, clock),
        monitor=AttackMonitor(store, config, audit, clock),
        challenges=ChallengeService(store, config, audit),
        rate_limiter=FormRateLimiter(store, config, audit),
        heuristics=heuristics,
        config=config,
        audit=audit,
        clock=clock,
        store=store,
        bots=LoginBotDetector(store, config, audit, clock),
    )


@lru_cache(maxsize=1)
def get_guard() -> SubmissionGuard:
    """Return the process-wide guard."""
    return build_guard()
