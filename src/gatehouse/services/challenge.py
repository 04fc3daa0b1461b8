"""Single-use arithmetic challenges.

A challenge is a short math question whose answer is kept server-side under
a random token. Clients echo the token together with their answer; a
correct answer consumes the token.
"""

from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass
from typing import Final

from gatehouse.core.settings import Difficulty, Settings, settings
from gatehouse.services.audit import AuditLog, get_audit_log
from gatehouse.services.store import ExpiringStore

logger = logging.getLogger(__name__)

TOKEN_PREFIX: Final[str] = "captcha_token"
ATTEMPTS_PREFIX: Final[str] = "captcha_attempts"
TOKEN_BYTES: Final[int] = 32
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,128}$")

# difficulty -> (first operand range, second operand range, operators)
_DIFFICULTY_RULES: Final[dict[str, tuple[tuple[int, int], tuple[int, int], tuple[str, ...]]]] = {
    "easy": ((1, 10), (1, 10), ("+",)),
    "medium": ((5, 20), (1, 15), ("+", "-")),
    "hard": ((10, 50), (2, 12), ("+", "*")),
}

_rng = secrets.SystemRandom()


@dataclass(frozen=True)
class Challenge:
    """A question handed to a client. The answer never leaves the server."""

    question: str
    token: str
    difficulty: str


def _solve(a: int, op: str, b: int) -> int:
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    return a * b


class ChallengeService:
    """Issue and validate arithmetic challenges backed by the store."""

    def __init__(
        self,
        store: ExpiringStore,
        config: Settings | None = None,
        audit: AuditLog | None = None,
    ) -> None:
        self._store = store
        self._settings = config or settings
        self._audit = audit or get_audit_log()

    def generate(self, difficulty: Difficulty | str | None = None) -> Challenge:
        """Create a challenge and remember its answer.

        Args:
            difficulty: ``easy``, ``medium`` or ``hard``; the configured level
                when omitted, ``medium`` when unknown

        Returns:
            The question and the token the client must send back.
        """
        level = difficulty or self._settings.captcha_difficulty
        if level not in _DIFFICULTY_RULES:
            level = "medium"
        first, second, operators = _DIFFICULTY_RULES[level]

        a = _rng.randint(*first)
        b = _rng.randint(*second)
        op = _rng.choice(operators)
        answer = _solve(a, op, b)

        token = secrets.token_urlsafe(TOKEN_BYTES)
        self._store.set(f"{TOKEN_PREFIX}:{token}", str(answer), self._settings.captcha_token_ttl)
        return Challenge(question=f"What is {a} {op} {b}?", token=token, difficulty=level)

    def validate(self, answer: str | int | None, token: str | None) -> bool:
        """Check an answer against the token's stored value.

        A correct answer consumes the token. A wrong answer leaves it usable
        unless ``captcha_max_attempts`` wrong answers have been given.
        """
        if not token or not _TOKEN_PATTERN.match(token):
            self._audit.log_security_event(
                "CAPTCHA_INVALID_TOKEN", "Malformed challenge token", {}
            )
            return False

        key = f"{TOKEN_PREFIX}:{token}"
        expected = self._store.get(key)
        if expected is None:
            self._audit.log_security_event(
                "CAPTCHA_INVALID_TOKEN",
                "Challenge token expired or unknown",
                {"token_prefix": token[:8]},
            )
            return False

        given = "" if answer is None else str(answer).strip()
        if given == str(expected).strip():
            self._store.delete(key)
            self._store.delete(f"{ATTEMPTS_PREFIX}:{token}")
            self._audit.log_security_event(
                "CAPTCHA_VALIDATED", "Challenge answered correctly", {}
            )
            return True

        self._audit.log_security_event(
            "CAPTCHA_FAILED",
            "Incorrect challenge answer",
            {"token_prefix": token[:8]},
        )
        self._count_wrong_answer(token)
        return False

    def _count_wrong_answer(self, token: str) -> None:
        cap = self._settings.captcha_max_attempts
        if cap <= 0:
            return
        wrong = self._store.incr(f"{ATTEMPTS_PREFIX}:{token}", self._settings.captcha_token_ttl)
        if wrong >= cap:
            self._store.delete(f"{TOKEN_PREFIX}:{token}")
            self._store.delete(f"{ATTEMPTS_PREFIX}:{token}")
            logger.info("Challenge token retired after %d wrong answers", wrong)
