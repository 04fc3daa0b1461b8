"""Content and client heuristics applied to form submissions.

Each rule is a small class so sets of patterns can be swapped or extended
without touching the guard. Rules run in list order and the first match
wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from gatehouse.core.settings import Settings
from gatehouse.models import Submission

logger = logging.getLogger(__name__)

# Fields never scanned for content: addresses and the guard's own controls.
SKIPPED_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "email",
        "your-email",
        "challenge_token",
        "challenge_answer",
        "captcha_token",
        "captcha_answer",
    }
)

SPAM_PHRASES: Final[tuple[str, ...]] = (
    "cheap viagra",
    "buy viagra",
    "cialis online",
    "pharmacy online",
    "casino winner",
    "you won $",
    "jackpot winner",
    "lottery winner",
    "easy money",
    "quick profit",
    "get rich quick",
    "make money fast",
    "guaranteed profit",
    "risk-free investment",
    "click here now",
    "act now!",
    "limited time offer",
    "special discount",
    "100% guaranteed",
    "no risk involved",
    "make $",
    "earn $",
    "win $",
    "cash prize",
)

SQL_INJECTION_MARKERS: Final[tuple[str, ...]] = (
    "pg_sleep",
    "sleep(",
    "waitfor delay",
    "union select",
    "drop table",
    "delete from",
    "insert into",
    "update set",
    "create table",
    "alter table",
    "exec(",
    "execute(",
    "or 1=1",
    "and 1=1",
    "or 128=128",
    "concat(",
    "char(",
    "ascii(",
    "benchmark(",
    "load_file(",
    "into outfile",
    "xp_cmdshell",
    "sp_executesql",
    "'; drop",
    "' or '",
    '" or "',
    "--",
    "/*",
    "*/",
)

OBSOLETE_AGENT_MARKERS: Final[tuple[str, ...]] = (
    "msie 6.0",
    "msie 7.0",
    "msie 8.0",
    "msie 9.0",
    "mozilla/4.0",
    "mozilla/3.0",
    "mozilla/2.0",
    "windows nt 5.1",
    "windows nt 5.0",
    "windows 98",
    "360se",
    "qqbrowser",
    "baidu",
    "sogouweb",
    "compatible; msie",
)

MIN_USER_AGENT_LENGTH: Final[int] = 10
MIN_TEXT_LENGTH: Final[int] = 5


@dataclass(frozen=True)
class HeuristicMatch:
    """A rule that fired, with the violation type it maps to."""

    violation: str
    detail: str


def scannable_text(submission: Submission, skipped: frozenset[str] = SKIPPED_FIELDS) -> str:
    """Join the submission's free-text fields in their original case."""
    return " ".join(
        str(value) for key, value in submission.fields.items() if key not in skipped
    )


class Heuristic:
    """Base class for submission rules."""

    id: str = ""
    name: str = ""

    def enabled(self, config: Settings) -> bool:
        return True

    def inspect(self, submission: Submission, config: Settings) -> HeuristicMatch | None:
        raise NotImplementedError


class ObsoleteBrowserRule(Heuristic):
    id = "obsolete_browser"
    name = "Obsolete or missing user agent"

    def __init__(self, markers: tuple[str, ...] = OBSOLETE_AGENT_MARKERS) -> None:
        self.markers = markers

    def enabled(self, config: Settings) -> bool:
        return config.obsolete_browser_blocking

    def inspect(self, submission: Submission, config: Settings) -> HeuristicMatch | None:
        # None means the caller had no user agent to report, not an empty header.
        if submission.user_agent is None:
            return None
        agent = submission.user_agent.strip()
        if len(agent) < MIN_USER_AGENT_LENGTH:
            return HeuristicMatch(self.id, "user agent missing or too short")
        lowered = agent.lower()
        for marker in self.markers:
            if marker in lowered:
                return HeuristicMatch(self.id, marker)
        return None


class SqlInjectionRule(Heuristic):
    id = "sql_injection"
    name = "SQL injection markers"

    def __init__(self, markers: tuple[str, ...] = SQL_INJECTION_MARKERS) -> None:
        self.markers = markers

    def enabled(self, config: Settings) -> bool:
        return config.sql_injection_protection

    def inspect(self, submission: Submission, config: Settings) -> HeuristicMatch | None:
        values = (str(v) for k, v in submission.fields.items() if k not in SKIPPED_FIELDS)
        haystack = " ".join([submission.query_string, *values]).lower()
        for marker in self.markers:
            if marker in haystack:
                return HeuristicMatch(self.id, marker)
        return None


class SpamPatternRule(Heuristic):
    id = "spam_pattern"
    name = "Known spam phrases"

    def __init__(self, phrases: tuple[str, ...] = SPAM_PHRASES) -> None:
        self.phrases = phrases

    def inspect(self, submission: Submission, config: Settings) -> HeuristicMatch | None:
        text = scannable_text(submission).lower()
        if len(text.strip()) < MIN_TEXT_LENGTH:
            return None
        for phrase in self.phrases:
            if phrase in text:
                return HeuristicMatch(self.id, phrase)
        return None


class ExcessiveCapsRule(Heuristic):
    """Flag shouting: a high share of upper-case letters in long text."""

    id = "excessive_caps"
    name = "Excessive capitalization"

    def inspect(self, submission: Submission, config: Settings) -> HeuristicMatch | None:
        text = scannable_text(submission)
        total = len(text)
        if total <= config.caps_min_length:
            return None
        upper = sum(1 for char in text if char.isupper())
        ratio = upper / total
        if ratio > config.caps_ratio:
            return HeuristicMatch(self.id, f"upper-case ratio {ratio:.2f}")
        return None


def default_heuristics() -> list[Heuristic]:
    """Return the built-in rules in evaluation order."""
    return [ObsoleteBrowserRule(), SqlInjectionRule(), SpamPatternRule(), ExcessiveCapsRule()]


def run_heuristics(
    heuristics: list[Heuristic],
    submission: Submission,
    config: Settings,
) -> HeuristicMatch | None:
    """Return the first match among the enabled rules, if any."""
    for rule in heuristics:
        if not rule.enabled(config):
            continue
        match = rule.inspect(submission, config)
        if match is not None:
            logger.debug("Heuristic %s matched: %s", rule.id, match.detail)
            return match
    return None
