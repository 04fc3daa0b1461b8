# src/gatehouse/models/submission.py
"""Inputs handed to the guard by the HTTP layer or a host application."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Submission:
    """A form submission from one origin.

    ``started_at`` is the POSIX time, in seconds, at which the form was
    rendered; ``None`` skips the timing gate. ``user_agent`` is ``None`` when
    the caller has no request headers to report, which skips the user agent
    rule; an empty string means the client sent none.
    """

    origin: str
    fields: dict[str, str] = field(default_factory=dict)
    user_agent: str | None = None
    request_path: str = ""
    query_string: str = ""
    started_at: float | None = None
    challenge_token: str | None = None
    challenge_answer: str | None = None


@dataclass(frozen=True)
class LoginAttempt:
    """Credentials presented by one origin.

    ``user_agent`` and ``accept_headers_present`` are ``None`` when the caller
    cannot see request headers; the matching bot checks are then skipped.
    """

    origin: str
    username: str
    password: str
    user_agent: str | None = None
    request_path: str = ""
    method: str = "POST"
    accept_headers_present: bool | None = None
    decoy_value: str | None = None
    challenge_token: str | None = None
    challenge_answer: str | None = None
