# src/gatehouse/schemas/guard.py
"""Request and response bodies for the Gatehouse API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChallengeResponse(BaseModel):
    """A challenge question; the answer stays on the server."""

    question: str
    token: str
    difficulty: str


class FormSubmissionRequest(BaseModel):
    """Form fields plus the guard's control values."""

    fields: dict[str, str] = Field(default_factory=dict)
    started_at: float | None = Field(
        default=None, description="POSIX seconds at which the form was rendered"
    )
    challenge_token: str | None = None
    challenge_answer: str | None = None


class GuardResponse(BaseModel):
    """Outcome returned for guarded submissions."""

    allowed: bool
    message: str = ""
    challenge_required: bool = False


class LoginRequest(BaseModel):
    """Credentials for a guarded login.

    Extra keys are kept so the configured decoy field can be read back.
    """

    model_config = ConfigDict(extra="allow")

    username: str = ""
    password: str = ""
    challenge_token: str | None = None
    challenge_answer: str | None = None


class LoginResponse(BaseModel):
    authenticated: bool
    username: str


class BlacklistRequest(BaseModel):
    """Manual blacklist entry created by an operator."""

    ip: str = Field(min_length=1)
    reason: str = Field(default="Manual blacklist", min_length=1)
    duration_seconds: int | None = Field(default=None, ge=60)


class BlacklistEntryResponse(BaseModel):
    origin: str
    reason: str
    created_at: datetime
    duration_seconds: int
    auto: bool
    user_agent: str
    violation_count: int


class BlacklistStatsResponse(BaseModel):
    total_blacklisted: int
    auto_blacklisted: int
    manual_blacklisted: int


class DefensiveModeRequest(BaseModel):
    reason: str = Field(default="Manual activation", min_length=1)
    duration_seconds: int | None = Field(default=None, ge=60)
    activated_by: str = "admin"


class DefensiveModeResponse(BaseModel):
    """Current defensive mode status."""

    is_under_attack: bool
    current_attacks: int
    attack_threshold: int
    mode: dict[str, Any] | None = None


class CleanupResponse(BaseModel):
    purged: int
