# src/gatehouse/models/records.py
"""Records persisted in the expiring store.

Each record is serialized to JSON with ``model_dump(mode="json")`` and read
back with ``model_validate``. Expiry is never stored on the record itself;
the store's TTL is the single source of truth.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from gatehouse.core.time import utcnow


class ViolationRecord(BaseModel):
    """A single detected policy breach for one origin."""

    type: str
    timestamp: datetime = Field(default_factory=utcnow)
    user_agent: str = "Unknown"
    request_path: str = ""


class BlacklistEntry(BaseModel):
    """An origin barred from every guarded entry point until expiry."""

    origin: str
    reason: str
    created_at: datetime = Field(default_factory=utcnow)
    duration_seconds: int
    auto: bool = False
    user_agent: str = "Unknown"
    violations: list[ViolationRecord] = Field(default_factory=list)


class DefensiveModeState(BaseModel):
    """Singleton record whose presence means defensive mode is active."""

    reason: str
    activated_at: datetime = Field(default_factory=utcnow)
    duration_seconds: int
    activated_by: str = "system"
    version: int = 1


class BotActivityRecord(BaseModel):
    """One login request judged to come from an automated client."""

    reason: str
    timestamp: datetime = Field(default_factory=utcnow)
    user_agent: str = "Unknown"
    method: str = "POST"
    request_path: str = ""
