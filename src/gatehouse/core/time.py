# src/gatehouse/core/time.py
"""Time utilities shared by the protection services."""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], float]


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def from_timestamp(ts: float) -> datetime:
    """Convert a POSIX timestamp from an injected clock to aware UTC."""
    return datetime.fromtimestamp(ts, UTC)
