"""Structured security event logging.

Every gate and escalation reports what it did through ``AuditLog``. Events
are written as a single JSON document per line on the ``gatehouse.audit``
logger so log shippers can parse them without a custom format.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

AUDIT_LOGGER_NAME = "gatehouse.audit"


class AuditLog:
    """Emit ``(event_code, message, context)`` security events."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    def log_security_event(
        self,
        event_code: str,
        message: str,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        """Record one security event.

        Args:
            event_code: Stable upper-case identifier such as ``LOGIN_LOCKOUT``
            message: Human-readable description
            context: Additional structured data; must be JSON friendly
        """
        entry = {
            "event_type": event_code,
            "message": message,
            "timestamp": datetime.now(UTC).isoformat(),
            "context": dict(context or {}),
        }
        self._logger.warning(
            "SECURITY_EVENT %s - %s",
            event_code,
            json.dumps(entry, ensure_ascii=False, default=str),
        )


_AUDIT_LOG = AuditLog()


def get_audit_log() -> AuditLog:
    """Return the shared audit sink."""
    return _AUDIT_LOG
