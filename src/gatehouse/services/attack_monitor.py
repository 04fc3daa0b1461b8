"""Site-wide attack detection and the defensive mode it toggles.

Attack signals are counted in one-minute UTC buckets. When a single bucket
reaches ``under_attack_threshold`` the defensive mode record is written with
``under_attack_duration`` as its TTL; every guarded entry point then demands
a solved challenge until the record expires or an operator removes it.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from gatehouse.core.settings import Settings, settings
from gatehouse.core.time import Clock, from_timestamp
from gatehouse.models import DefensiveModeState
from gatehouse.services.audit import AuditLog, get_audit_log
from gatehouse.services.store import ExpiringStore

logger = logging.getLogger(__name__)

ATTACK_COUNTER_PREFIX = "attack_counter"
DEFENSIVE_MODE_KEY = "under_attack_mode"
MODE_VERSION_KEY = "under_attack_mode_version"


class AttackMonitor:
    """Count attack signals and manage the defensive mode singleton."""

    def __init__(
        self,
        store: ExpiringStore,
        config: Settings | None = None,
        audit: AuditLog | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._settings = config or settings
        self._audit = audit or get_audit_log()
        self._clock = clock or time.time

    def _bucket_key(self) -> str:
        minute = from_timestamp(self._clock()).strftime("%Y-%m-%d-%H-%M")
        return f"{ATTACK_COUNTER_PREFIX}:{minute}"

    def record_attack(self, origin: str) -> int:
        """Count one attack signal and activate defensive mode at the threshold.

        Returns:
            The attack count of the current minute bucket.
        """
        count = self._store.incr(self._bucket_key(), self._settings.under_attack_window)
        self._audit.log_security_event(
            "ATTACK_RECORDED",
            f"Attack recorded from IP {origin}",
            {
                "ip": origin,
                "attack_count": count,
                "threshold": self._settings.under_attack_threshold,
            },
        )
        if (
            self._settings.under_attack_enabled
            and count >= self._settings.under_attack_threshold
            and not self.is_active()
        ):
            self.activate(f"automatic: {count} attacks detected")
        return count

    def activate(
        self,
        reason: str,
        duration_seconds: int | None = None,
        activated_by: str = "system",
    ) -> DefensiveModeState:
        """Turn defensive mode on.

        Args:
            reason: Why the mode was activated
            duration_seconds: How long it stays on; configured duration when omitted
            activated_by: ``system`` for automatic activation, else an operator name

        Returns:
            The stored mode record.
        """
        duration = duration_seconds or self._settings.under_attack_duration
        # outlives any single activation so versions keep increasing
        version = self._store.incr(
            MODE_VERSION_KEY, max(duration, self._settings.ip_blacklist_duration)
        )
        state = DefensiveModeState(
            reason=reason,
            activated_at=from_timestamp(self._clock()),
            duration_seconds=duration,
            activated_by=activated_by,
            version=version,
        )
        self._store.set(DEFENSIVE_MODE_KEY, state.model_dump(mode="json"), duration)
        self._audit.log_security_event(
            "UNDER_ATTACK_ACTIVATED",
            "Under attack mode activated",
            {"reason": reason, "duration": duration, "activated_by": activated_by},
        )
        logger.warning("Defensive mode activated (%s) for %ss", reason, duration)
        return state

    def deactivate(self) -> bool:
        """Turn defensive mode off. Returns False when it was not active."""
        removed = self._store.delete(DEFENSIVE_MODE_KEY)
        if removed:
            self._audit.log_security_event(
                "UNDER_ATTACK_DEACTIVATED",
                "Under attack mode deactivated",
                {},
            )
            logger.info("Defensive mode deactivated")
        return removed

    def state(self) -> DefensiveModeState | None:
        raw = self._store.get(DEFENSIVE_MODE_KEY)
        if raw is None:
            return None
        return DefensiveModeState.model_validate(raw)

    def is_active(self) -> bool:
        return self._store.get(DEFENSIVE_MODE_KEY) is not None

    def get_current_attack_count(self) -> int:
        value = self._store.get(self._bucket_key())
        return int(value) if value is not None else 0

    def statistics(self) -> dict[str, Any]:
        """Summarize the monitor for operator dashboards."""
        state = self.state()
        return {
            "is_under_attack": state is not None,
            "current_attacks": self.get_current_attack_count(),
            "attack_threshold": self._settings.under_attack_threshold,
            "mode": state.model_dump(mode="json") if state else None,
        }
