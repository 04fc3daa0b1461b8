"""Periodic housekeeping for the expiring store."""

from __future__ import annotations

import asyncio
import logging

from gatehouse.core.settings import settings
from gatehouse.services.audit import AuditLog, get_audit_log
from gatehouse.services.store import ExpiringStore, StoreUnavailableError, get_store

logger = logging.getLogger(__name__)


def run_cleanup(store: ExpiringStore, audit: AuditLog | None = None) -> int:
    """Drop expired rows now instead of waiting for them to be touched.

    Redis evicts on its own and always reports 0.

    Returns:
        Number of rows removed.
    """
    purged = store.purge_expired()
    if purged:
        (audit or get_audit_log()).log_security_event(
            "IP_CLEANUP_SUCCESS",
            f"Removed {purged} expired entries",
            {"purged": purged},
        )
    return purged


class CleanupWorker:
    """Runs ``run_cleanup`` on a fixed interval in the background."""

    def __init__(
        self,
        store: ExpiringStore | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        self.store = store if store is not None else get_store()
        self.interval = float(
            interval_seconds if interval_seconds is not None else settings.cleanup_interval_seconds
        )
        self.runs = 0
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def enabled(self) -> bool:
        return self.interval > 0

    async def start(self) -> None:
        """Start the background cleanup loop."""
        if not self.enabled:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background cleanup loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                purged = await asyncio.to_thread(run_cleanup, self.store)
                self.runs += 1
                if purged:
                    logger.info("CleanupWorker purged %d expired entries", purged)
            except StoreUnavailableError as e:
                logger.warning("CleanupWorker could not reach the store: %s", e)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except TimeoutError:
                continue
