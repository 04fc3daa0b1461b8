"""Tests for store housekeeping."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from gatehouse.services.maintenance import CleanupWorker, run_cleanup
from gatehouse.services.store import StoreUnavailableError


def test_run_cleanup_purges_and_logs(store, audit, clock) -> None:
    store.set("ip_violations:a", [], 10)
    store.set("ip_violations:b", [], 1000)
    clock.advance(11)

    assert run_cleanup(store, audit) == 1
    assert audit.codes == ["IP_CLEANUP_SUCCESS"]
    assert run_cleanup(store, audit) == 0
    assert audit.codes == ["IP_CLEANUP_SUCCESS"]


@pytest.mark.asyncio
async def test_worker_runs_until_stopped() -> None:
    store = MagicMock()
    store.purge_expired.return_value = 0
    worker = CleanupWorker(store=store, interval_seconds=0.01)

    await worker.start()
    await asyncio.sleep(0.05)
    await worker.stop()

    assert worker.runs >= 1
    assert store.purge_expired.called
    assert worker._task is None


@pytest.mark.asyncio
async def test_disabled_worker_does_not_start() -> None:
    worker = CleanupWorker(store=MagicMock(), interval_seconds=0)
    await worker.start()
    assert worker._task is None
    await worker.stop()


@pytest.mark.asyncio
async def test_worker_survives_store_outage() -> None:
    store = MagicMock()
    store.purge_expired.side_effect = StoreUnavailableError("down")
    worker = CleanupWorker(store=store, interval_seconds=0.01)

    await worker.start()
    await asyncio.sleep(0.05)
    await worker.stop()

    assert store.purge_expired.call_count >= 1
    assert worker.runs == 0
