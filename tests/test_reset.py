"""Quota reset scheduler."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from quotabot.db.reset import QuotaResetScheduler


@pytest.mark.asyncio
async def test_start_sweeps_immediately_when_due(store):
    store.update_user("628111", limit=0)
    store.set_setting("last_reset", store.get_setting("last_reset") - timedelta(days=2))

    scheduler = QuotaResetScheduler(store, check_interval=3600)
    scheduler.start()
    try:
        assert scheduler.running is True
        assert store.get_user("628111").limit == 50
    finally:
        await scheduler.stop()
    assert scheduler.running is False


@pytest.mark.asyncio
async def test_loop_keeps_sweeping_on_interval(store):
    scheduler = QuotaResetScheduler(store, check_interval=0.01)
    calls = []

    def fake_reset(now=None):
        calls.append(now)
        return False

    store.reset_limits = fake_reset
    scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert len(calls) >= 2


def test_run_once_swallows_errors(store):
    def broken(now=None):
        raise RuntimeError("disk full")

    store.reset_limits = broken
    scheduler = QuotaResetScheduler(store)

    assert scheduler.run_once() is False


def test_run_once_not_due(store):
    store.update_user("628111", limit=1)

    assert QuotaResetScheduler(store).run_once() is False
    assert store.get_user("628111").limit == 1
