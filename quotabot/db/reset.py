"""Background sweep that refills every user's quota."""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime

from quotabot.db.store import Store
from quotabot.logging import logger

DEFAULT_CHECK_INTERVAL_SECONDS = 3600


class QuotaResetScheduler:
    """Check the reset deadline on a fixed timer, independent of traffic."""

    def __init__(self, store: Store, check_interval: float = DEFAULT_CHECK_INTERVAL_SECONDS) -> None:
        self.store = store
        self.check_interval = check_interval
        self._task: asyncio.Task[None] | None = None

    def run_once(self, now: datetime | None = None) -> bool:
        try:
            return self.store.reset_limits(now)
        except Exception:
            logger.exception("limit_reset_failed")
            return False

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self.run_once()
        self._task = asyncio.create_task(self._loop(), name="quota-reset")
        logger.info("limit_reset_scheduler_started", interval=self.check_interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.check_interval)
            self.run_once()


__all__ = ["QuotaResetScheduler"]
