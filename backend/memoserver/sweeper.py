from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from memoserver.memo_service import Clock
from memoserver.storage import MemoStore, utc_now

logger = logging.getLogger(__name__)


class ExpirationSweeper:
    """Periodically deletes memos whose expiration time has passed."""

    def __init__(self, store: MemoStore, interval_seconds: float = 5 * 60, clock: Clock = utc_now):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.store = store
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int | None:
        now = self.clock()
        try:
            deleted = await asyncio.to_thread(self.store.delete_expired, now)
        except Exception:
            # next tick retries
            logger.exception("Error cleaning expired memos")
            return None
        logger.info("Expired memos cleaned: %d", deleted)
        return deleted

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.sweep_once()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="memo-sweeper")
        logger.info("Expiration sweeper started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Expiration sweeper stopped")
