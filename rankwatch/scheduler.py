# rankwatch/scheduler.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[object]]


def next_run_after(now: datetime, hours: Iterable[int]) -> datetime:
    """
    First wall-clock instant strictly after `now` whose hour is in `hours`
    and whose minute/second are zero (cron "0 h1,h2 * * *").
    """
    wanted = sorted({int(h) for h in hours if 0 <= int(h) <= 23})
    if not wanted:
        raise ValueError("schedule needs at least one hour in 0..23")

    day = now.replace(minute=0, second=0, microsecond=0)
    for offset in (0, 1):
        base = day + timedelta(days=offset)
        for h in wanted:
            candidate = base.replace(hour=h)
            if candidate > now:
                return candidate
    # unreachable: tomorrow always has a candidate
    return (day + timedelta(days=1)).replace(hour=wanted[0])


class RankingScheduler:
    """
    Background asyncio task that runs `job` at the configured hours.

    Job failures are logged and the loop keeps going; there is no overlap
    protection against a manual trigger running at the same time.
    """

    def __init__(self, job: Job, hours: List[int], clock: Callable[[], datetime] = datetime.now):
        self.job = job
        self.hours = list(hours)
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("Scheduler started (hours=%s)", self.hours)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Scheduler stopped")

    async def run_once(self) -> None:
        logger.info("Scheduled scrape: %s", self.clock().isoformat(timespec="seconds"))
        try:
            await self.job()
            logger.info("Scheduled scrape completed successfully")
        except Exception:
            logger.exception("Error during scheduled scrape")

    async def _loop(self) -> None:
        while True:
            now = self.clock()
            due = next_run_after(now, self.hours)
            delay = max(0.0, (due - now).total_seconds())
            logger.debug("Next scheduled scrape at %s (in %.0fs)", due.isoformat(), delay)
            await asyncio.sleep(delay)
            await self.run_once()
