"""
Weekly report scheduler.

Generates the weekly report once at startup and then every Monday at
00:00 UTC. Runs inside the application's event loop and is started/stopped
by the FastAPI lifespan; the manual ``/reports/weekly/generate`` endpoint
stays available either way.

Set ``ENABLE_WEEKLY_REPORTS_SCHEDULER=false`` (or ``0``) to disable it.
"""
import asyncio
import logging
import os
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set

from analysis.periods import next_monday_midnight

logger = logging.getLogger("mood-api.scheduler")

WEEK_SECONDS = 7 * 24 * 60 * 60


class SchedulerState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    EXECUTING = "executing"


def scheduler_enabled(flag: Optional[str] = None) -> bool:
    """Enabled unless the flag is explicitly ``false`` or ``0``."""
    if flag is None:
        flag = os.getenv("ENABLE_WEEKLY_REPORTS_SCHEDULER")
    if flag is None:
        return True
    return flag.strip().lower() not in ("false", "0")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeeklyReportScheduler:
    """
    One-shot timer to the next Monday, then a fixed 7 day cadence.

    ``job`` is awaited on every tick; its failures are logged and never stop
    the schedule.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        clock: Callable[[], datetime] = _utc_now,
        enabled: Optional[bool] = None,
    ):
        self._job = job
        self._clock = clock
        self._enabled = scheduler_enabled() if enabled is None else enabled
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self.state = SchedulerState.IDLE
        self.next_run_at: Optional[datetime] = None

    @property
    def timer(self) -> Optional[asyncio.TimerHandle]:
        return self._timer

    def start(self) -> None:
        """Must be called from inside the running event loop."""
        if not self._enabled:
            logger.info("Weekly reports scheduler disabled by configuration")
            return
        if self.state != SchedulerState.IDLE:
            logger.warning(f"Scheduler already started (state={self.state.value})")
            return

        self._loop = asyncio.get_running_loop()

        # run once at startup so a fresh deploy does not wait until Monday
        self._spawn()

        now = self._clock()
        self.next_run_at = next_monday_midnight(now)
        delay = max(0.0, (self.next_run_at - now).total_seconds())
        self._timer = self._loop.call_later(delay, self._on_tick)
        self.state = SchedulerState.SCHEDULED
        logger.info(f"Weekly reports scheduler enabled. Next run: {self.next_run_at.isoformat()}")

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.next_run_at = None
        self.state = SchedulerState.IDLE
        logger.info("Weekly reports scheduler stopped")

    def _on_tick(self) -> None:
        self._spawn()
        self._arm(WEEK_SECONDS)

    def _arm(self, delay: float) -> None:
        if self.state == SchedulerState.IDLE or self._loop is None:
            return
        self._timer = self._loop.call_later(delay, self._on_tick)
        self.next_run_at = self._clock() + timedelta(seconds=delay)

    def _spawn(self) -> None:
        task = asyncio.ensure_future(self.run_once(), loop=self._loop)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run_once(self) -> None:
        self.state = SchedulerState.EXECUTING
        try:
            logger.info("Generating scheduled weekly report...")
            report = await self._job()
            report_id = getattr(report, "report_id", None)
            logger.info(f"Scheduled weekly report generated: {report_id}")
        except Exception as e:
            logger.exception(f"Scheduled weekly report failed: {e}")
        finally:
            if self.state == SchedulerState.EXECUTING:
                self.state = SchedulerState.SCHEDULED if self._timer is not None else SchedulerState.IDLE
