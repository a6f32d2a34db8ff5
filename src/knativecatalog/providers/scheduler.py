"""
Scheduler capability for provider tasks.

Providers only see two narrow interfaces:
- TaskScheduler.create_scheduled_task_runner(schedule) -> TaskRunner
- TaskRunner.run(task_id, fn) registers a named recurring coroutine

The default implementation uses APScheduler's AsyncIOScheduler. One job per
task id with max_instances=1, so ticks of the same provider never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Protocol, runtime_checkable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .config import ScheduleDefinition

logger = logging.getLogger(__name__)

TaskFn = Callable[[], Awaitable[None]]


@runtime_checkable
class TaskRunner(Protocol):
    """Registers a named, recurring, timeout-bounded coroutine."""

    async def run(self, task_id: str, fn: TaskFn) -> None:
        ...


@runtime_checkable
class TaskScheduler(Protocol):
    """Creates task runners from recurrence definitions."""

    def create_scheduled_task_runner(self, schedule: ScheduleDefinition) -> TaskRunner:
        ...


class ApschedulerTaskRunner:
    """TaskRunner registering jobs on an APScheduler AsyncIOScheduler."""

    def __init__(self, scheduler: AsyncIOScheduler, schedule: ScheduleDefinition, tz: str = "UTC"):
        self.scheduler = scheduler
        self.schedule = schedule
        self.tz = tz

    def _trigger(self):
        if self.schedule.cron is not None:
            return CronTrigger.from_crontab(self.schedule.cron, timezone=self.tz)
        return IntervalTrigger(seconds=self.schedule.frequency.total_seconds(), timezone=self.tz)

    async def run(self, task_id: str, fn: TaskFn) -> None:
        job_options = {}
        # Cron schedules fire on their own boundaries; interval ones start right
        # away unless an initial delay is configured.
        if self.schedule.cron is None or self.schedule.initial_delay is not None:
            first_run = datetime.now(timezone.utc)
            if self.schedule.initial_delay is not None:
                first_run += self.schedule.initial_delay
            job_options["next_run_time"] = first_run

        self.scheduler.add_job(
            self._run_bounded,
            trigger=self._trigger(),
            args=[task_id, fn],
            id=task_id,
            name=task_id,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **job_options,
        )
        logger.info(f"Scheduled task {task_id} ({self._describe()})")

    async def _run_bounded(self, task_id: str, fn: TaskFn) -> None:
        timeout = self.schedule.timeout.total_seconds()
        try:
            await asyncio.wait_for(fn(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Task {task_id} timed out after {timeout}s, run abandoned")

    def _describe(self) -> str:
        if self.schedule.cron is not None:
            recurrence = f"cron '{self.schedule.cron}'"
        else:
            recurrence = f"every {self.schedule.frequency.total_seconds()}s"
        return f"{recurrence}, timeout {self.schedule.timeout.total_seconds()}s"


class ApschedulerTaskScheduler:
    """TaskScheduler owning one AsyncIOScheduler for all providers."""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None, tz: str = "UTC"):
        self.tz = tz
        self.scheduler = scheduler or AsyncIOScheduler(timezone=tz)

    def create_scheduled_task_runner(self, schedule: ScheduleDefinition) -> ApschedulerTaskRunner:
        return ApschedulerTaskRunner(self.scheduler, schedule, tz=self.tz)

    def start(self) -> None:
        """Start the scheduler (must be called with a running event loop)."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info(f"Provider scheduler started with {len(self.task_ids())} task(s)")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Provider scheduler stopped")

    def task_ids(self) -> List[str]:
        return [job.id for job in self.scheduler.get_jobs()]


__all__ = [
    "TaskFn",
    "TaskRunner",
    "TaskScheduler",
    "ApschedulerTaskRunner",
    "ApschedulerTaskScheduler",
]
