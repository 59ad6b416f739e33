"""Named periodic tasks running on the event loop.

The Scheduler owns its task registry; whoever composes the application
creates one, registers tasks on it and stops it on shutdown. Stopping a
task only prevents future runs, a run already in progress finishes.

Default schedule:
- daily review sync at 03:00 UTC
- hourly sync health check

shutdown() is the awaitable form of stop_all(): call it while the
resources a task uses (the HTTP client) are still open.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from eywa.exceptions.custom import NotConfiguredError, SyncInProgressError
from eywa.schemas.responses import SyncJobResult, TaskStatus
from eywa.schemas.reviews import SyncJobStatus, SyncJobType
from eywa.services.review_sync import ReviewSyncService, SyncOptions
from eywa.store import ReviewStore

logger = logging.getLogger(__name__)

DAILY_SYNC_TASK = "daily-review-sync"
HEALTH_CHECK_TASK = "sync-health-check"

TaskFunc = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class Schedule:
    """Fire at `minute` past every hour, or once a day at hour:minute UTC."""

    minute: int = 0
    hour: int | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.minute <= 59:
            raise ValueError(f"Invalid minute: {self.minute}")
        if self.hour is not None and not 0 <= self.hour <= 23:
            raise ValueError(f"Invalid hour: {self.hour}")

    def next_run_after(self, now: datetime) -> datetime:
        candidate = now.replace(minute=self.minute, second=0, microsecond=0)
        if self.hour is None:
            return candidate if candidate > now else candidate + timedelta(hours=1)
        candidate = candidate.replace(hour=self.hour)
        return candidate if candidate > now else candidate + timedelta(days=1)

    def __str__(self) -> str:
        hour = "*" if self.hour is None else str(self.hour)
        return f"{self.minute} {hour} * * *"


class ScheduledTask:
    def __init__(self, name: str, schedule: Schedule, func: TaskFunc):
        self.name = name
        self.schedule = schedule
        self._func = func
        self._stop = asyncio.Event()
        self.next_run_at: datetime | None = None
        self.last_run_at: datetime | None = None
        self._task = asyncio.create_task(self._loop(), name=f"scheduled:{name}")

    @property
    def running(self) -> bool:
        return not self._stop.is_set() and not self._task.done()

    def stop(self) -> None:
        self._stop.set()

    async def wait(self) -> None:
        """Wait for the loop to exit, including a run already in progress."""
        await self._task

    async def run_once(self) -> None:
        self.last_run_at = datetime.now(timezone.utc)
        try:
            await self._func()
        except Exception:
            logger.exception("Error in scheduled task '%s'", self.name)

    async def _loop(self) -> None:
        while not self._stop.is_set():
            now = datetime.now(timezone.utc)
            self.next_run_at = self.schedule.next_run_after(now)
            try:
                await asyncio.wait_for(
                    self._stop.wait(), timeout=(self.next_run_at - now).total_seconds(),
                )
            except TimeoutError:
                await self.run_once()
        self.next_run_at = None


class Scheduler:
    def __init__(self) -> None:
        self._tasks: dict[str, ScheduledTask] = {}

    def schedule(self, name: str, schedule: Schedule, func: TaskFunc) -> ScheduledTask:
        """Register a task, replacing any task already registered under `name`."""
        if existing := self._tasks.pop(name, None):
            existing.stop()
        task = ScheduledTask(name, schedule, func)
        self._tasks[name] = task
        logger.info("Scheduled task '%s' with cron: %s", name, schedule)
        return task

    def get(self, name: str) -> ScheduledTask | None:
        return self._tasks.get(name)

    def stop(self, name: str) -> bool:
        task = self._tasks.pop(name, None)
        if task is None:
            return False
        task.stop()
        logger.info("Stopped task '%s'", name)
        return True

    def stop_all(self) -> None:
        for name in list(self._tasks):
            self.stop(name)

    async def shutdown(self) -> None:
        """Stop every task and wait for in-flight runs to finish."""
        tasks = list(self._tasks.values())
        self.stop_all()
        await asyncio.gather(*(task.wait() for task in tasks))

    def status(self) -> list[TaskStatus]:
        return [
            TaskStatus(
                name=task.name,
                schedule=str(task.schedule),
                running=task.running,
                next_run_at=task.next_run_at,
                last_run_at=task.last_run_at,
            )
            for task in self._tasks.values()
        ]


def make_daily_sync(sync: ReviewSyncService) -> TaskFunc:
    async def daily_sync() -> None:
        logger.info("Starting scheduled daily review sync")
        try:
            result = await sync.run_sync_job(
                SyncOptions(triggered_by="cron", job_type=SyncJobType.scheduled)
            )
        except SyncInProgressError as exc:
            logger.warning("Skipping scheduled sync, job %s still running", exc.job_id)
            return
        except NotConfiguredError as exc:
            logger.warning("Skipping scheduled sync: %s", exc)
            return
        logger.info(
            "Daily sync completed: %d/%d hotels synced in %dms",
            result.hotels_success, result.hotels_total, result.duration_ms,
        )
        if result.hotels_failed:
            logger.warning("%d hotels failed to sync", result.hotels_failed)

    return daily_sync


def make_health_check(sync: ReviewSyncService, store: ReviewStore) -> TaskFunc:
    async def health_check() -> None:
        pending = sync.get_hotels_due_for_sync(limit=1)
        recent = store.recent_sync_jobs(limit=1)
        if recent and recent[0].status == SyncJobStatus.failed and pending:
            logger.warning(
                "Last sync job %s failed and hotels are pending. Check logs.", recent[0].id,
            )

    return health_check


def register_default_tasks(
    scheduler: Scheduler,
    sync: ReviewSyncService,
    store: ReviewStore,
    daily_sync_hour: int = 3,
    daily_sync_minute: int = 0,
    health_check_minute: int = 0,
) -> None:
    scheduler.schedule(
        DAILY_SYNC_TASK,
        Schedule(minute=daily_sync_minute, hour=daily_sync_hour),
        make_daily_sync(sync),
    )
    scheduler.schedule(
        HEALTH_CHECK_TASK,
        Schedule(minute=health_check_minute),
        make_health_check(sync, store),
    )


async def trigger_manual_sync(
    sync: ReviewSyncService,
    triggered_by: str,
    hotel_ids: list[str] | None = None,
) -> SyncJobResult:
    """Admin-triggered sync: `manual` for explicit hotels, `bulk` for everything due."""
    logger.info("Manual sync triggered by %s", triggered_by)
    return await sync.run_sync_job(
        SyncOptions(
            triggered_by=triggered_by,
            job_type=SyncJobType.manual if hotel_ids else SyncJobType.bulk,
            hotel_ids=hotel_ids,
        )
    )
