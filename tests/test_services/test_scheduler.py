import asyncio
import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from eywa.exceptions.custom import NotConfiguredError, SyncInProgressError
from eywa.schemas.responses import SyncJobResult
from eywa.schemas.reviews import Hotel, ReviewSource, SyncJobStatus, SyncJobType
from eywa.services.scheduler import (
    DAILY_SYNC_TASK,
    HEALTH_CHECK_TASK,
    Schedule,
    Scheduler,
    make_daily_sync,
    make_health_check,
    register_default_tasks,
    trigger_manual_sync,
)
from eywa.store import ReviewStore


class _Soon:
    """Fires a few milliseconds after every check."""

    def next_run_after(self, now: datetime) -> datetime:
        return now + timedelta(milliseconds=5)

    def __str__(self) -> str:
        return "soon"


def _result(**kwargs) -> SyncJobResult:
    defaults = dict(
        job_id="job1", status=SyncJobStatus.completed,
        hotels_total=0, hotels_success=0, hotels_failed=0, duration_ms=1,
    )
    return SyncJobResult(**{**defaults, **kwargs})


# --- Schedule ---


def test_hourly_schedule():
    schedule = Schedule(minute=15)
    assert schedule.next_run_after(datetime(2024, 6, 1, 12, 10, tzinfo=timezone.utc)) == datetime(
        2024, 6, 1, 12, 15, tzinfo=timezone.utc
    )
    assert schedule.next_run_after(datetime(2024, 6, 1, 12, 15, tzinfo=timezone.utc)) == datetime(
        2024, 6, 1, 13, 15, tzinfo=timezone.utc
    )
    assert str(schedule) == "15 * * * *"


def test_daily_schedule():
    schedule = Schedule(minute=0, hour=3)
    assert schedule.next_run_after(datetime(2024, 6, 1, 2, 0, tzinfo=timezone.utc)) == datetime(
        2024, 6, 1, 3, 0, tzinfo=timezone.utc
    )
    assert schedule.next_run_after(datetime(2024, 6, 30, 4, 0, tzinfo=timezone.utc)) == datetime(
        2024, 7, 1, 3, 0, tzinfo=timezone.utc
    )
    assert str(schedule) == "0 3 * * *"


def test_invalid_schedule():
    with pytest.raises(ValueError):
        Schedule(minute=60)
    with pytest.raises(ValueError):
        Schedule(minute=0, hour=24)


# --- Scheduler ---


async def test_task_runs_on_schedule():
    scheduler = Scheduler()
    func = AsyncMock()
    scheduler.schedule("tick", _Soon(), func)

    await asyncio.sleep(0.05)
    scheduler.stop_all()

    assert func.await_count >= 1


async def test_task_errors_are_logged_not_raised(caplog):
    scheduler = Scheduler()
    func = AsyncMock(side_effect=RuntimeError("boom"))
    task = scheduler.schedule("failing", _Soon(), func)

    with caplog.at_level(logging.ERROR):
        await asyncio.sleep(0.05)
    scheduler.stop_all()

    assert func.await_count >= 2
    assert task.last_run_at is not None
    assert "Error in scheduled task 'failing'" in caplog.text


async def test_stop_lets_running_job_finish():
    scheduler = Scheduler()
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def job():
        started.set()
        await release.wait()
        finished.append(True)

    task = scheduler.schedule("long", _Soon(), job)
    await started.wait()

    assert scheduler.stop("long") is True
    release.set()
    await asyncio.sleep(0.02)

    assert finished == [True]
    assert task.running is False


async def test_shutdown_waits_for_running_job():
    scheduler = Scheduler()
    started = asyncio.Event()
    finished = []

    async def job():
        started.set()
        await asyncio.sleep(0.02)
        finished.append(True)

    task = scheduler.schedule("long", _Soon(), job)
    await started.wait()

    await scheduler.shutdown()

    assert finished == [True]
    assert task.running is False
    assert scheduler.status() == []


async def test_shutdown_without_tasks():
    await Scheduler().shutdown()


async def test_schedule_replaces_same_name():
    scheduler = Scheduler()
    first = scheduler.schedule("job", Schedule(minute=0), AsyncMock())
    second = scheduler.schedule("job", Schedule(minute=30), AsyncMock())
    await asyncio.sleep(0)

    assert first.running is False
    assert scheduler.get("job") is second
    assert [s.schedule for s in scheduler.status()] == ["30 * * * *"]
    scheduler.stop_all()


async def test_stop_unknown_task():
    assert Scheduler().stop("nope") is False


async def test_register_default_tasks():
    scheduler = Scheduler()
    register_default_tasks(scheduler, Mock(), ReviewStore())
    await asyncio.sleep(0)

    status = {s.name: s for s in scheduler.status()}
    assert status[DAILY_SYNC_TASK].schedule == "0 3 * * *"
    assert status[HEALTH_CHECK_TASK].schedule == "0 * * * *"
    assert all(s.running for s in status.values())
    assert status[DAILY_SYNC_TASK].next_run_at is not None

    scheduler.stop_all()
    assert scheduler.status() == []


# --- Task bodies ---


async def test_daily_sync_runs_scheduled_job():
    sync = Mock()
    sync.run_sync_job = AsyncMock(return_value=_result(hotels_total=2, hotels_success=2))

    await make_daily_sync(sync)()

    options = sync.run_sync_job.await_args.args[0]
    assert options.job_type == SyncJobType.scheduled
    assert options.triggered_by == "cron"


async def test_daily_sync_skips_when_job_running(caplog):
    sync = Mock()
    sync.run_sync_job = AsyncMock(side_effect=SyncInProgressError("job1"))

    with caplog.at_level(logging.WARNING):
        await make_daily_sync(sync)()

    assert "still running" in caplog.text


async def test_daily_sync_skips_when_not_configured(caplog):
    sync = Mock()
    sync.run_sync_job = AsyncMock(side_effect=NotConfiguredError("Google Places"))

    with caplog.at_level(logging.WARNING):
        await make_daily_sync(sync)()

    assert "Skipping scheduled sync" in caplog.text


async def test_health_check_warns_on_failed_job_with_pending_hotels(caplog):
    store = ReviewStore()
    store.add_hotel(Hotel(id="h1", name="Hotel"))
    store.upsert_link("h1", ReviewSource.google, "p1")
    job = store.create_job(SyncJobType.scheduled, "cron")
    store.finish_job(job.id, SyncJobStatus.failed, 0, 1)

    sync = Mock()
    sync.get_hotels_due_for_sync = Mock(return_value=store.get_hotels_due_for_sync(datetime.now(timezone.utc)))

    with caplog.at_level(logging.WARNING):
        await make_health_check(sync, store)()

    assert f"Last sync job {job.id} failed" in caplog.text


async def test_manual_sync_job_types():
    sync = Mock()
    sync.run_sync_job = AsyncMock(return_value=_result())

    await trigger_manual_sync(sync, "admin-1", ["h1"])
    assert sync.run_sync_job.await_args.args[0].job_type == SyncJobType.manual

    await trigger_manual_sync(sync, "admin-1")
    options = sync.run_sync_job.await_args.args[0]
    assert options.job_type == SyncJobType.bulk
    assert options.hotel_ids is None
