import asyncio
import pytest
from datetime import datetime, timezone
from ingestion.base import RunResult
from ingestion.scheduler import JOB_ID, PropertyEtlJob, PropertySyncScheduler
from core.config import Settings


class BlockingJob:
    """Job that waits on an event so tests can overlap triggers"""

    def __init__(self, result: RunResult = RunResult(processed=3, saved=3, errors=0)):
        self.result = result
        self.calls = 0
        self.release = asyncio.Event()
        self.started = asyncio.Event()

    async def __call__(self) -> RunResult:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return self.result


@pytest.mark.asyncio
async def test_manual_trigger_joins_inflight_run():
    job = BlockingJob()
    scheduler = PropertySyncScheduler(job)

    first = asyncio.create_task(scheduler.trigger())
    await job.started.wait()
    second = asyncio.create_task(scheduler.trigger())
    await asyncio.sleep(0)

    assert scheduler.is_running is True
    job.release.set()
    results = await asyncio.gather(first, second)

    assert job.calls == 1
    assert results[0] == results[1] == job.result
    assert scheduler.is_running is False


@pytest.mark.asyncio
async def test_scheduled_trigger_dropped_during_run():
    job = BlockingJob()
    scheduler = PropertySyncScheduler(job)

    manual = asyncio.create_task(scheduler.trigger())
    await job.started.wait()

    assert await scheduler.run_scheduled() is None

    job.release.set()
    await manual
    assert job.calls == 1


@pytest.mark.asyncio
async def test_scheduled_trigger_runs_when_idle():
    job = BlockingJob()
    job.release.set()
    scheduler = PropertySyncScheduler(job)

    result = await scheduler.run_scheduled()

    assert result == job.result
    assert job.calls == 1


@pytest.mark.asyncio
async def test_last_run_state_tracks_success(fixed_clock):
    job = BlockingJob()
    job.release.set()
    scheduler = PropertySyncScheduler(job, clock=fixed_clock)

    assert scheduler.last_run_at is None
    await scheduler.trigger()

    assert scheduler.last_run_at == fixed_clock()
    assert scheduler.last_success_at == fixed_clock()
    assert scheduler.last_result == job.result


@pytest.mark.asyncio
async def test_failed_run_keeps_previous_success():
    times = iter([datetime(2024, 6, 1), datetime(2024, 6, 2)])
    job = BlockingJob()
    job.release.set()
    scheduler = PropertySyncScheduler(job, clock=lambda: next(times))

    await scheduler.trigger()
    job.result = RunResult(processed=5, saved=2, errors=1)
    result = await scheduler.trigger()

    assert result.success is False
    assert scheduler.last_run_at == datetime(2024, 6, 2)
    assert scheduler.last_success_at == datetime(2024, 6, 1)
    assert scheduler.last_result.errors == 1


@pytest.mark.asyncio
async def test_job_exception_becomes_error_result():
    async def broken_job():
        raise RuntimeError("session factory unavailable")

    scheduler = PropertySyncScheduler(broken_job)
    result = await scheduler.trigger()

    assert result == RunResult(processed=0, saved=0, errors=1)
    assert scheduler.last_success_at is None


@pytest.mark.asyncio
async def test_start_and_stop():
    job = BlockingJob()
    scheduler = PropertySyncScheduler(job, schedule="*/5 * * * *")

    assert scheduler.is_started is False
    assert scheduler.next_run_time is None

    handle = scheduler.start()
    try:
        assert handle.id == JOB_ID
        assert scheduler.is_started is True
        assert scheduler.next_run_time is not None
        assert scheduler.next_run_time.minute % 5 == 0
        assert scheduler.start() is handle
    finally:
        scheduler.stop()

    assert scheduler.is_started is False
    assert scheduler.next_run_time is None
    assert job.calls == 0


@pytest.mark.asyncio
async def test_stop_leaves_cron_fired_run_to_finish():
    job = BlockingJob()
    scheduler = PropertySyncScheduler(job)

    handle = scheduler.start()
    handle.modify(next_run_time=datetime.now(timezone.utc))
    await asyncio.wait_for(job.started.wait(), timeout=5)

    scheduler.stop()
    await asyncio.sleep(0.05)

    assert scheduler.is_running is True
    joined = asyncio.create_task(scheduler.trigger())
    await asyncio.sleep(0)
    job.release.set()

    assert await asyncio.wait_for(joined, timeout=5) == job.result
    assert job.calls == 1
    assert scheduler.last_result == job.result
    assert scheduler.is_running is False


def test_stop_before_start_is_noop():
    PropertySyncScheduler(BlockingJob()).stop()


@pytest.mark.asyncio
async def test_etl_job_runs_pipeline(session_maker, extractor_factory, page_factory, listing_factory):
    extractor = extractor_factory([
        page_factory([listing_factory("J1"), listing_factory("J2")], has_next=False)
    ])
    job = PropertyEtlJob(session_maker, Settings(ETL_BATCH_SIZE=2), extractor=extractor)

    result = await job()

    assert result == RunResult(processed=2, saved=2, errors=0)
    assert extractor.calls == [(2, 0, None)]
