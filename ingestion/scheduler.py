"""
Cron-driven and on-demand property sync with a single-flight run guard
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.clock import Clock, utcnow
from core.config import Settings
from ingestion.base import ListingSource, RunResult
from ingestion.extractors.reso_extractor import RESOExtractor
from ingestion.loaders.property_loader import PropertyLoader
from ingestion.notifier import ChangeNotifier
from ingestion.runner import PropertyJobRunner
from ingestion.transformers.property_transformer import PropertyTransformer
from models.property_store import PropertyStore

logger = logging.getLogger(__name__)

JOB_ID = "property_etl_job"

RunJob = Callable[[], Awaitable[RunResult]]


class PropertyEtlJob:
    """
    Build the pipeline components for one run and execute it.

    A fresh session is opened per run; the extractor and transformer are
    stateless and shared.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        app_settings: Settings,
        notifier: Optional[ChangeNotifier] = None,
        extractor: Optional[ListingSource] = None,
        clock: Clock = utcnow
    ):
        self.session_maker = session_maker
        self.settings = app_settings
        self.notifier = notifier
        self.clock = clock
        self.extractor = extractor or RESOExtractor.from_settings(app_settings)
        self.transformer = PropertyTransformer(clock=clock)

    async def __call__(self) -> RunResult:
        async with self.session_maker() as session:
            runner = PropertyJobRunner(
                extractor=self.extractor,
                transformer=self.transformer,
                loader=PropertyLoader(session, notifier=self.notifier, clock=self.clock),
                store=PropertyStore(session),
                batch_size=self.settings.ETL_BATCH_SIZE
            )
            return await runner.run()


class PropertySyncScheduler:
    """
    Triggers the ETL job on a cron schedule and on manual request.

    At most one run is in flight regardless of trigger source:
    - a scheduled trigger during a run is dropped
    - a manual trigger during a run awaits and returns that run's result

    stop() cancels future triggers only; an in-flight run completes.
    """

    def __init__(
        self,
        job: RunJob,
        schedule: str = "0 0 * * *",
        clock: Clock = utcnow
    ):
        self.job = job
        self.schedule = schedule
        self.clock = clock
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._scheduled_job: Optional[Job] = None
        self._inflight: Optional[asyncio.Task] = None

        # Last-run state; read by the status endpoints
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[RunResult] = None
        self.last_success_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def is_started(self) -> bool:
        return self._scheduled_job is not None

    @property
    def next_run_time(self) -> Optional[datetime]:
        if self._scheduled_job is None:
            return None
        return getattr(self._scheduled_job, "next_run_time", None)

    def start(self) -> Job:
        """Register the cron trigger and start the scheduler; returns the job handle"""
        if self._scheduled_job is not None:
            return self._scheduled_job

        logger.info(f"Scheduling property ETL job with cron schedule: {self.schedule}")
        self.scheduler = AsyncIOScheduler()
        self.scheduler.start()
        self._scheduled_job = self.scheduler.add_job(
            self.run_scheduled,
            trigger=CronTrigger.from_crontab(self.schedule),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        logger.info("Property sync scheduler started")
        return self._scheduled_job

    def stop(self) -> None:
        """Cancel future triggers; an in-flight run is left to finish"""
        if self.scheduler is None:
            return

        logger.info("Stopping property sync scheduler")
        if self._scheduled_job is not None:
            self._scheduled_job.remove()
            self._scheduled_job = None
        self.scheduler.shutdown(wait=False)
        self.scheduler = None
        logger.info("Property sync scheduler stopped")

    def _start_run(self) -> asyncio.Task:
        self._inflight = asyncio.create_task(self._execute())
        return self._inflight

    async def _execute(self) -> RunResult:
        started_at = self.clock()
        try:
            result = await self.job()
        except Exception:
            logger.exception("Property ETL job failed")
            result = RunResult(processed=0, saved=0, errors=1)

        self.last_run_at = started_at
        self.last_result = result
        if result.success:
            self.last_success_at = started_at
        return result

    async def run_scheduled(self) -> Optional[RunResult]:
        """Cron entry point; returns None when dropped because a run is in flight"""
        if self.is_running:
            logger.warning("Scheduled property ETL job skipped: a run is already in progress")
            return None

        logger.info("Running scheduled property ETL job")
        # Scheduler shutdown cancels this coroutine, never the run itself
        result = await asyncio.shield(self._start_run())

        if result.success:
            logger.info(
                f"Scheduled property ETL job completed successfully "
                f"(processed={result.processed}, saved={result.saved})"
            )
        else:
            logger.warning(
                f"Scheduled property ETL job completed with errors "
                f"(processed={result.processed}, saved={result.saved}, errors={result.errors})"
            )
        return result

    async def trigger(self) -> RunResult:
        """Manual entry point; joins an in-flight run instead of starting a second one"""
        if self.is_running:
            logger.info("Manual trigger joined the property ETL job already in progress")
            task = self._inflight
        else:
            logger.info("Manually triggering property ETL job")
            task = self._start_run()

        # Shield so a disconnecting HTTP caller does not cancel the shared run
        result = await asyncio.shield(task)
        logger.info(
            f"Manual property ETL job completed: success={result.success}, "
            f"processed={result.processed}, saved={result.saved}, errors={result.errors}"
        )
        return result
