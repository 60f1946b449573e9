"""APScheduler setup for the periodic anomaly cycle."""

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

JOB_ID = "anomaly_cycle"


class AnomalyScheduler:
    """Runs ``engine.run_cycle`` every ``period_seconds`` as a single cancellable job.

    There is only ever one job under ``JOB_ID``: reconfiguring removes the
    previous job before adding the new one, so two cycles never overlap.
    """

    def __init__(self, engine, period_seconds: float) -> None:
        self.engine = engine
        self.period_seconds = period_seconds
        self._scheduler: AsyncIOScheduler | None = None
        # Current engine.run_cycle task, kept apart from the job future
        self._inflight: asyncio.Future | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start ticking. Calling it again while running is a no-op."""
        if self.running:
            return
        self._scheduler = AsyncIOScheduler()
        self._scheduler.start()
        self._schedule()
        logger.info("Anomaly scheduler started - ticking every %ss", self.period_seconds)

    def _schedule(self) -> None:
        if self._scheduler.get_job(JOB_ID):
            self._scheduler.remove_job(JOB_ID)
        self._scheduler.add_job(
            self._run_cycle,
            "interval",
            seconds=self.period_seconds,
            id=JOB_ID,
            name="Smooth, detect and publish anomaly alerts",
            max_instances=1,
            coalesce=True,
        )

    async def _run_cycle(self) -> None:
        # shutdown(wait=False) cancels the job future, not the cycle task
        self._inflight = asyncio.ensure_future(self.engine.run_cycle())
        await asyncio.shield(self._inflight)

    def reconfigure(self, period_seconds: float) -> None:
        self.period_seconds = period_seconds
        if self.running:
            self._schedule()
            logger.info("Anomaly scheduler period changed to %ss", period_seconds)

    def stop(self) -> None:
        """Stop scheduling new ticks.

        A cycle already in progress, including its publish, still finishes;
        await ``wait_idle()`` to wait for it.
        """
        if not self.running:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Anomaly scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for the in-flight cycle, if any, to finish."""
        if self._inflight is not None and not self._inflight.done():
            await self._inflight

    def job(self):
        if self._scheduler is None:
            return None
        return self._scheduler.get_job(JOB_ID)


def create_scheduler(engine) -> AnomalyScheduler:
    """Create the scheduler for ``engine`` using the configured tick period."""
    from busai.config import settings

    return AnomalyScheduler(engine, settings.tick_period_seconds)
