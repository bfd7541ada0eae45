"""
Digest scheduler.

Runs the crypto digest on a fixed crontab (every 6 hours, UTC, by default).
No run history is kept: cycles missed while the process is down are skipped.
"""

import logging

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..utils.config import SchedulerConfig
from .digest import DigestService

logger = logging.getLogger(__name__)

DIGEST_JOB_ID = 'crypto_digest'


class DigestScheduler:
    """Owns the APScheduler instance that fires the digest job."""

    def __init__(self, digest_service: DigestService, config: SchedulerConfig):
        self.digest_service = digest_service
        self.config = config
        self.scheduler = AsyncIOScheduler(
            timezone=config.timezone,
            job_defaults={
                'coalesce': True,  # Combine multiple pending executions
                'max_instances': 1,
                'misfire_grace_time': 60,
            }
        )
        self.trigger = CronTrigger.from_crontab(config.cron, timezone=config.timezone)

        self.scheduler.add_listener(self._job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._job_missed, EVENT_JOB_MISSED)

        self.scheduler.add_job(
            func=self.run_digest_job,
            trigger=self.trigger,
            id=DIGEST_JOB_ID,
            name='Crypto Digest',
            replace_existing=True
        )

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Start firing jobs. Must be called from inside the running event loop."""
        if self.scheduler.running:
            return
        self.scheduler.start()
        logger.info(f"Digest scheduler started: '{self.config.cron}' ({self.config.timezone})")

    def run_once_now(self) -> None:
        """Queue one immediate digest alongside the cron schedule."""
        self.scheduler.add_job(
            func=self.run_digest_job,
            id=f'{DIGEST_JOB_ID}_startup',
            name='Startup Crypto Digest',
            replace_existing=True
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Digest scheduler stopped")

    async def run_digest_job(self) -> None:
        """Execute one digest cycle. Never raises, so the job stays armed."""
        try:
            logger.info("Running scheduled crypto digest")
            sent = await self.digest_service.send_digest()
            if not sent:
                logger.warning("Scheduled crypto digest was not delivered")
        except Exception as e:
            logger.error(f"Crypto digest job exception: {e}", exc_info=True)

    def _job_error(self, event) -> None:
        logger.error(f"Job {event.job_id} raised: {event.exception}")

    def _job_missed(self, event) -> None:
        logger.warning(f"Job {event.job_id} missed its run time {event.scheduled_run_time}")
