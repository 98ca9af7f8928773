"""Cron-driven announcement cycles on APScheduler."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from premiarr.services.announcer import ReleaseAnnouncer

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "daily_announcements"


class AnnouncementScheduler:
    """Runs `ReleaseAnnouncer.send_new_releases` on a crontab expression."""

    def __init__(
        self,
        announcer: ReleaseAnnouncer,
        cron_expression: str,
        *,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.announcer = announcer
        self.cron_expression = cron_expression
        # Raises ValueError on a malformed expression
        self.trigger = CronTrigger.from_crontab(cron_expression)
        self.scheduler = scheduler or AsyncIOScheduler()

    async def run_cycle(self) -> int:
        logger.debug("Running daily task...")
        return await self.announcer.send_new_releases()

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_cycle,
            self.trigger,
            id=DAILY_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("Scheduled daily task: %s", self.cron_expression)

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
