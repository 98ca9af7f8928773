"""Builds and owns every long-lived Premiarr component."""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from premiarr.clients.rotten_tomatoes import RottenTomatoesClient
from premiarr.clients.seerr import SeerrClient
from premiarr.clients.telegram import TelegramClient, TelegramError, TelegramNotifier
from premiarr.core.settings import Settings
from premiarr.db import build_engine, build_session_factory, create_tables
from premiarr.services.announcer import ReleaseAnnouncer
from premiarr.services.bot import BotWorker
from premiarr.services.correlator import MessageCorrelator
from premiarr.services.delivery import DeliveryRetrier
from premiarr.services.ledger import NotificationLedger
from premiarr.services.orchestrator import RequestOrchestrator
from premiarr.services.scheduler import AnnouncementScheduler

logger = logging.getLogger(__name__)


class PremiarrRuntime:
    """Wires clients, ledger and services from settings.

    `start()` is daemon mode (scheduler plus bot worker); `run_once()` is cron
    mode. Both run the startup health checks first.
    """

    def __init__(self, settings: Settings, *, engine: Engine | None = None) -> None:
        self.settings = settings
        self.engine = engine or build_engine(settings.database_url)
        create_tables(self.engine)
        self.ledger = NotificationLedger(build_session_factory(self.engine))
        self.correlator = MessageCorrelator(self.ledger)

        timeout = settings.http_timeout_seconds
        self.content = RottenTomatoesClient(timeout_seconds=timeout)
        self.seerr = SeerrClient(
            settings.seerr_url, settings.seerr_api_key, timeout_seconds=timeout
        )
        self.telegram = TelegramClient(
            settings.telegram_bot_token,
            api_base=settings.telegram_api_base,
            timeout_seconds=timeout,
        )
        self.notifier = TelegramNotifier(
            self.telegram,
            settings.telegram_chat_id,
            topic_id=settings.telegram_topic_id,
            retrier=DeliveryRetrier(
                max_attempts=settings.delivery_max_attempts,
                base_delay=settings.delivery_base_delay_seconds,
                rate_limit_margin=settings.delivery_rate_limit_margin_seconds,
            ),
        )
        self.orchestrator = RequestOrchestrator(self.seerr, self.notifier)
        self.announcer = ReleaseAnnouncer(
            self.content,
            self.seerr,
            self.notifier,
            self.ledger,
            self.correlator,
            self.orchestrator,
            tv_filter=settings.rt_tv_filter,
            movie_filter=settings.rt_movie_filter,
            send_delay=settings.send_delay_seconds,
        )
        self.scheduler = AnnouncementScheduler(self.announcer, settings.daily_cron)
        self.bot = BotWorker(
            self.telegram,
            self.notifier,
            self.announcer,
            poll_timeout=settings.telegram_poll_timeout_seconds,
        )

    async def check_health(self) -> None:
        """Run dependency checks and log what the ledger holds."""
        await self.announcer.check_health()

        counts = self.ledger.counts()
        logger.info(
            "Database: %d notifications (%d TV, %d movies)",
            counts.total,
            counts.series,
            counts.movies,
        )
        logger.debug(
            "Ledger tracks %d announcement messages for reactions",
            len(self.ledger.all_tracked_messages()),
        )

    async def start(self) -> None:
        logger.info("Starting Premiarr in daemon mode...")
        await self.check_health()
        try:
            await self.notifier.verify_chat()
        except TelegramError as exc:
            logger.error("[TELEGRAM] Cannot access chat %s: %s", self.settings.telegram_chat_id, exc)

        self.scheduler.start()
        if self.settings.run_on_startup:
            logger.info("Running initial fetch on startup...")
            await self.announcer.send_new_releases()
        await self.bot.start()

    async def run_once(self) -> int:
        logger.info("Running Premiarr in cron mode...")
        await self.check_health()
        announced = await self.announcer.send_new_releases()
        logger.info("Cron execution complete")
        return announced

    async def stop(self) -> None:
        logger.info("Stopping Premiarr...")
        self.scheduler.stop()
        await self.bot.stop()
        await self.content.close()
        await self.seerr.close()
        await self.telegram.close()
        self.engine.dispose()
        logger.info("Premiarr stopped")
