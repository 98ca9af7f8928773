"""Fetch, filter, enrich and announce new releases; route heart reactions.

`ReleaseAnnouncer` is the service the scheduler, the bot worker and the status
API all call into. It owns no I/O of its own beyond what its collaborators
provide.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError

from premiarr.clients.rotten_tomatoes import ContentSourceError, RottenTomatoesClient
from premiarr.clients.seerr import SeerrClient, SeerrError
from premiarr.clients.telegram import TelegramNotifier
from premiarr.schemas.media import AvailabilityStatus, MediaItem, MediaKind
from premiarr.services.correlator import MessageCorrelator
from premiarr.services.delivery import DeliveryError
from premiarr.services.ledger import NotificationCounts, NotificationLedger
from premiarr.services.orchestrator import RequestOrchestrator, RequestOutcome
from premiarr.services.release_filter import filter_new
from premiarr.utils.formatting import format_section_header, is_heart_emoji

logger = logging.getLogger(__name__)

HEALTH_CHECK_FILTER = "sort:newest"


class StartupCheckError(RuntimeError):
    """Raised when a required dependency fails its startup check."""


class ReleaseAnnouncer:
    """Announces new movies and TV releases and handles request reactions."""

    def __init__(
        self,
        content: RottenTomatoesClient,
        seerr: SeerrClient,
        notifier: TelegramNotifier,
        ledger: NotificationLedger,
        correlator: MessageCorrelator,
        orchestrator: RequestOrchestrator,
        *,
        tv_filter: str,
        movie_filter: str,
        send_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.content = content
        self.seerr = seerr
        self.notifier = notifier
        self.ledger = ledger
        self.correlator = correlator
        self.orchestrator = orchestrator
        self.tv_filter = tv_filter
        self.movie_filter = movie_filter
        self.send_delay = send_delay
        self._sleep = sleep
        self._clock = clock
        self._cycle_lock = asyncio.Lock()

    async def send_new_releases(self) -> int:
        """Run a full cycle: movies first, then TV. Returns items announced."""
        async with self._cycle_lock:
            movies = await self._announce(MediaKind.MOVIE)
            series = await self._announce(MediaKind.SERIES)
        logger.info("Cycle complete: %d movies, %d TV shows announced", movies, series)
        return movies + series

    async def send_new_movies(self) -> int:
        async with self._cycle_lock:
            return await self._announce(MediaKind.MOVIE)

    async def send_new_tv(self) -> int:
        async with self._cycle_lock:
            return await self._announce(MediaKind.SERIES)

    async def _announce(self, kind: MediaKind) -> int:
        noun = "movies" if kind is MediaKind.MOVIE else "TV shows"
        logger.info("Fetching new %s...", noun)

        try:
            if kind is MediaKind.MOVIE:
                candidates = await self.content.browse_movies(self.movie_filter)
            else:
                candidates = await self.content.browse_tv(self.tv_filter)
        except ContentSourceError as exc:
            logger.error("Error fetching new %s: %s", noun, exc)
            return 0
        logger.info("Found %d %s from RT", len(candidates), noun)

        now = self._clock()
        fresh = filter_new(candidates, self.ledger.has_notified, now)
        logger.info("%d are new releases we haven't notified about", len(fresh))
        if not fresh:
            logger.info("No new %s to notify about", noun)
            return 0

        for item in fresh:
            await self._enrich(item)

        try:
            await self.notifier.send_message(format_section_header(kind, now.date()))
        except DeliveryError as exc:
            logger.error("Failed to send %s header: %s", noun, exc)

        sent = 0
        for item in fresh:
            if await self._announce_item(item, now.date()):
                sent += 1
            await self._sleep(self.send_delay)

        logger.info("Sent %d %s announcements", sent, noun)
        return sent

    async def _announce_item(self, item: MediaItem, today: date) -> bool:
        try:
            message_id = await self.notifier.send_media_message(item, today)
        except DeliveryError as exc:
            logger.error("Failed to announce %r: %s", item.title, exc)
            return False

        season = item.current_season if item.kind is MediaKind.SERIES else None
        try:
            self.ledger.record(item.identifier, item.title, item.kind, season, message_id)
        except SQLAlchemyError as exc:
            logger.error(
                "Sent %r as message %s but failed to record it: %s", item.title, message_id, exc
            )
        self.correlator.cache(message_id, item)
        logger.info("Sent notification for %s %r", item.kind.label.lower(), item.title)
        return True

    async def _enrich(self, item: MediaItem) -> None:
        """Attach Seerr id, availability, IMDb id and season count in place."""
        if not self.seerr.configured:
            return

        year = item.release_year if item.kind is MediaKind.MOVIE else None
        try:
            seerr_id = await self.seerr.find_by_title(item.title, item.kind, year)
            if seerr_id is None:
                return
            details = await self.seerr.get_details(seerr_id, item.kind)
        except SeerrError as exc:
            logger.warning("Could not find %r in Seerr: %s", item.title, exc)
            item.status = AvailabilityStatus.UNAVAILABLE
            return

        item.seerr_id = seerr_id
        item.status = details.status
        item.imdb_id = details.imdb_id
        if item.kind is MediaKind.SERIES:
            item.current_season = details.number_of_seasons

    async def handle_reaction(
        self,
        message_id: int,
        emojis: Iterable[str],
        user_id: int | None,
        username: str | None = None,
    ) -> RequestOutcome | None:
        """Start a request when someone hearts an announcement.

        Reactions without a heart, without a user, or on messages that are
        neither cached nor in the ledger are ignored.
        """
        emojis = list(emojis)
        if not any(is_heart_emoji(emoji) for emoji in emojis):
            logger.debug("[REACTION] No heart in %s on message %s", emojis, message_id)
            return None
        if user_id is None:
            logger.debug("[REACTION] Anonymous reaction on message %s, ignoring", message_id)
            return None

        item = self.correlator.resolve(message_id)
        if item is None:
            logger.debug(
                "[REACTION] Message %s not found in memory or ledger, ignoring", message_id
            )
            return None

        logger.info("Heart reaction from %s for %r", username or user_id, item.title)
        return await self.orchestrator.handle(item, username, reply_to=message_id)

    def stats(self) -> NotificationCounts:
        return self.ledger.counts()

    def stats_text(self) -> str:
        counts = self.stats()
        return (
            "\U0001f4ca Premiarr Stats\n\n"
            f"Total notifications: {counts.total}\n"
            f"Movies: {counts.movies}\n"
            f"TV Shows: {counts.series}"
        )

    async def check_health(self) -> None:
        """Verify dependencies before starting.

        Rotten Tomatoes is required and raises `StartupCheckError` when it is
        unreachable or empty. Seerr is optional; a failure only disables
        requests and is logged as a warning.
        """
        logger.info("Performing startup health checks...")

        logger.info("[Health] Checking Rotten Tomatoes connectivity...")
        try:
            shows = await self.content.browse_tv(HEALTH_CHECK_FILTER, 1)
        except ContentSourceError as exc:
            logger.error("[Health] Rotten Tomatoes check failed: %s", exc)
            raise StartupCheckError("Rotten Tomatoes is unreachable") from exc
        if not shows:
            logger.error("[Health] Rotten Tomatoes returned no data")
            raise StartupCheckError("Rotten Tomatoes returned no data")
        logger.info("[Health] Rotten Tomatoes OK (fetched %d shows)", len(shows))

        if not self.seerr.configured:
            logger.warning("[Health] Jellyseerr not configured (requests disabled)")
            return

        logger.info("[Health] Checking Jellyseerr connectivity...")
        try:
            await self.seerr.search("test")
        except SeerrError as exc:
            logger.warning("[Health] Jellyseerr check failed (requests will not work): %s", exc)
            return
        logger.info("[Health] Jellyseerr OK")
