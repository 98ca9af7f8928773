"""Turn a heart reaction into a media request on Jellyseerr.

Each trigger walks the item through a small state machine:

    RESOLVING_REQUEST_ID -> CHECKING_STATUS -> ALREADY_AVAILABLE
                                            -> ALREADY_PENDING
                                            -> REQUESTING -> REQUESTED
    (any step)                              -> FAILED

Status is re-read from the request service on every trigger, which is what
keeps repeated reactions from issuing duplicate requests.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from premiarr.clients.seerr import SeerrClient, SeerrError
from premiarr.schemas.media import AvailabilityStatus, MediaItem, MediaKind
from premiarr.services.delivery import DeliveryError
from premiarr.utils.formatting import format_already_available, format_already_requested

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    RESOLVING_REQUEST_ID = "resolving_request_id"
    CHECKING_STATUS = "checking_status"
    ALREADY_AVAILABLE = "already_available"
    ALREADY_PENDING = "already_pending"
    REQUESTING = "requesting"
    REQUESTED = "requested"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {
        RequestState.ALREADY_AVAILABLE,
        RequestState.ALREADY_PENDING,
        RequestState.REQUESTED,
        RequestState.FAILED,
    }
)


class RequestReporter(Protocol):
    """Where the orchestrator reports outcomes (the chat, in production)."""

    async def send_message(self, text: str, *, reply_to: int | None = None) -> int: ...

    async def send_request_confirmation(
        self, username: str | None, title: str, *, reply_to: int | None = None
    ) -> int: ...

    async def send_error(self, error: str, *, reply_to: int | None = None) -> int: ...


@dataclass
class RequestOutcome:
    """Final state of one trigger plus the states it passed through."""

    state: RequestState
    seerr_id: int | None = None
    seasons: list[int] = field(default_factory=list)
    error: str | None = None
    history: list[RequestState] = field(default_factory=list)

    @property
    def requested(self) -> bool:
        return self.state is RequestState.REQUESTED


class RequestOrchestrator:
    """Drives a correlated MediaItem to a terminal request state."""

    def __init__(self, seerr: SeerrClient, reporter: RequestReporter) -> None:
        self.seerr = seerr
        self.reporter = reporter

    async def handle(
        self,
        item: MediaItem,
        username: str | None = None,
        *,
        reply_to: int | None = None,
    ) -> RequestOutcome:
        """Run the request flow for *item* triggered by *username*."""
        history = [RequestState.RESOLVING_REQUEST_ID]
        logger.debug("[REQUEST] Handling %s request for %r", item.kind.value, item.title)

        try:
            seerr_id = await self._resolve_id(item)
        except SeerrError as exc:
            logger.error("Failed to look up %r: %s", item.title, exc)
            return await self._fail(
                history, f'Failed to request "{item.title}" on Jellyseerr', str(exc), reply_to
            )

        if seerr_id is None:
            logger.error("Could not find %r in Seerr for request", item.title)
            return await self._fail(
                history, f'Could not find "{item.title}" in Jellyseerr', "not found", reply_to
            )

        history.append(RequestState.CHECKING_STATUS)
        try:
            status = await self.seerr.get_media_status(seerr_id, item.kind)
        except SeerrError as exc:
            logger.error("Failed to check status of %r: %s", item.title, exc)
            return await self._fail(
                history,
                f'Failed to request "{item.title}" on Jellyseerr',
                str(exc),
                reply_to,
                seerr_id=seerr_id,
            )
        item.status = status
        logger.debug("[REQUEST] Current status of %r: %s", item.title, status.value)

        if status is AvailabilityStatus.AVAILABLE:
            await self._report(
                self.reporter.send_message(format_already_available(item.title), reply_to=reply_to)
            )
            history.append(RequestState.ALREADY_AVAILABLE)
            return RequestOutcome(RequestState.ALREADY_AVAILABLE, seerr_id, history=history)

        if status in (AvailabilityStatus.REQUESTED, AvailabilityStatus.PENDING):
            await self._report(
                self.reporter.send_message(format_already_requested(item.title), reply_to=reply_to)
            )
            history.append(RequestState.ALREADY_PENDING)
            return RequestOutcome(RequestState.ALREADY_PENDING, seerr_id, history=history)

        history.append(RequestState.REQUESTING)
        try:
            seasons = await self._submit(item, seerr_id)
        except (SeerrError, ValueError) as exc:
            logger.error("Failed to request %r: %s", item.title, exc)
            return await self._fail(
                history,
                f'Failed to request "{item.title}" on Jellyseerr',
                str(exc),
                reply_to,
                seerr_id=seerr_id,
            )

        item.status = AvailabilityStatus.REQUESTED
        await self._report(
            self.reporter.send_request_confirmation(username, item.title, reply_to=reply_to)
        )
        history.append(RequestState.REQUESTED)
        return RequestOutcome(RequestState.REQUESTED, seerr_id, seasons, history=history)

    async def _resolve_id(self, item: MediaItem) -> int | None:
        if item.seerr_id is not None:
            return item.seerr_id

        year = item.release_year if item.kind is MediaKind.MOVIE else None
        logger.debug("[REQUEST] No Seerr id, searching for %r (year: %s)", item.title, year)
        seerr_id = await self.seerr.find_by_title(item.title, item.kind, year)
        if seerr_id is not None:
            item.seerr_id = seerr_id
        return seerr_id

    async def _submit(self, item: MediaItem, seerr_id: int) -> list[int]:
        if item.kind is MediaKind.MOVIE:
            await self.seerr.request_movie(seerr_id)
            logger.info("Requested movie %r", item.title)
            return []

        season = item.current_season
        if season is None:
            details = await self.seerr.get_tv_details(seerr_id)
            season = details.number_of_seasons
        if not season:
            raise ValueError(f"season count unknown for {item.title!r}")

        await self.seerr.request_tv(seerr_id, [season])
        logger.info("Requested %r season %d", item.title, season)
        return [season]

    async def _fail(
        self,
        history: list[RequestState],
        message: str,
        error: str,
        reply_to: int | None,
        *,
        seerr_id: int | None = None,
    ) -> RequestOutcome:
        await self._report(self.reporter.send_error(message, reply_to=reply_to))
        history.append(RequestState.FAILED)
        return RequestOutcome(RequestState.FAILED, seerr_id, error=error, history=history)

    async def _report(self, send: Awaitable[int]) -> None:
        try:
            await send
        except DeliveryError as exc:
            logger.error("Failed to report request outcome: %s", exc)
