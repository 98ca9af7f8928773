"""Map announcement message ids back to the media item they announced."""

from __future__ import annotations

import logging

from premiarr.schemas.media import MediaItem
from premiarr.services.ledger import NotificationLedger, NotificationRecord

logger = logging.getLogger(__name__)


def degraded_item(record: NotificationRecord) -> MediaItem:
    """Rebuild the minimal MediaItem a ledger row can provide."""
    return MediaItem(identifier=record.item_id, title=record.title, kind=record.kind)


class MessageCorrelator:
    """Two-tier lookup from message id to MediaItem.

    Messages sent during this process lifetime resolve from the in-memory
    cache with their full enrichment. Anything older (including everything
    after a restart) falls through to the ledger and resolves to a degraded
    item carrying only identifier, title and kind.
    """

    def __init__(self, ledger: NotificationLedger) -> None:
        self._ledger = ledger
        self._cache: dict[int, MediaItem] = {}

    @property
    def tracked_count(self) -> int:
        """Number of messages resolvable from the in-memory cache."""
        return len(self._cache)

    def cache(self, message_id: int, item: MediaItem) -> None:
        """Remember the item as it was sent in *message_id*."""
        self._cache[message_id] = item
        logger.debug(
            "[TRACKING] Message %s -> %r (now tracking %d messages)",
            message_id,
            item.title,
            len(self._cache),
        )

    def resolve(self, message_id: int) -> MediaItem | None:
        """Return the item announced in *message_id*, or None if unknown."""
        item = self._cache.get(message_id)
        if item is not None:
            return item

        logger.debug("[REACTION] Message %s not in memory, checking ledger", message_id)
        record = self._ledger.find_by_message_id(message_id)
        if record is None:
            return None
        return degraded_item(record)
