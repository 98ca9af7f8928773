"""Durable record of every announcement Premiarr has sent.

The ledger is the only deduplication authority: an item (and, for series, a
season) is announced at most once across process restarts. Rows are inserted
after a message has been delivered and are never updated or deleted.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, sessionmaker

from premiarr.models import MEDIA_KIND_MOVIE, MEDIA_KIND_SERIES, NotifiedItem
from premiarr.schemas.media import MediaKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationRecord:
    """Detached snapshot of a ledger row."""

    id: int
    item_id: str
    title: str
    kind: MediaKind
    season: int | None
    message_id: int | None
    notified_at: datetime

    @classmethod
    def from_row(cls, row: NotifiedItem) -> NotificationRecord:
        return cls(
            id=row.id,
            item_id=row.item_id,
            title=row.title,
            kind=MediaKind(row.media_type),
            season=row.season_number,
            message_id=row.message_id,
            notified_at=row.notified_at,
        )


@dataclass(frozen=True)
class NotificationCounts:
    """Totals of recorded announcements by kind."""

    total: int
    movies: int
    series: int


class NotificationLedger:
    """SQLAlchemy-backed store of announcements, unique per (item, season)."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._write_lock = threading.Lock()

    def has_notified(self, item_id: str, season: int | None = None) -> bool:
        """Return True if *item_id* was announced.

        With *season* the match is exact; without it any season counts.
        """
        stmt = select(NotifiedItem.id).where(NotifiedItem.item_id == item_id)
        if season is not None:
            stmt = stmt.where(NotifiedItem.season_number == season)

        with self._session_factory() as db:
            return db.execute(stmt.limit(1)).first() is not None

    def highest_notified_season(self, item_id: str) -> int | None:
        """Return the highest season announced for a series, or None."""
        stmt = select(func.max(NotifiedItem.season_number)).where(
            NotifiedItem.item_id == item_id,
            NotifiedItem.media_type == MEDIA_KIND_SERIES,
        )
        with self._session_factory() as db:
            return db.execute(stmt).scalar()

    def record(
        self,
        item_id: str,
        title: str,
        kind: MediaKind,
        season: int | None = None,
        message_id: int | None = None,
    ) -> None:
        """Record an announcement; repeating an (item, season) pair is a no-op.

        The row is committed before this method returns.
        """
        stmt = (
            sqlite_insert(NotifiedItem.__table__)
            .values(
                item_id=item_id,
                title=title,
                media_type=MediaKind(kind).value,
                season_number=season,
                message_id=message_id,
            )
            .on_conflict_do_nothing()
        )

        with self._write_lock, self._session_factory() as db:
            result = db.execute(stmt)
            db.commit()

        if result.rowcount == 0:
            logger.debug("Ledger already has %s (season %s); ignoring", item_id, season)
        else:
            logger.debug("Recorded %r (season %s, message %s)", title, season, message_id)

    def recent_notifications(self, limit: int = 20) -> list[NotificationRecord]:
        """Return the most recent announcements, newest first."""
        stmt = (
            select(NotifiedItem)
            .order_by(NotifiedItem.notified_at.desc(), NotifiedItem.id.desc())
            .limit(limit)
        )
        with self._session_factory() as db:
            return [NotificationRecord.from_row(row) for row in db.scalars(stmt)]

    def find_by_message_id(self, message_id: int) -> NotificationRecord | None:
        """Return the announcement sent as *message_id*, if any."""
        stmt = select(NotifiedItem).where(NotifiedItem.message_id == message_id).limit(1)
        with self._session_factory() as db:
            row = db.scalars(stmt).first()
            return NotificationRecord.from_row(row) if row else None

    def all_tracked_messages(self) -> dict[int, NotificationRecord]:
        """Return every announcement that has a message id, keyed by that id."""
        stmt = select(NotifiedItem).where(NotifiedItem.message_id.is_not(None))
        with self._session_factory() as db:
            return {
                row.message_id: NotificationRecord.from_row(row)
                for row in db.scalars(stmt)
                if row.message_id is not None
            }

    def counts(self) -> NotificationCounts:
        """Return totals by kind."""
        stmt = select(NotifiedItem.media_type, func.count()).group_by(NotifiedItem.media_type)
        with self._session_factory() as db:
            by_kind = {media_type: count for media_type, count in db.execute(stmt)}

        movies = by_kind.get(MEDIA_KIND_MOVIE, 0)
        series = by_kind.get(MEDIA_KIND_SERIES, 0)
        return NotificationCounts(total=movies + series, movies=movies, series=series)
