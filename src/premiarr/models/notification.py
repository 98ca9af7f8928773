"""SQLAlchemy model for announced releases."""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from premiarr.db.session import Base

MEDIA_KIND_MOVIE = "movie"
MEDIA_KIND_SERIES = "tv"

# Stored in place of NULL inside the uniqueness index so that a movie (or a
# series recorded without a season) can only be announced once.
NO_SEASON_SENTINEL = -1


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


class NotifiedItem(Base):
    """Record of one announcement message, unique per (item, season)."""

    __tablename__ = "notified_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)  # RT URL
    title: Mapped[str] = mapped_column(Text, nullable=False)
    media_type: Mapped[str] = mapped_column(String(8), nullable=False)
    season_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    message_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True, index=True)
    notified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )

    __table_args__ = (
        CheckConstraint(
            f"media_type IN ('{MEDIA_KIND_MOVIE}', '{MEDIA_KIND_SERIES}')",
            name="ck_notified_items_media_type",
        ),
    )


Index(
    "uq_notified_items_item_season",
    NotifiedItem.item_id,
    func.coalesce(NotifiedItem.season_number, NO_SEASON_SENTINEL),
    unique=True,
)
