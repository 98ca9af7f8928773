"""Release-date parsing and the "is this new?" filter.

Rotten Tomatoes describes release dates with free-form text such as
"Latest Episode: Feb 19", "Opened Feb 20, 2026" or "Streaming Jan 27". An item
is announced only once that date has arrived (same day included) and only if
the ledger has never recorded it.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from datetime import datetime, time

from dateutil import parser as dateparser

from premiarr.schemas.media import MediaItem

logger = logging.getLogger(__name__)

# Applied in order, each anchored at the start of the remaining text.
_LEADING_LABELS = (
    re.compile(r"^Latest Episode:\s*", re.IGNORECASE),
    re.compile(r"^Opened\s*", re.IGNORECASE),
    re.compile(r"^Re-released\s*", re.IGNORECASE),
    re.compile(r"^Premieres?\s*", re.IGNORECASE),
    re.compile(r"^Streaming\s*", re.IGNORECASE),
)
_FOUR_DIGIT_YEAR = re.compile(r"\d{4}")


def strip_release_labels(text: str) -> str:
    """Remove the leading RT labels from a release-date text."""
    cleaned = text.strip()
    for pattern in _LEADING_LABELS:
        cleaned = pattern.sub("", cleaned)
    return cleaned.strip()


def parse_release_date(text: str | None, now: datetime | None = None) -> datetime | None:
    """Parse RT release-date text into a local datetime.

    Dates without a four-digit year are assumed to fall in the current year.
    Returns None when the text is empty or does not parse.
    """
    if not text:
        return None

    cleaned = strip_release_labels(text)
    if not cleaned:
        return None

    now = now or datetime.now()
    if not _FOUR_DIGIT_YEAR.search(cleaned):
        cleaned = f"{cleaned}, {now.year}"

    try:
        parsed = dateparser.parse(cleaned, default=datetime(now.year, 1, 1))
    except (ValueError, OverflowError):
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def end_of_day(now: datetime) -> datetime:
    """Return the last representable instant of *now*'s calendar day."""
    return datetime.combine(now.date(), time.max)


def has_been_released(text: str | None, now: datetime | None = None) -> bool:
    """Return True if the release date has arrived (today counts as released)."""
    now = now or datetime.now()
    released_on = parse_release_date(text, now)
    if released_on is None:
        return False
    return released_on <= end_of_day(now)


def filter_new(
    items: Iterable[MediaItem],
    already_notified: Callable[[str], bool],
    now: datetime | None = None,
) -> list[MediaItem]:
    """Keep released items whose identifier has never been announced.

    Args:
        items: Candidates in source order.
        already_notified: Ledger predicate keyed by item identifier (any season).
        now: Reference time, defaults to the current local time.

    Returns:
        The new items, preserving input order.
    """
    now = now or datetime.now()
    fresh: list[MediaItem] = []

    for item in items:
        if not has_been_released(item.release_date, now):
            logger.debug(
                "[SKIP] %r - not yet released (date: %s)", item.title, item.release_date or "none"
            )
            continue

        if already_notified(item.identifier):
            logger.debug("[SKIP] %r - already notified", item.title)
            continue

        logger.debug("[KEEP] %r - released (date: %s)", item.title, item.release_date)
        fresh.append(item)

    return fresh
