"""Transient media types shared by the clients and the announcement services."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from premiarr.models.notification import MEDIA_KIND_MOVIE, MEDIA_KIND_SERIES

_YEAR_RE = re.compile(r"\b(\d{4})\b")


class MediaKind(str, Enum):
    """Kind of media announced; values match the ledger's `media_type` column."""

    MOVIE = MEDIA_KIND_MOVIE
    SERIES = MEDIA_KIND_SERIES

    @property
    def label(self) -> str:
        return "Movie" if self is MediaKind.MOVIE else "TV Show"


class AvailabilityStatus(str, Enum):
    """Availability of a title in the request service."""

    AVAILABLE = "available"
    REQUESTED = "requested"
    PENDING = "pending"
    UNAVAILABLE = "unavailable"


@dataclass
class MediaItem:
    """A movie or series as fetched from the content source and enriched.

    `seerr_id`, `status`, `current_season` and `imdb_id` are filled in lazily by
    enrichment; items rebuilt from the ledger carry only identifier, title and
    kind.
    """

    identifier: str
    title: str
    kind: MediaKind
    release_date: str | None = None
    current_season: int | None = None
    imdb_id: str | None = None
    seerr_id: int | None = None
    status: AvailabilityStatus | None = None
    tomato_score: int | None = None
    audience_score: int | None = None
    certified_fresh: bool = False
    poster_url: str | None = None
    synopsis: str | None = None
    network: str | None = None

    @property
    def is_series(self) -> bool:
        return self.kind is MediaKind.SERIES

    @property
    def release_year(self) -> int | None:
        """Return the year spelled out in the release text, if any."""
        if not self.release_date:
            return None
        match = _YEAR_RE.search(self.release_date)
        return int(match.group(1)) if match else None
