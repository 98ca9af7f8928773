"""Client for the Rotten Tomatoes browse API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from premiarr.schemas.media import MediaItem, MediaKind

logger = logging.getLogger(__name__)

RT_BASE_URL = "https://www.rottentomatoes.com"
RT_BROWSE_PATH = "/cnapi/browse"

# The browse API only answers browser-looking requests
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
    ),
    "Accept": "*/*",
    "Referer": RT_BASE_URL,
}

TV_BROWSE_SECTION = "tv_series_browse"
MOVIE_BROWSE_SECTION = "movies_at_home"

_ITEM_TYPES = {MediaKind.SERIES: "TvSeries", MediaKind.MOVIE: "Movie"}


class ContentSourceError(RuntimeError):
    """Raised when Rotten Tomatoes cannot be reached or returns junk."""


def _score(block: Mapping[str, Any] | None) -> int | None:
    if not block or not block.get("score"):
        return None
    try:
        return int(block["score"])
    except (TypeError, ValueError):
        return None


def to_media_item(entry: Mapping[str, Any], kind: MediaKind) -> MediaItem:
    """Convert one browse-grid entry into a MediaItem."""
    critics = entry.get("criticsScore") or {}
    return MediaItem(
        identifier=f"{RT_BASE_URL}{entry['mediaUrl']}",
        title=str(entry["title"]),
        kind=kind,
        release_date=entry.get("releaseDateText"),
        tomato_score=_score(critics),
        audience_score=_score(entry.get("audienceScore")),
        certified_fresh=bool(critics.get("certified", False)),
        poster_url=entry.get("posterUri"),
    )


class RottenTomatoesClient:
    """Fetches filtered browse pages of TV series and movies."""

    def __init__(
        self,
        *,
        base_url: str = RT_BASE_URL,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=self._timeout,
                    headers=HEADERS,
                    transport=self._transport,
                )
        return self._client

    async def browse_tv(self, filter_expression: str, page: int = 1) -> list[MediaItem]:
        """Browse TV series with a raw filter such as "critics:fresh~sort:newest"."""
        return await self.fetch_filtered(MediaKind.SERIES, filter_expression, page)

    async def browse_movies(self, filter_expression: str, page: int = 1) -> list[MediaItem]:
        """Browse movies available at home with a raw filter string."""
        return await self.fetch_filtered(MediaKind.MOVIE, filter_expression, page)

    async def fetch_filtered(
        self, kind: MediaKind, filter_expression: str, page: int = 1
    ) -> list[MediaItem]:
        section = TV_BROWSE_SECTION if kind is MediaKind.SERIES else MOVIE_BROWSE_SECTION
        path = f"{RT_BROWSE_PATH}/{section}/{filter_expression}"
        entries = await self._fetch_grid(path, page)

        wanted = _ITEM_TYPES[kind]
        items = []
        for entry in entries:
            if entry.get("type") != wanted:
                continue
            logger.debug(
                "[RT]   %r - date: %r - url: %s",
                entry.get("title"),
                entry.get("releaseDateText"),
                entry.get("mediaUrl"),
            )
            try:
                items.append(to_media_item(entry, kind))
            except KeyError as exc:
                logger.warning("[RT] Skipping malformed %s entry: missing %s", wanted, exc)
        return items

    async def _fetch_grid(self, path: str, page: int) -> list[Mapping[str, Any]]:
        client = await self._ensure_client()
        logger.debug("[RT] Fetching: %s?page=%d", path, page)
        try:
            response = await client.get(path, params={"page": page})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ContentSourceError(
                f"RT API error: {exc.response.status_code} {exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ContentSourceError(f"RT request failed: {exc}") from exc
        except ValueError as exc:
            raise ContentSourceError("RT returned invalid JSON") from exc

        try:
            entries = payload["grid"]["list"]
        except (KeyError, TypeError) as exc:
            raise ContentSourceError("RT response has no grid list") from exc

        logger.debug("[RT] Got %d items", len(entries))
        return list(entries)

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
