"""Jellyseerr / Overseerr REST client.

Wraps the handful of `/api/v1` endpoints Premiarr needs: title search, movie
and TV details, and media requests. Failures are split into
`SeerrUnreachableError` (network trouble, timeouts, 5xx) and
`SeerrNotFoundError` (404) so callers can report them differently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import httpx

from premiarr.schemas.media import AvailabilityStatus, MediaKind

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404

# mediaInfo.status codes used by Seerr
MEDIA_STATUS_PENDING = 2
MEDIA_STATUS_PROCESSING = 3
MEDIA_STATUS_PARTIALLY_AVAILABLE = 4
MEDIA_STATUS_AVAILABLE = 5

_SEARCH_MEDIA_TYPE = {MediaKind.MOVIE: "movie", MediaKind.SERIES: "tv"}


class SeerrError(RuntimeError):
    """Base exception for request-service failures."""


class SeerrUnreachableError(SeerrError):
    """Raised when the request service cannot be reached or errors out."""


class SeerrNotFoundError(SeerrError):
    """Raised when the request service has no such media."""


@dataclass(frozen=True)
class SeerrSearchResult:
    """A single movie or TV hit from `/search`."""

    id: int
    media_type: str
    title: str
    year: int | None = None


@dataclass(frozen=True)
class SeerrDetails:
    """The parts of `/movie/{id}` and `/tv/{id}` Premiarr uses."""

    id: int
    title: str
    number_of_seasons: int | None = None
    imdb_id: str | None = None
    media_info: Mapping[str, Any] | None = None
    season_numbers: tuple[int, ...] = field(default_factory=tuple)

    @property
    def status(self) -> AvailabilityStatus:
        return parse_media_status(self.media_info)


def parse_media_status(media_info: Mapping[str, Any] | None) -> AvailabilityStatus:
    """Translate Seerr's `mediaInfo` block into an availability status."""
    if not media_info:
        return AvailabilityStatus.UNAVAILABLE

    status = media_info.get("status")
    if status in (MEDIA_STATUS_AVAILABLE, MEDIA_STATUS_PARTIALLY_AVAILABLE):
        return AvailabilityStatus.AVAILABLE
    if status in (MEDIA_STATUS_PENDING, MEDIA_STATUS_PROCESSING):
        return AvailabilityStatus.PENDING
    if media_info.get("requests"):
        return AvailabilityStatus.REQUESTED
    return AvailabilityStatus.UNAVAILABLE


def _year_of(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10]).year
    except ValueError:
        return None


def _search_result(payload: Mapping[str, Any]) -> SeerrSearchResult:
    return SeerrSearchResult(
        id=int(payload["id"]),
        media_type=str(payload.get("mediaType", "")),
        title=str(payload.get("title") or payload.get("name") or ""),
        year=_year_of(payload.get("releaseDate") or payload.get("firstAirDate")),
    )


def _details(payload: Mapping[str, Any]) -> SeerrDetails:
    external_ids = payload.get("externalIds") or {}
    seasons = payload.get("seasons") or []
    return SeerrDetails(
        id=int(payload["id"]),
        title=str(payload.get("title") or payload.get("name") or ""),
        number_of_seasons=payload.get("numberOfSeasons"),
        imdb_id=external_ids.get("imdbId"),
        media_info=payload.get("mediaInfo"),
        season_numbers=tuple(
            int(season["seasonNumber"]) for season in seasons if "seasonNumber" in season
        ),
    )


class SeerrClient:
    """Async HTTP client for a Jellyseerr or Overseerr instance."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self._api_key)

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=f"{self.base_url}/api/v1",
                    timeout=self._timeout,
                    headers={"X-Api-Key": self._api_key, "Content-Type": "application/json"},
                    transport=self._transport,
                )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_data: Any | None = None,
    ) -> Any:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, params=params, json=json_data)
        except httpx.HTTPError as exc:
            raise SeerrUnreachableError(f"Seerr request {method} {path} failed: {exc}") from exc

        if response.status_code == HTTP_NOT_FOUND:
            raise SeerrNotFoundError(f"Seerr has no resource at {path}")
        if response.is_error:
            logger.error("[SEERR] API Error %s: %s", response.status_code, response.text)
            raise SeerrUnreachableError(
                f"Seerr API error: {response.status_code} {response.reason_phrase}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise SeerrUnreachableError(f"Seerr returned invalid JSON for {path}") from exc

    async def search(self, query: str, page: int = 1) -> list[SeerrSearchResult]:
        """Search movies and TV shows by title."""
        payload = await self._request("GET", "/search", params={"query": query, "page": page})
        return [
            _search_result(result)
            for result in payload.get("results", [])
            if result.get("mediaType") in ("movie", "tv")
        ]

    async def search_tv(self, query: str) -> list[SeerrSearchResult]:
        return [result for result in await self.search(query) if result.media_type == "tv"]

    async def search_movies(self, query: str) -> list[SeerrSearchResult]:
        return [result for result in await self.search(query) if result.media_type == "movie"]

    async def find_by_title(
        self, title: str, kind: MediaKind, year: int | None = None
    ) -> int | None:
        """Return the TMDB id best matching *title*, or None.

        A result released in *year* is preferred; otherwise the first hit wins.
        """
        wanted = _SEARCH_MEDIA_TYPE[MediaKind(kind)]
        results = [result for result in await self.search(title) if result.media_type == wanted]
        if not results:
            return None

        if year is not None:
            for result in results:
                if result.year == year:
                    return result.id

        return results[0].id

    async def get_tv_details(self, tmdb_id: int) -> SeerrDetails:
        return _details(await self._request("GET", f"/tv/{tmdb_id}"))

    async def get_movie_details(self, tmdb_id: int) -> SeerrDetails:
        return _details(await self._request("GET", f"/movie/{tmdb_id}"))

    async def get_details(self, tmdb_id: int, kind: MediaKind) -> SeerrDetails:
        if MediaKind(kind) is MediaKind.SERIES:
            return await self.get_tv_details(tmdb_id)
        return await self.get_movie_details(tmdb_id)

    async def get_media_status(self, tmdb_id: int, kind: MediaKind) -> AvailabilityStatus:
        """Return the current availability of a title.

        Unknown titles are reported as unavailable; connectivity problems
        propagate as `SeerrUnreachableError`.
        """
        try:
            details = await self.get_details(tmdb_id, kind)
        except SeerrNotFoundError:
            return AvailabilityStatus.UNAVAILABLE
        return details.status

    async def request_movie(self, tmdb_id: int, *, is_4k: bool = False) -> Mapping[str, Any]:
        body = {"mediaId": tmdb_id, "mediaType": "movie", "is4k": is_4k}
        logger.debug("[SEERR] POST /request body: %s", body)
        return await self._request("POST", "/request", json_data=body)

    async def request_tv(
        self, tmdb_id: int, seasons: Sequence[int], *, is_4k: bool = False
    ) -> Mapping[str, Any]:
        body: dict[str, Any] = {"mediaId": tmdb_id, "mediaType": "tv", "is4k": is_4k}
        if seasons:
            body["seasons"] = list(seasons)
        logger.debug("[SEERR] POST /request body: %s", body)
        return await self._request("POST", "/request", json_data=body)

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
