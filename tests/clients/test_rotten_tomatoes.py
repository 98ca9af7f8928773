import httpx
import pytest

from premiarr.clients.rotten_tomatoes import (
    ContentSourceError,
    RottenTomatoesClient,
    to_media_item,
)
from premiarr.schemas.media import MediaKind

GRID = {
    "grid": {
        "list": [
            {
                "type": "TvSeries",
                "title": "Severance",
                "mediaUrl": "/tv/severance",
                "releaseDateText": "Latest Episode: Feb 19",
                "criticsScore": {"score": "96", "certified": True},
                "audienceScore": {"score": "88"},
                "posterUri": "https://img.test/severance.jpg",
            },
            {"type": "Movie", "title": "Stray Movie", "mediaUrl": "/m/stray"},
            {"type": "TvSeries", "title": "Broken"},
            {
                "type": "TvSeries",
                "title": "Unscored",
                "mediaUrl": "/tv/unscored",
                "criticsScore": {"score": ""},
            },
        ]
    }
}


def _client(handler) -> RottenTomatoesClient:
    return RottenTomatoesClient(transport=httpx.MockTransport(handler))


def test_to_media_item_maps_scores_and_url() -> None:
    item = to_media_item(GRID["grid"]["list"][0], MediaKind.SERIES)

    assert item.identifier == "https://www.rottentomatoes.com/tv/severance"
    assert item.release_date == "Latest Episode: Feb 19"
    assert item.tomato_score == 96
    assert item.audience_score == 88
    assert item.certified_fresh is True
    assert item.poster_url == "https://img.test/severance.jpg"


@pytest.mark.asyncio
async def test_browse_tv_filters_by_type_and_skips_malformed_entries() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=GRID)

    client = _client(handler)
    items = await client.browse_tv("critics:fresh~sort:newest", page=2)
    await client.close()

    assert [item.title for item in items] == ["Severance", "Unscored"]
    assert items[1].tomato_score is None
    assert seen[0].url.path == "/cnapi/browse/tv_series_browse/critics:fresh~sort:newest"
    assert seen[0].url.params["page"] == "2"
    assert "Mozilla" in seen[0].headers["User-Agent"]


@pytest.mark.asyncio
async def test_browse_movies_uses_movie_section() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=GRID)

    client = _client(handler)
    items = await client.browse_movies("sort:newest")
    await client.close()

    assert [item.kind for item in items] == [MediaKind.MOVIE]
    assert seen[0].url.path == "/cnapi/browse/movies_at_home/sort:newest"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="unavailable"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"unexpected": True}),
    ],
)
async def test_bad_responses_raise_content_source_error(response: httpx.Response) -> None:
    client = _client(lambda request: response)
    with pytest.raises(ContentSourceError):
        await client.browse_tv("sort:newest")
    await client.close()


@pytest.mark.asyncio
async def test_transport_failure_raises_content_source_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)
    with pytest.raises(ContentSourceError):
        await client.browse_tv("sort:newest")
    await client.close()
