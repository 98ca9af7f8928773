from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from premiarr.clients.rotten_tomatoes import ContentSourceError
from premiarr.clients.seerr import SeerrDetails, SeerrUnreachableError
from premiarr.schemas.media import AvailabilityStatus, MediaItem, MediaKind
from premiarr.services.announcer import ReleaseAnnouncer, StartupCheckError
from premiarr.services.correlator import MessageCorrelator
from premiarr.services.delivery import DeliveryError
from premiarr.services.ledger import NotificationLedger
from premiarr.services.orchestrator import RequestState


def _series(slug: str, release_date: str = "Latest Episode: Feb 19") -> MediaItem:
    return MediaItem(
        identifier=f"https://www.rottentomatoes.com/tv/{slug}",
        title=slug.title(),
        kind=MediaKind.SERIES,
        release_date=release_date,
    )


@pytest.fixture
def seerr_finds_season_two(mock_seerr: AsyncMock) -> AsyncMock:
    mock_seerr.find_by_title.return_value = 11
    mock_seerr.get_details.return_value = SeerrDetails(
        id=11,
        title="Show",
        number_of_seasons=2,
        imdb_id="tt0000011",
        media_info=None,
    )
    return mock_seerr


@pytest.mark.asyncio
async def test_tv_cycle_announces_records_and_caches(
    announcer: ReleaseAnnouncer,
    mock_content: AsyncMock,
    mock_notifier: AsyncMock,
    seerr_finds_season_two: AsyncMock,
    ledger: NotificationLedger,
    correlator: MessageCorrelator,
    recorded_sleeps: list[float],
) -> None:
    mock_content.browse_tv.return_value = [_series("andor"), _series("later", "Mar 3")]
    mock_notifier.send_media_message.return_value = 501

    sent = await announcer.send_new_tv()

    assert sent == 1
    mock_notifier.send_message.assert_awaited_once()
    header = mock_notifier.send_message.await_args.args[0]
    assert "TV SHOWS" in header

    record = ledger.find_by_message_id(501)
    assert record is not None
    assert record.season == 2
    cached = correlator.resolve(501)
    assert cached is not None
    assert cached.imdb_id == "tt0000011"
    assert cached.status is AvailabilityStatus.UNAVAILABLE
    assert recorded_sleeps == [0.5]


@pytest.mark.asyncio
async def test_already_notified_items_are_skipped(
    announcer: ReleaseAnnouncer,
    mock_content: AsyncMock,
    mock_notifier: AsyncMock,
    ledger: NotificationLedger,
) -> None:
    item = _series("andor")
    ledger.record(item.identifier, item.title, MediaKind.SERIES, season=1, message_id=1)
    mock_content.browse_tv.return_value = [item]

    assert await announcer.send_new_tv() == 0
    mock_notifier.send_message.assert_not_awaited()
    mock_notifier.send_media_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_content_source_failure_aborts_cycle(
    announcer: ReleaseAnnouncer, mock_content: AsyncMock, mock_notifier: AsyncMock
) -> None:
    mock_content.browse_movies.side_effect = ContentSourceError("RT API error: 503")

    assert await announcer.send_new_movies() == 0
    mock_notifier.send_media_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_send_does_not_abort_remaining_items(
    announcer: ReleaseAnnouncer,
    mock_content: AsyncMock,
    mock_notifier: AsyncMock,
    mock_seerr: AsyncMock,
    ledger: NotificationLedger,
) -> None:
    mock_seerr.find_by_title.return_value = None
    first, second = _series("first"), _series("second")
    mock_content.browse_tv.return_value = [first, second]
    mock_notifier.send_media_message.side_effect = [DeliveryError("gave up"), 77]

    sent = await announcer.send_new_tv()

    assert sent == 1
    assert not ledger.has_notified(first.identifier)
    assert ledger.has_notified(second.identifier)


@pytest.mark.asyncio
async def test_ledger_failure_after_send_does_not_abort_remaining_items(
    announcer: ReleaseAnnouncer,
    mock_content: AsyncMock,
    mock_notifier: AsyncMock,
    mock_seerr: AsyncMock,
    ledger: NotificationLedger,
    correlator: MessageCorrelator,
    mocker,
) -> None:
    mock_seerr.find_by_title.return_value = None
    first, second = _series("first"), _series("second")
    mock_content.browse_tv.return_value = [first, second]
    mock_notifier.send_media_message.side_effect = [76, 77]
    record = mocker.patch.object(
        ledger,
        "record",
        side_effect=[OperationalError("INSERT", {}, Exception("database is locked")), None],
    )

    sent = await announcer.send_new_tv()

    assert sent == 2
    assert record.call_count == 2
    assert mock_notifier.send_media_message.await_count == 2
    resolved = correlator.resolve(76)
    assert resolved is not None
    assert resolved.title == first.title


@pytest.mark.asyncio
async def test_enrichment_failure_marks_item_unavailable(
    announcer: ReleaseAnnouncer,
    mock_content: AsyncMock,
    mock_notifier: AsyncMock,
    mock_seerr: AsyncMock,
    correlator: MessageCorrelator,
) -> None:
    mock_seerr.find_by_title.side_effect = SeerrUnreachableError("down")
    mock_content.browse_tv.return_value = [_series("andor")]
    mock_notifier.send_media_message.return_value = 9

    assert await announcer.send_new_tv() == 1
    cached = correlator.resolve(9)
    assert cached is not None
    assert cached.status is AvailabilityStatus.UNAVAILABLE


@pytest.mark.asyncio
async def test_full_cycle_sends_movies_before_tv(
    announcer: ReleaseAnnouncer,
    mock_content: AsyncMock,
    mock_notifier: AsyncMock,
    mock_seerr: AsyncMock,
    movie: MediaItem,
) -> None:
    mock_seerr.find_by_title.return_value = None
    mock_content.browse_movies.return_value = [movie]
    mock_content.browse_tv.return_value = [_series("andor")]
    mock_notifier.send_media_message.side_effect = [1, 2]

    assert await announcer.send_new_releases() == 2

    kinds = [call.args[0].kind for call in mock_notifier.send_media_message.await_args_list]
    assert kinds == [MediaKind.MOVIE, MediaKind.SERIES]
    headers = [call.args[0] for call in mock_notifier.send_message.await_args_list]
    assert "MOVIES" in headers[0]
    assert "TV SHOWS" in headers[1]


@pytest.mark.asyncio
async def test_heart_reaction_on_cached_message_requests(
    announcer: ReleaseAnnouncer,
    mock_seerr: AsyncMock,
    correlator: MessageCorrelator,
    series: MediaItem,
) -> None:
    series.seerr_id = 3
    correlator.cache(10, series)
    mock_seerr.get_media_status.return_value = AvailabilityStatus.UNAVAILABLE

    outcome = await announcer.handle_reaction(10, ["❤"], user_id=5, username="alice")

    assert outcome is not None
    assert outcome.state is RequestState.REQUESTED
    mock_seerr.request_tv.assert_awaited_once_with(3, [3])


@pytest.mark.asyncio
async def test_heart_reaction_on_ledger_only_message_still_resolves(
    announcer: ReleaseAnnouncer, mock_seerr: AsyncMock, ledger: NotificationLedger
) -> None:
    ledger.record("rt:m/old", "Old Movie", MediaKind.MOVIE, message_id=20)
    mock_seerr.find_by_title.return_value = 44
    mock_seerr.get_media_status.return_value = AvailabilityStatus.AVAILABLE

    outcome = await announcer.handle_reaction(20, ["\U0001f496"], user_id=5)

    assert outcome is not None
    assert outcome.state is RequestState.ALREADY_AVAILABLE
    mock_seerr.find_by_title.assert_awaited_once_with("Old Movie", MediaKind.MOVIE, None)


@pytest.mark.asyncio
async def test_reaction_on_unknown_message_is_ignored(
    announcer: ReleaseAnnouncer, mock_seerr: AsyncMock
) -> None:
    assert await announcer.handle_reaction(404, ["❤️"], user_id=5) is None
    mock_seerr.find_by_title.assert_not_awaited()
    mock_seerr.get_media_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_non_heart_and_anonymous_reactions_are_ignored(
    announcer: ReleaseAnnouncer, correlator: MessageCorrelator, series: MediaItem, mock_seerr: AsyncMock
) -> None:
    correlator.cache(10, series)

    assert await announcer.handle_reaction(10, ["\U0001f44d"], user_id=5) is None
    assert await announcer.handle_reaction(10, ["❤"], user_id=None) is None
    mock_seerr.get_media_status.assert_not_awaited()


def test_stats_reports_ledger_counts(announcer: ReleaseAnnouncer, ledger: NotificationLedger) -> None:
    ledger.record("rt:m/a", "A", MediaKind.MOVIE)
    ledger.record("rt:tv/b", "B", MediaKind.SERIES, season=1)

    counts = announcer.stats()

    assert (counts.total, counts.movies, counts.series) == (2, 1, 1)
    assert "Total notifications: 2" in announcer.stats_text()


@pytest.mark.asyncio
async def test_health_check_requires_rotten_tomatoes(
    announcer: ReleaseAnnouncer, mock_content: AsyncMock
) -> None:
    mock_content.browse_tv.side_effect = ContentSourceError("unreachable")
    with pytest.raises(StartupCheckError):
        await announcer.check_health()

    mock_content.browse_tv.side_effect = None
    mock_content.browse_tv.return_value = []
    with pytest.raises(StartupCheckError):
        await announcer.check_health()


@pytest.mark.asyncio
async def test_health_check_tolerates_seerr_failure(
    announcer: ReleaseAnnouncer, mock_content: AsyncMock, mock_seerr: AsyncMock
) -> None:
    mock_content.browse_tv.return_value = [_series("andor")]
    mock_seerr.search.side_effect = SeerrUnreachableError("down")

    await announcer.check_health()

    mock_seerr.search.assert_awaited_once_with("test")
