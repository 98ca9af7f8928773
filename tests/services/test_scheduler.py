from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger

from premiarr.services.announcer import ReleaseAnnouncer
from premiarr.services.scheduler import DAILY_JOB_ID, AnnouncementScheduler


@pytest.fixture
def mock_announcer() -> MagicMock:
    announcer = MagicMock(spec=ReleaseAnnouncer)
    announcer.send_new_releases = AsyncMock(return_value=4)
    return announcer


def test_invalid_cron_expression_is_rejected(mock_announcer: MagicMock) -> None:
    with pytest.raises(ValueError):
        AnnouncementScheduler(mock_announcer, "not a cron")


def test_start_registers_single_instance_job(mock_announcer: MagicMock) -> None:
    backend = MagicMock()
    backend.running = False
    scheduler = AnnouncementScheduler(mock_announcer, "0 8 * * *", scheduler=backend)

    scheduler.start()

    backend.add_job.assert_called_once()
    args, kwargs = backend.add_job.call_args
    assert args[0] == scheduler.run_cycle
    assert isinstance(args[1], CronTrigger)
    assert kwargs["id"] == DAILY_JOB_ID
    assert kwargs["max_instances"] == 1
    backend.start.assert_called_once()


def test_stop_shuts_down_running_scheduler(mock_announcer: MagicMock) -> None:
    backend = MagicMock()
    backend.running = True
    scheduler = AnnouncementScheduler(mock_announcer, "0 8 * * *", scheduler=backend)

    scheduler.stop()

    backend.shutdown.assert_called_once_with(wait=False)


@pytest.mark.asyncio
async def test_run_cycle_delegates_to_announcer(mock_announcer: MagicMock) -> None:
    scheduler = AnnouncementScheduler(mock_announcer, "30 18 * * 1-5", scheduler=MagicMock())

    assert await scheduler.run_cycle() == 4
    mock_announcer.send_new_releases.assert_awaited_once()
