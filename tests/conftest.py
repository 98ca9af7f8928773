# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123:test-token")
os.environ.setdefault("TELEGRAM_CHAT_ID", "-100123")
os.environ.setdefault("SEERR_URL", "http://seerr.test")
os.environ.setdefault("SEERR_API_KEY", "test-key")

from premiarr.api.v1.endpoints import system as system_endpoints
from premiarr.clients.rotten_tomatoes import RottenTomatoesClient
from premiarr.clients.seerr import SeerrClient
from premiarr.clients.telegram import TelegramNotifier
from premiarr.db import build_session_factory, create_tables, drop_tables
from premiarr.main import app as fastapi_app
from premiarr.schemas.media import MediaItem, MediaKind
from premiarr.services.announcer import ReleaseAnnouncer
from premiarr.services.correlator import MessageCorrelator
from premiarr.services.ledger import NotificationLedger
from premiarr.services.orchestrator import RequestOrchestrator

TEST_DB_URL = "sqlite://"

# Reference "now" for release-date tests: Thursday, 19 February 2026, 20:00
NOW = datetime(2026, 2, 19, 20, 0, 0)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def ledger(session_factory: sessionmaker[Session]) -> NotificationLedger:
    return NotificationLedger(session_factory)


@pytest.fixture()
def correlator(ledger: NotificationLedger) -> MessageCorrelator:
    return MessageCorrelator(ledger)


@pytest.fixture()
def movie() -> MediaItem:
    return MediaItem(
        identifier="https://www.rottentomatoes.com/m/the_long_walk",
        title="The Long Walk",
        kind=MediaKind.MOVIE,
        release_date="Streaming Feb 17, 2026",
        tomato_score=88,
        audience_score=79,
    )


@pytest.fixture()
def series() -> MediaItem:
    return MediaItem(
        identifier="https://www.rottentomatoes.com/tv/severance",
        title="Severance",
        kind=MediaKind.SERIES,
        release_date="Latest Episode: Feb 19",
        current_season=3,
        tomato_score=96,
    )


@pytest.fixture()
def mock_seerr() -> AsyncMock:
    seerr = AsyncMock(spec=SeerrClient)
    seerr.configured = True
    return seerr


@pytest.fixture()
def mock_notifier() -> AsyncMock:
    notifier = AsyncMock(spec=TelegramNotifier)
    notifier.chat_id = "-100123"
    return notifier


@pytest.fixture()
def mock_content() -> AsyncMock:
    return AsyncMock(spec=RottenTomatoesClient)


@pytest.fixture()
def recorded_sleeps() -> list[float]:
    return []


@pytest.fixture()
def fake_sleep(recorded_sleeps: list[float]):
    async def _sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)

    return _sleep


@pytest.fixture()
def announcer(
    mock_content: AsyncMock,
    mock_seerr: AsyncMock,
    mock_notifier: AsyncMock,
    ledger: NotificationLedger,
    correlator: MessageCorrelator,
    fake_sleep,
) -> ReleaseAnnouncer:
    return ReleaseAnnouncer(
        mock_content,
        mock_seerr,
        mock_notifier,
        ledger,
        correlator,
        RequestOrchestrator(mock_seerr, mock_notifier),
        tv_filter="critics:fresh~sort:newest",
        movie_filter="critics:fresh~sort:newest",
        send_delay=0.5,
        sleep=fake_sleep,
        clock=lambda: NOW,
    )


@pytest.fixture()
def app(ledger: NotificationLedger) -> Iterator[FastAPI]:
    announcer = MagicMock(spec=ReleaseAnnouncer)
    announcer.send_new_releases = AsyncMock(return_value=2)
    fastapi_app.dependency_overrides[system_endpoints.get_ledger] = lambda: ledger
    fastapi_app.dependency_overrides[system_endpoints.get_announcer] = lambda: announcer
    fastapi_app.state.test_announcer = announcer
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    # Not used as a context manager: startup would build the real runtime
    return TestClient(app, base_url="http://test")
