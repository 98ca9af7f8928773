"""Database engine and session configuration."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def _enable_wal(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=FULL")
    finally:
        cursor.close()


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine for the ledger database.

    File-backed SQLite databases get their parent directory created and run in
    WAL mode so readers never block the single writer.
    """
    connect_args: dict[str, object] = {}
    db_file: str | None = None
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        db_file = database_url.partition(":///")[2] or None
        if db_file == ":memory:":
            db_file = None

    if db_file:
        Path(db_file).expanduser().parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,
        echo=echo,
    )

    if db_file:
        event.listen(engine, "connect", _enable_wal)

    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to *engine*."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    # Ensure model modules are imported so that metadata is populated.
    import premiarr.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)
