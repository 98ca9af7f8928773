"""Command-line entry point.

Usage:
  premiarr serve      # daemon: status API, scheduler and Telegram bot
  premiarr run-once   # cron: health checks, one announcement cycle, exit
  premiarr stats      # print ledger counts

Without a sub-command the mode comes from RUN_MODE.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from premiarr.core.logging import configure_logging, resolve_level
from premiarr.core.settings import Settings, get_settings
from premiarr.services.announcer import StartupCheckError

logger = logging.getLogger(__name__)

BANNER = "\U0001f3ac Premiarr - TV Premiere Notifications"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="premiarr", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="run the daemon with the status API")
    sub.add_parser("run-once", help="run one announcement cycle and exit")
    sub.add_parser("stats", help="print notification counts")
    return parser


def serve(settings: Settings) -> int:
    import uvicorn

    uvicorn.run(
        "premiarr.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=logging.getLevelName(resolve_level(settings.log_level)).lower(),
    )
    return 0


async def _run_once(settings: Settings) -> int:
    from premiarr.runtime import PremiarrRuntime

    runtime = PremiarrRuntime(settings)
    try:
        await runtime.run_once()
    except StartupCheckError as exc:
        logger.error("Health checks failed: %s. Exiting.", exc)
        return 1
    finally:
        await runtime.stop()
    return 0


def run_once(settings: Settings) -> int:
    return asyncio.run(_run_once(settings))


def stats(settings: Settings) -> int:
    from premiarr.db import build_engine, build_session_factory, create_tables
    from premiarr.services.ledger import NotificationLedger

    engine = build_engine(settings.database_url)
    try:
        create_tables(engine)
        counts = NotificationLedger(build_session_factory(engine)).counts()
    finally:
        engine.dispose()
    print(f"Total notifications: {counts.total}")
    print(f"Movies: {counts.movies}")
    print(f"TV Shows: {counts.series}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    command = args.command
    if command is None:
        command = "serve" if settings.run_mode == "daemon" else "run-once"

    if command != "stats":
        logger.info("=" * 50)
        logger.info(BANNER)
        logger.info("=" * 50)

    if command == "serve":
        return serve(settings)
    if command == "run-once":
        return run_once(settings)
    return stats(settings)


if __name__ == "__main__":
    sys.exit(main())
