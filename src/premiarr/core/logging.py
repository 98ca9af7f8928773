"""Logging setup shared by the CLI and the status API."""

from __future__ import annotations

import logging

LOG_FORMAT = "[%(levelname)s] %(asctime)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(name: str | None) -> int:
    """Map a LOG_LEVEL value to a logging level, defaulting to INFO."""
    return _LEVELS.get((name or "").strip().lower(), logging.INFO)


def configure_logging(level: str | None = None) -> None:
    """Install a single console handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(resolve_level(level))

    for handler in list(root.handlers):
        if getattr(handler, "_premiarr", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    handler._premiarr = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # httpx logs every request at INFO; keep it for DEBUG runs only
    logging.getLogger("httpx").setLevel(
        logging.DEBUG if root.level <= logging.DEBUG else logging.WARNING
    )
