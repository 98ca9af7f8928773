"""Telegram HTML formatting for announcements and replies."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

from dateutil import parser as dateparser

from premiarr.schemas.media import AvailabilityStatus, MediaItem, MediaKind

HEART_EMOJIS = frozenset({"❤", "❤️", "\U0001fa77", "\U0001f497", "\U0001f496"})

SYNOPSIS_LIMIT = 200
FRESH_THRESHOLD = 60

_MONTH_DAY_RE = re.compile(
    r"\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2}(?:,?\s+\d{4})?",
    re.IGNORECASE,
)

_STATUS_LINES = {
    AvailabilityStatus.AVAILABLE: "✅ Available",
    AvailabilityStatus.REQUESTED: "\U0001f4e5 Already Requested",
    AvailabilityStatus.PENDING: "⏳ Pending",
    AvailabilityStatus.UNAVAILABLE: "➕ Not in library",
}


def is_heart_emoji(emoji: str) -> bool:
    return emoji in HEART_EMOJIS


def escape_html(text: str) -> str:
    """Escape text for Telegram's HTML parse mode."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def format_release_date(text: str | None, today: date | None = None) -> str | None:
    """Return the month/day part of a release text, marked today or yesterday."""
    if not text:
        return None

    today = today or date.today()
    match = _MONTH_DAY_RE.search(text)
    if not match:
        return text

    date_text = match.group(0)
    try:
        released = dateparser.parse(date_text, default=datetime(today.year, 1, 1)).date()
    except (ValueError, OverflowError):
        return date_text

    if released == today:
        return f"{date_text} (today)"
    if released == today - timedelta(days=1):
        return f"{date_text} (yesterday)"
    return date_text


def format_media_message(item: MediaItem, today: date | None = None) -> str:
    """Render an announcement for *item* in Telegram HTML."""
    lines: list[str] = []

    emoji = "\U0001f3a5" if item.kind is MediaKind.MOVIE else "\U0001f3ac"
    links = []
    if item.imdb_id:
        links.append(f'<a href="https://www.imdb.com/title/{item.imdb_id}">IMDB</a>')
    links.append(f'<a href="{escape_html(item.identifier)}">RT</a>')
    lines.append(f"{emoji} <b>{escape_html(item.title)}</b> ({' | '.join(links)})")
    lines.append(f"\U0001f4cc {item.kind.label}")

    released = format_release_date(item.release_date, today)
    if released:
        lines.append(f"\U0001f4c5 {escape_html(released)}")

    scores = []
    if item.tomato_score is not None:
        fresh = item.certified_fresh or item.tomato_score >= FRESH_THRESHOLD
        icon = "\U0001f345" if fresh else "\U0001f922"
        scores.append(f"{icon} {item.tomato_score}%")
    if item.audience_score is not None:
        icon = "\U0001f37f" if item.audience_score >= FRESH_THRESHOLD else "\U0001f44e"
        scores.append(f"{icon} {item.audience_score}%")
    if scores:
        lines.append(" | ".join(scores))

    if item.certified_fresh:
        lines.append("✨ <b>Certified Fresh</b>")

    if item.network:
        lines.append(f"\U0001f4fa {escape_html(item.network)}")

    if item.status is not None:
        lines.append(_STATUS_LINES[item.status])

    if item.synopsis:
        synopsis = item.synopsis
        if len(synopsis) > SYNOPSIS_LIMIT:
            synopsis = synopsis[: SYNOPSIS_LIMIT - 3] + "..."
        lines.append("")
        lines.append(f"<i>{escape_html(synopsis)}</i>")

    lines.append("")
    lines.append("❤️ React to request this show")
    return "\n".join(lines)


def format_section_header(kind: MediaKind, today: date | None = None) -> str:
    """Boxed header sent before a batch of announcements."""
    today = today or date.today()
    if kind is MediaKind.MOVIE:
        title = "\U0001f3a5 MOVIES"
    else:
        title = "\U0001f4fa TV SHOWS"
    day = f"{today:%A}, {today:%b} {today.day}"
    return "\n".join(
        [
            "╔" + "═" * 22 + "╗",
            f"   {title}",
            f"   {day}",
            "╚" + "═" * 22 + "╝",
        ]
    )


def format_request_confirmation(username: str | None, title: str) -> str:
    who = f"@{username}" if username else "Someone"
    return f"✅ {who} requested <b>{escape_html(title)}</b> on Jellyseerr!"


def format_already_available(title: str) -> str:
    return f"✅ <b>{escape_html(title)}</b> is already available in your library!"


def format_already_requested(title: str) -> str:
    return f"\U0001f4e5 <b>{escape_html(title)}</b> has already been requested"
