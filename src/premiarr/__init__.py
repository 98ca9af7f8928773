"""Premiarr: new-release announcements on Telegram with Jellyseerr requests."""

__version__ = "0.1.0"
