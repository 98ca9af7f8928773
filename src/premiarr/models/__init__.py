# src/premiarr/models/__init__.py
"""SQLAlchemy models for Premiarr."""

from .notification import MEDIA_KIND_MOVIE, MEDIA_KIND_SERIES, NotifiedItem

__all__ = ["MEDIA_KIND_MOVIE", "MEDIA_KIND_SERIES", "NotifiedItem"]
