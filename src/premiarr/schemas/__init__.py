"""Media types and API response schemas."""

from .media import AvailabilityStatus, MediaItem, MediaKind
from .notifications import AnnounceResult, NotificationOut, NotificationStats

__all__ = [
    "AvailabilityStatus",
    "MediaItem",
    "MediaKind",
    "AnnounceResult",
    "NotificationOut",
    "NotificationStats",
]
