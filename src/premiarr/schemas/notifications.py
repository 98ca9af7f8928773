"""Pydantic schemas for the status API."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NotificationStats(BaseModel):
    """Counts of recorded announcements."""

    total: int = Field(..., ge=0)
    movies: int = Field(..., ge=0)
    series: int = Field(..., ge=0)


class NotificationOut(BaseModel):
    """A single announcement from the ledger."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: str
    title: str
    kind: str
    season: int | None = None
    message_id: int | None = None
    notified_at: datetime


class AnnounceResult(BaseModel):
    """Result of a manually triggered announcement cycle."""

    announced: int = Field(..., ge=0)
