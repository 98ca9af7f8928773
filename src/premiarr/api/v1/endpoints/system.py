"""System and status endpoints for the Premiarr API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from premiarr.schemas.notifications import AnnounceResult, NotificationOut, NotificationStats
from premiarr.services.announcer import ReleaseAnnouncer
from premiarr.services.ledger import NotificationLedger

if TYPE_CHECKING:
    from premiarr.runtime import PremiarrRuntime

router = APIRouter(prefix="/system", tags=["system"])


def _runtime(request: Request) -> PremiarrRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Premiarr is not running",
        )
    return runtime


def get_ledger(request: Request) -> NotificationLedger:
    """Get the notification ledger of the running app."""
    return _runtime(request).ledger


def get_announcer(request: Request) -> ReleaseAnnouncer:
    """Get the release announcer of the running app."""
    return _runtime(request).announcer


LedgerDep = Annotated[NotificationLedger, Depends(get_ledger)]
AnnouncerDep = Annotated[ReleaseAnnouncer, Depends(get_announcer)]


@router.get("/stats", response_model=NotificationStats)
async def get_stats(ledger: LedgerDep) -> NotificationStats:
    """Return announcement counts by kind."""
    counts = ledger.counts()
    return NotificationStats(total=counts.total, movies=counts.movies, series=counts.series)


@router.get("/notifications", response_model=list[NotificationOut])
async def list_notifications(
    ledger: LedgerDep,
    limit: int = Query(20, ge=1, le=200),
) -> list[NotificationOut]:
    """Return the most recent announcements, newest first.

    Args:
        ledger: Notification ledger
        limit: Maximum number of records to return

    Returns:
        Ledger records ordered by notification time, most recent first
    """
    return [
        NotificationOut(
            id=record.id,
            item_id=record.item_id,
            title=record.title,
            kind=record.kind.value,
            season=record.season,
            message_id=record.message_id,
            notified_at=record.notified_at,
        )
        for record in ledger.recent_notifications(limit)
    ]


@router.post("/announce", response_model=AnnounceResult)
async def announce(announcer: AnnouncerDep) -> AnnounceResult:
    """Run an announcement cycle now and report how many items were sent."""
    announced = await announcer.send_new_releases()
    return AnnounceResult(announced=announced)
