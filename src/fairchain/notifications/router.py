"""Ledger API: the caller's notification history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.auth.dependencies import get_active_account
from fairchain.database import get_session
from fairchain.db.models import Account, NotificationType
from fairchain.ledger.schemas import build_notification_response
from fairchain.notifications.schemas import NotificationListResponse, UnreadCountResponse
from fairchain.notifications.service import (
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
)

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    type: NotificationType | None = Query(None),  # noqa: A002
    account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
):
    """List the caller's ledger entries, newest first."""
    entries, total = await get_notifications(db, account.id, page, per_page, type)
    return NotificationListResponse(
        notifications=[build_notification_response(e) for e in entries],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/notifications/{notification_id}/read", status_code=200)
async def mark_notification_read(
    notification_id: int,
    account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
):
    found = await mark_as_read(db, account.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"detail": "Notification marked as read"}


@router.post("/notifications/read-all", status_code=200)
async def mark_all_read(
    account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
):
    count = await mark_all_as_read(db, account.id)
    await db.commit()
    return {"detail": f"Marked {count} notifications as read"}


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_notification_count(
    account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
):
    count = await get_unread_count(db, account.id)
    return UnreadCountResponse(unread_count=count)
