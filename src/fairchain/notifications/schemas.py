"""Response schemas for the ledger (notification) endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from fairchain.ledger.schemas import NotificationResponse


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int


class UnreadCountResponse(BaseModel):
    unread_count: int
