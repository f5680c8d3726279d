"""Ledger entry queries.

Entries are only ever created by settlement operations (see
``fairchain.ledger.accounts.append_entry``). The one mutation allowed here is
flipping ``is_read``.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.db.models import Notification, NotificationType


async def get_notifications(
    db: AsyncSession,
    account_id: int,
    page: int = 1,
    per_page: int = 20,
    type_: NotificationType | None = None,
) -> tuple[list[Notification], int]:
    """Get an account's ledger entries (paginated, most recent first)."""
    offset = (page - 1) * per_page
    filters = [Notification.account_id == account_id]
    if type_ is not None:
        filters.append(Notification.type == type_)

    total_result = await db.execute(
        select(func.count()).select_from(Notification).where(*filters)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(Notification)
        .where(*filters)
        .order_by(Notification.timestamp.desc(), Notification.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def mark_as_read(db: AsyncSession, account_id: int, notification_id: int) -> bool:
    """Mark a single entry as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.account_id == account_id)
        .values(is_read=True)
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, account_id: int) -> int:
    """Mark all unread entries as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.account_id == account_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.flush()
    return result.rowcount


async def get_unread_count(db: AsyncSession, account_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.account_id == account_id, Notification.is_read.is_(False))
    )
    return result.scalar_one()
