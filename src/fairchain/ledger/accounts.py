"""Account store primitives shared by every settlement operation.

All reads that feed a guard go through ``lock_account`` so that, on
PostgreSQL, the row stays locked until the surrounding transaction ends.
Balance changes go through ``credit``/``debit`` so the non-negative invariant
is checked in one place, and every change is paired with ``append_entry``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.db.models import Account, Notification, NotificationType, utcnow
from fairchain.ledger.errors import AccountNotFound, InsufficientBalance, InvalidAmount


@dataclass
class Settlement:
    """Outcome of a committed settlement: touched accounts and the entries written."""

    account: Account
    entries: list[Notification] = field(default_factory=list)
    counterparties: list[Account] = field(default_factory=list)
    amount: Decimal = Decimal("0")
    ad_bonus_available: bool = False


async def lock_account(db: AsyncSession, account_id: int) -> Account:
    """Load an account for update, raising ``AccountNotFound`` if absent."""
    result = await db.execute(
        select(Account)
        .where(Account.id == account_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise AccountNotFound()
    return account


async def find_account_by_email(
    db: AsyncSession, email: str, *, for_update: bool = False
) -> Account | None:
    """Resolve an account by email (case-insensitive)."""
    stmt = select(Account).where(func.lower(Account.email) == email.strip().lower())
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def require_positive(amount: Decimal) -> Decimal:
    if amount is None or amount <= 0:
        raise InvalidAmount()
    return amount


def credit(account: Account, amount: Decimal, *, unverified: bool = False) -> None:
    require_positive(amount)
    if unverified:
        account.unverified_balance = account.unverified_balance + amount
    else:
        account.verified_balance = account.verified_balance + amount


def debit(account: Account, amount: Decimal) -> None:
    """Take ``amount`` from the verified balance or refuse."""
    require_positive(amount)
    if amount > account.verified_balance:
        raise InsufficientBalance()
    account.verified_balance = account.verified_balance - amount


def append_entry(
    db: AsyncSession,
    account_id: int,
    type_: NotificationType,
    title: str,
    description: str,
    amount: Decimal | None = None,
    now: datetime | None = None,
) -> Notification:
    """Add a ledger entry to the current transaction."""
    entry = Notification(
        account_id=account_id,
        type=type_,
        title=title,
        description=description,
        amount=amount,
        is_read=False,
        timestamp=now or utcnow(),
    )
    db.add(entry)
    return entry


def fmt_amount(amount: Decimal) -> str:
    """Human-readable amount without trailing zeros (``100``, ``0.3``)."""
    return format(Decimal(amount).normalize(), "f")
