"""Administrator operations.

Balance-bearing admin actions (manual credit, fee withdrawal) are settlements
and run through ``run_transaction``. Catalog and settings maintenance are
plain writes on the caller's session; the router commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.database import run_transaction
from fairchain.db.models import (
    Account,
    AppSettings,
    DailyCode,
    GrantRecord,
    KycRequest,
    KycRequestStatus,
    KycStatus,
    NotificationType,
    Role,
    Task,
    utcnow,
)
from fairchain.ledger.accounts import (
    Settlement,
    append_entry,
    credit,
    find_account_by_email,
    fmt_amount,
    lock_account,
    require_positive,
)
from fairchain.ledger.config import get_or_create_app_settings
from fairchain.ledger.errors import (
    AlreadyGranted,
    CodeNotFound,
    InsufficientBalance,
    InvalidInput,
    InvalidRoleChange,
    RecipientNotFound,
    TaskNotFound,
)
from fairchain.ledger.push import publish_settlement
from fairchain.rewards.service import normalize_code

logger = structlog.get_logger()

# AppSettings columns an admin may edit directly. The fee pool only moves
# through transfers and withdrawals.
EDITABLE_SETTINGS = frozenset({
    "daily_check_in_reward",
    "mining_reward",
    "transaction_fee",
    "min_send_amount",
    "referral_bonus",
    "ads_enabled",
    "maintenance_mode_enabled",
})
# Credited straight to balances; must stay above zero.
REWARD_SETTINGS = frozenset({"daily_check_in_reward", "mining_reward", "referral_bonus"})


# ---------------------------------------------------------------------------
# Manual credit
# ---------------------------------------------------------------------------


async def settle_manual_credit(
    db: AsyncSession,
    admin_id: int,
    email: str,
    amount: Decimal,
    reason: str,
    idempotency_key: str | None,
    now: datetime,
) -> Settlement:
    require_positive(amount)
    reason = reason.strip()
    if not reason:
        raise InvalidInput("Please provide a reason for the bonus.")

    found = await find_account_by_email(db, email)
    if found is None:
        raise RecipientNotFound()
    recipient = await lock_account(db, found.id)

    if idempotency_key:
        existing = await db.get(GrantRecord, (recipient.id, idempotency_key))
        if existing is not None:
            raise AlreadyGranted()
        db.add(GrantRecord(
            account_id=recipient.id,
            grant_key=idempotency_key,
            amount=amount,
            reason=reason,
            granted_by_id=admin_id,
            created_at=now,
        ))

    credit(recipient, amount)
    entry = append_entry(
        db, recipient.id, NotificationType.BONUS,
        "You Received a Bonus!",
        f"You have received a bonus of {fmt_amount(amount)} Fair for your good progress. "
        f"Reason: {reason}",
        amount, now,
    )
    await db.flush()
    return Settlement(account=recipient, entries=[entry], amount=amount)


async def credit_account(
    admin_id: int,
    email: str,
    amount: Decimal,
    reason: str,
    idempotency_key: str | None = None,
    *,
    now: datetime | None = None,
    redis: object | None = None,
) -> Settlement:
    """Add funds to an account's verified balance. Does not touch the fee pool."""
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_manual_credit(db, admin_id, email, amount, reason, idempotency_key, now)

    settlement = await run_transaction(work)
    logger.info(
        "manual_credit_settled",
        admin_id=admin_id,
        account_id=settlement.account.id,
        amount=str(amount),
        idempotency_key=idempotency_key,
    )
    await publish_settlement(redis, settlement)
    return settlement


# ---------------------------------------------------------------------------
# Fee withdrawal
# ---------------------------------------------------------------------------


async def settle_fee_withdrawal(
    db: AsyncSession, email: str, amount: Decimal, now: datetime
) -> Settlement:
    require_positive(amount)

    found = await find_account_by_email(db, email)
    if found is None:
        raise RecipientNotFound()
    recipient = await lock_account(db, found.id)

    app_settings = await get_or_create_app_settings(db, for_update=True)
    if amount > app_settings.admin_wallet_balance:
        raise InsufficientBalance(
            f"The fee wallet holds only {fmt_amount(app_settings.admin_wallet_balance)} Fair."
        )

    app_settings.admin_wallet_balance = app_settings.admin_wallet_balance - amount
    app_settings.updated_at = now
    credit(recipient, amount)
    entry = append_entry(
        db, recipient.id, NotificationType.RECEIVE,
        "Fee Wallet Withdrawal",
        f"You received {fmt_amount(amount)} Fair from the fee wallet.",
        amount, now,
    )
    await db.flush()
    return Settlement(account=recipient, entries=[entry], amount=amount)


async def withdraw_fees(
    admin_id: int,
    email: str,
    amount: Decimal,
    *,
    now: datetime | None = None,
    redis: object | None = None,
) -> Settlement:
    """Move accumulated transfer fees from the fee pool to an account."""
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_fee_withdrawal(db, email, amount, now)

    settlement = await run_transaction(work)
    logger.info(
        "fee_withdrawal_settled",
        admin_id=admin_id,
        account_id=settlement.account.id,
        amount=str(amount),
    )
    await publish_settlement(redis, settlement)
    return settlement


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


async def change_role(db: AsyncSession, admin: Account, email: str, role: Role) -> Account:
    """Set the role of the account with ``email``. Admins cannot demote themselves."""
    target = await find_account_by_email(db, email, for_update=True)
    if target is None:
        raise RecipientNotFound("User not found.")
    if target.id == admin.id and role is not Role.ADMIN:
        raise InvalidRoleChange("You cannot remove your own admin role.")
    target.role = role
    await db.flush()
    logger.info("role_changed", admin_id=admin.id, account_id=target.id, role=role.value)
    return target


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


async def list_tasks(db: AsyncSession) -> list[Task]:
    result = await db.execute(select(Task).order_by(Task.created_at.desc(), Task.id.desc()))
    return list(result.scalars().all())


async def create_task(
    db: AsyncSession,
    title: str,
    reward: Decimal,
    url: str | None = None,
    verification_text: str | None = None,
) -> Task:
    require_positive(reward)
    task = Task(
        title=title.strip(),
        reward=reward,
        url=url or None,
        verification_text=(verification_text or "").strip() or None,
        created_at=utcnow(),
    )
    db.add(task)
    await db.flush()
    logger.info("task_created", task_id=task.id, reward=str(reward))
    return task


async def update_task(db: AsyncSession, task_id: int, **changes: Any) -> Task:
    task = await db.get(Task, task_id)
    if task is None:
        raise TaskNotFound()
    if changes.get("reward") is not None:
        require_positive(changes["reward"])
        task.reward = changes["reward"]
    if changes.get("title") is not None:
        task.title = changes["title"].strip()
    if "url" in changes:
        task.url = changes["url"] or None
    if "verification_text" in changes:
        task.verification_text = (changes["verification_text"] or "").strip() or None
    await db.flush()
    return task


async def delete_task(db: AsyncSession, task_id: int) -> None:
    task = await db.get(Task, task_id)
    if task is None:
        raise TaskNotFound()
    await db.delete(task)
    await db.flush()
    logger.info("task_deleted", task_id=task_id)


# ---------------------------------------------------------------------------
# Daily codes
# ---------------------------------------------------------------------------


async def list_daily_codes(db: AsyncSession) -> list[DailyCode]:
    result = await db.execute(select(DailyCode).order_by(DailyCode.valid_until.desc()))
    return list(result.scalars().all())


async def create_daily_code(
    db: AsyncSession, code: str, reward_amount: Decimal, valid_until: datetime
) -> DailyCode:
    code = normalize_code(code)
    if not code:
        raise InvalidInput("Please fill out all fields for the daily code.")
    require_positive(reward_amount)
    if await db.get(DailyCode, code) is not None:
        raise InvalidInput(f'Code "{code}" already exists.')

    daily_code = DailyCode(
        code=code, reward_amount=reward_amount, valid_until=valid_until, created_at=utcnow()
    )
    db.add(daily_code)
    await db.flush()
    logger.info("daily_code_created", code=code, reward=str(reward_amount))
    return daily_code


async def update_daily_code(
    db: AsyncSession,
    code: str,
    reward_amount: Decimal | None = None,
    valid_until: datetime | None = None,
) -> DailyCode:
    daily_code = await db.get(DailyCode, normalize_code(code))
    if daily_code is None:
        raise CodeNotFound("Daily code not found.")
    if reward_amount is not None:
        daily_code.reward_amount = require_positive(reward_amount)
    if valid_until is not None:
        daily_code.valid_until = valid_until
    await db.flush()
    return daily_code


async def delete_daily_code(db: AsyncSession, code: str) -> None:
    daily_code = await db.get(DailyCode, normalize_code(code))
    if daily_code is None:
        raise CodeNotFound("Daily code not found.")
    await db.delete(daily_code)
    await db.flush()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


async def update_app_settings(db: AsyncSession, **changes: Any) -> AppSettings:
    """Apply a partial update. Unknown or read-only keys are rejected."""
    unknown = set(changes) - EDITABLE_SETTINGS
    if unknown:
        raise InvalidInput(f"Settings not editable: {', '.join(sorted(unknown))}")

    row = await get_or_create_app_settings(db, for_update=True)
    for key, value in changes.items():
        if value is None:
            continue
        if isinstance(value, Decimal) and value < 0:
            raise InvalidInput(f"{key} must not be negative.")
        if key in REWARD_SETTINGS and value <= 0:
            raise InvalidInput(f"{key} must be greater than zero.")
        setattr(row, key, value)
    row.updated_at = utcnow()
    await db.flush()
    logger.info("app_settings_updated", fields=sorted(k for k, v in changes.items() if v is not None))
    return row


async def set_maintenance_mode(db: AsyncSession, enabled: bool) -> AppSettings:
    return await update_app_settings(db, maintenance_mode_enabled=enabled)


# ---------------------------------------------------------------------------
# Users and dashboard
# ---------------------------------------------------------------------------


async def list_accounts(
    db: AsyncSession,
    search: str | None = None,
    kyc_status: KycStatus | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Account], int]:
    filters = []
    if search:
        pattern = f"%{search.strip().lower()}%"
        filters.append(or_(
            func.lower(Account.email).like(pattern),
            func.lower(Account.username).like(pattern),
            func.lower(Account.full_name).like(pattern),
        ))
    if kyc_status is not None:
        filters.append(Account.kyc_status == kyc_status)

    total = (await db.execute(select(func.count()).select_from(Account).where(*filters))).scalar_one()
    result = await db.execute(
        select(Account)
        .where(*filters)
        .order_by(Account.created_at.desc(), Account.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


@dataclass(frozen=True)
class DashboardStats:
    total_users: int
    total_verified: int
    total_pending: int
    total_rejected: int
    total_not_submitted: int
    total_coins: Decimal
    admin_wallet_balance: Decimal


async def get_dashboard_stats(db: AsyncSession) -> DashboardStats:
    total_users = (await db.execute(select(func.count()).select_from(Account))).scalar_one()
    total_verified = (await db.execute(
        select(func.count()).select_from(Account).where(Account.kyc_status == KycStatus.APPROVED)
    )).scalar_one()

    by_status = dict((await db.execute(
        select(KycRequest.status, func.count()).group_by(KycRequest.status)
    )).all())
    total_pending = by_status.get(KycRequestStatus.PENDING, 0)
    total_rejected = by_status.get(KycRequestStatus.REJECTED, 0)

    coins = (await db.execute(
        select(func.coalesce(func.sum(Account.verified_balance + Account.unverified_balance), 0))
    )).scalar_one()
    app_settings = await get_or_create_app_settings(db)

    return DashboardStats(
        total_users=total_users,
        total_verified=total_verified,
        total_pending=total_pending,
        total_rejected=total_rejected,
        total_not_submitted=max(0, total_users - total_verified - total_pending - total_rejected),
        total_coins=Decimal(str(coins)),
        admin_wallet_balance=app_settings.admin_wallet_balance,
    )


async def top_referrers(db: AsyncSession, limit: int = 10) -> list[Account]:
    total = Account.referrals_verified + Account.referrals_unverified
    result = await db.execute(
        select(Account).where(total > 0).order_by(total.desc(), Account.id.asc()).limit(limit)
    )
    return list(result.scalars().all())
