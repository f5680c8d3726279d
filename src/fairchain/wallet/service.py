"""Peer-to-peer transfer of verified balance.

A transfer touches three records in one transaction: the sender, the
recipient and the fee pool on the settings row. Guards run in a fixed order
so the caller always gets the most actionable failure first.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.database import run_transaction
from fairchain.db.models import Account, NotificationType, utcnow
from fairchain.ledger.accounts import (
    Settlement,
    append_entry,
    credit,
    debit,
    find_account_by_email,
    fmt_amount,
    lock_account,
    require_positive,
)
from fairchain.ledger.config import RewardConfig, get_or_create_app_settings, load_reward_config
from fairchain.ledger.errors import (
    AccountNotFound,
    AmountTooLow,
    InsufficientBalance,
    KycRequired,
    RecipientNotFound,
    SelfTransfer,
)
from fairchain.ledger.push import publish_settlement

logger = structlog.get_logger()


async def _lock_pair(db: AsyncSession, first_id: int, second_id: int) -> tuple[Account, Account]:
    """Lock two accounts in ascending id order to avoid lock-order deadlocks."""
    low, high = sorted((first_id, second_id))
    locked = {low: await lock_account(db, low), high: await lock_account(db, high)}
    return locked[first_id], locked[second_id]


async def settle_transfer(
    db: AsyncSession,
    sender_id: int,
    recipient_email: str,
    amount: Decimal,
    config: RewardConfig,
    now: datetime,
) -> Settlement:
    require_positive(amount)
    fee = config.transaction_fee

    sender = await db.get(Account, sender_id)
    if sender is None:
        raise AccountNotFound()
    if not sender.is_kyc_verified:
        raise KycRequired()
    if amount < config.min_send_amount:
        raise AmountTooLow(f"The minimum amount to send is {fmt_amount(config.min_send_amount)} Fair.")

    recipient = await find_account_by_email(db, recipient_email)
    if recipient is None:
        raise RecipientNotFound()
    if recipient.id == sender.id:
        raise SelfTransfer()

    sender, recipient = await _lock_pair(db, sender.id, recipient.id)
    if not sender.is_kyc_verified:
        raise KycRequired()

    total_debit = amount + fee
    if total_debit > sender.verified_balance:
        raise InsufficientBalance()

    debit(sender, total_debit)
    credit(recipient, amount)
    if fee > 0:
        app_settings = await get_or_create_app_settings(db, for_update=True)
        app_settings.admin_wallet_balance = app_settings.admin_wallet_balance + fee
        app_settings.updated_at = now

    sent = append_entry(
        db, sender.id, NotificationType.SEND,
        "Sent Fair",
        f"You sent {fmt_amount(amount)} Fair to {recipient.email}.",
        -amount, now,
    )
    received = append_entry(
        db, recipient.id, NotificationType.RECEIVE,
        "Received Fair",
        f"You received {fmt_amount(amount)} Fair from {sender.email}.",
        amount, now,
    )
    await db.flush()
    return Settlement(
        account=sender, counterparties=[recipient], entries=[sent, received], amount=amount
    )


async def send_funds(
    sender_id: int,
    recipient_email: str,
    amount: Decimal,
    *,
    now: datetime | None = None,
    redis: object | None = None,
) -> Settlement:
    """Move ``amount`` from sender to recipient, charging the configured fee to the sender."""
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_transfer(
            db, sender_id, recipient_email, amount, await load_reward_config(db), now
        )

    settlement = await run_transaction(work)
    logger.info(
        "transfer_settled",
        sender_id=sender_id,
        recipient_id=settlement.counterparties[0].id,
        amount=str(amount),
    )
    await publish_settlement(redis, settlement)
    return settlement
