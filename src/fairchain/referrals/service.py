"""Referral codes and referral bonus bookkeeping.

Rules:
- Each account gets a server-generated 8-char A-Z0-9 referral code
- Registering with a code credits the referrer's *unverified* balance
- When the referred account passes KYC, that credit is reclassified to the
  referrer's verified balance (once) and the counters move from unverified
  to verified
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.db.models import Account, Notification, NotificationType, Referral, ReferralStatus
from fairchain.ledger.accounts import Settlement, append_entry, credit, fmt_amount, lock_account
from fairchain.ledger.config import RewardConfig

REFERRAL_CHARSET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 8


def generate_referral_code() -> str:
    return "".join(secrets.choice(REFERRAL_CHARSET) for _ in range(REFERRAL_CODE_LENGTH))


def normalize_referral_code(code: str) -> str:
    return code.strip().upper()


async def generate_unique_referral_code(db: AsyncSession) -> str:
    """Generate a referral code that doesn't already exist in the database."""
    for _ in range(10):
        code = generate_referral_code()
        existing = await db.execute(select(Account.id).where(Account.referral_code == code))
        if existing.scalar_one_or_none() is None:
            return code
    raise RuntimeError("Failed to generate unique referral code after 10 attempts")


async def find_referrer(db: AsyncSession, code: str | None) -> Account | None:
    if not code:
        return None
    result = await db.execute(
        select(Account).where(Account.referral_code == normalize_referral_code(code))
    )
    return result.scalar_one_or_none()


async def settle_referral_signup(
    db: AsyncSession,
    referrer_id: int,
    referee: Account,
    config: RewardConfig,
    now: datetime,
) -> Settlement:
    """Record a referral and credit the bonus to the referrer's unverified balance."""
    referrer = await lock_account(db, referrer_id)
    bonus = config.referral_bonus

    referrer.referrals_unverified += 1
    entries: list[Notification] = []
    if bonus > 0:
        credit(referrer, bonus, unverified=True)
        entries.append(append_entry(
            db, referrer.id, NotificationType.BONUS,
            "New Referral",
            f"{referee.username} joined with your referral code. "
            f"+{fmt_amount(bonus)} Fair is held until they complete KYC.",
            bonus, now,
        ))

    referral = Referral(
        referee_id=referee.id,
        referrer_id=referrer.id,
        bonus_amount=bonus,
        status=ReferralStatus.UNVERIFIED,
        created_at=now,
    )
    db.add(referral)
    referee.referred_by_id = referrer.id
    return Settlement(account=referrer, entries=entries, amount=bonus)


async def settle_referral_verification(
    db: AsyncSession, referee: Account, now: datetime
) -> tuple[Account | None, list[Notification]]:
    """Reclassify the referrer's held bonus once the referee is KYC-approved.

    Returns the referrer (None when nothing changed) and the entries written.
    """
    result = await db.execute(
        select(Referral).where(Referral.referee_id == referee.id).with_for_update()
    )
    referral = result.scalar_one_or_none()
    if referral is None or referral.status is ReferralStatus.VERIFIED:
        return None, []

    referrer = await lock_account(db, referral.referrer_id)
    referrer.referrals_unverified = max(0, referrer.referrals_unverified - 1)
    referrer.referrals_verified += 1
    entries: list[Notification] = []

    moved = min(referral.bonus_amount, referrer.unverified_balance)
    if moved > 0:
        referrer.unverified_balance = referrer.unverified_balance - moved
        referrer.verified_balance = referrer.verified_balance + moved
        entries.append(append_entry(
            db, referrer.id, NotificationType.BONUS,
            "Referral Verified",
            f"{referee.username} completed KYC. "
            f"{fmt_amount(moved)} Fair moved to your verified balance.",
            moved, now,
        ))

    referral.status = ReferralStatus.VERIFIED
    referral.verified_at = now
    return referrer, entries


async def list_referrals(db: AsyncSession, referrer_id: int) -> list[tuple[Referral, Account]]:
    """Referrals made by an account, newest first, with the referred account."""
    result = await db.execute(
        select(Referral, Account)
        .join(Account, Account.id == Referral.referee_id)
        .where(Referral.referrer_id == referrer_id)
        .order_by(Referral.created_at.desc())
    )
    return [(referral, account) for referral, account in result.all()]


def total_held(referrals: list[tuple[Referral, Account]]) -> Decimal:
    return sum(
        (r.bonus_amount for r, _ in referrals if r.status is ReferralStatus.UNVERIFIED),
        Decimal("0"),
    )
