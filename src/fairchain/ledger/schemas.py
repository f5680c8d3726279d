"""Response shapes for account state and ledger entries.

Shared by the HTTP routers and the live-subscription push, so both deliver
the same document.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel

from fairchain.config import get_settings
from fairchain.db.models import Account, Notification
from fairchain.ledger.accounts import Settlement
from fairchain.ledger.cooldown import as_utc, cooldown_state, format_remaining


class CooldownResponse(BaseModel):
    ready: bool
    remaining_seconds: int
    remaining_display: str
    started_at: datetime | None = None


class ReferralCounts(BaseModel):
    verified: int
    unverified: int


class AccountResponse(BaseModel):
    id: int
    email: str
    full_name: str
    username: str
    email_verified: bool
    verified_balance: float
    unverified_balance: float
    total_balance: float
    kyc_status: str
    role: str
    referral_code: str
    referrals: ReferralCounts
    check_in: CooldownResponse
    mining: CooldownResponse
    mining_active: bool
    created_at: datetime


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    description: str
    amount: float | None = None
    is_credit: bool
    is_read: bool
    timestamp: datetime


def build_cooldown(started_at: datetime | None, duration: timedelta, now: datetime) -> CooldownResponse:
    state = cooldown_state(started_at, duration, now)
    return CooldownResponse(
        ready=state.is_ready,
        remaining_seconds=int(state.remaining.total_seconds()),
        remaining_display=format_remaining(state.remaining),
        started_at=as_utc(started_at) if started_at else None,
    )


def build_account_response(account: Account, now: datetime) -> AccountResponse:
    settings = get_settings()
    mining = build_cooldown(
        account.mining_started_at, timedelta(hours=settings.mining_duration_hours), now
    )
    return AccountResponse(
        id=account.id,
        email=account.email,
        full_name=account.full_name,
        username=account.username,
        email_verified=account.email_verified,
        verified_balance=float(account.verified_balance),
        unverified_balance=float(account.unverified_balance),
        total_balance=float(account.verified_balance + account.unverified_balance),
        kyc_status=account.kyc_status.value,
        role=account.role.value,
        referral_code=account.referral_code,
        referrals=ReferralCounts(
            verified=account.referrals_verified,
            unverified=account.referrals_unverified,
        ),
        check_in=build_cooldown(
            account.last_check_in, timedelta(hours=settings.check_in_cooldown_hours), now
        ),
        mining=mining,
        mining_active=account.mining_started_at is not None and not mining.ready,
        created_at=account.created_at,
    )


def build_notification_response(entry: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=entry.id,
        type=entry.type.value,
        title=entry.title,
        description=entry.description,
        amount=float(entry.amount) if entry.amount is not None else None,
        is_credit=not entry.type.is_debit,
        is_read=entry.is_read,
        timestamp=as_utc(entry.timestamp),
    )


class SettlementResponse(BaseModel):
    """What a committed settlement returns to the caller who triggered it."""

    amount: float
    account: AccountResponse
    entries: list[NotificationResponse]
    ad_bonus_available: bool = False


def build_settlement_response(settlement: Settlement, now: datetime) -> SettlementResponse:
    own = [e for e in settlement.entries if e.account_id == settlement.account.id]
    return SettlementResponse(
        amount=float(settlement.amount),
        account=build_account_response(settlement.account, now),
        entries=[build_notification_response(e) for e in own],
        ad_bonus_available=settlement.ad_bonus_available,
    )
