"""ORM models for the account store.

Every subordinate record (notifications, redeemed codes, user tasks, KYC
requests, grants, verification tokens) belongs to exactly one account and is
removed with it.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from fairchain.db.base import Base, BigIntPK

Money = Numeric(18, 8)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _str_enum(enum_cls: type[enum.Enum], length: int = 32) -> Enum:
    """Store a str-valued enum as VARCHAR using its values, not member names."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class KycStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class KycRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class NotificationType(str, enum.Enum):
    SEND = "send"
    RECEIVE = "receive"
    BONUS = "bonus"
    REWARD = "reward"
    MINING = "mining"
    KYC = "kyc"

    @property
    def is_debit(self) -> bool:
        return self is NotificationType.SEND


class UserTaskStatus(str, enum.Enum):
    PENDING_VERIFICATION = "pending_verification"
    COMPLETED = "completed"
    REJECTED = "rejected"


class ReferralStatus(str, enum.Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class Account(Base):
    """One row per user: balances, KYC state, cooldown timestamps, referral counters."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("verified_balance >= 0", name="verified_balance_non_negative"),
        CheckConstraint("unverified_balance >= 0", name="unverified_balance_non_negative"),
        CheckConstraint("referrals_verified >= 0", name="referrals_verified_non_negative"),
        CheckConstraint("referrals_unverified >= 0", name="referrals_unverified_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    verified_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    unverified_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    kyc_status: Mapped[KycStatus] = mapped_column(
        _str_enum(KycStatus, 16), nullable=False, default=KycStatus.NONE
    )
    role: Mapped[Role] = mapped_column(_str_enum(Role, 16), nullable=False, default=Role.USER)

    last_check_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ad_bonus_claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    mining_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    referral_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    referred_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    referrals_verified: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    referrals_unverified: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_kyc_verified(self) -> bool:
        return self.kyc_status is KycStatus.APPROVED


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class Notification(Base):
    """Append-only ledger entry. Only ``is_read`` ever changes after insert."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_account_timestamp", "account_id", "timestamp"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[NotificationType] = mapped_column(_str_enum(NotificationType, 16), nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Catalog: tasks and daily codes
# ---------------------------------------------------------------------------


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (CheckConstraint("reward > 0", name="reward_positive"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    reward: Mapped[Decimal] = mapped_column(Money, nullable=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    verification_text: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class UserTask(Base):
    """Completion record; the composite key allows one row per (account, task)."""

    __tablename__ = "user_tasks"

    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    task_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[UserTaskStatus] = mapped_column(_str_enum(UserTaskStatus), nullable=False)
    task_title: Mapped[str] = mapped_column(String(128), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class DailyCode(Base):
    __tablename__ = "daily_codes"
    __table_args__ = (CheckConstraint("reward_amount > 0", name="reward_amount_positive"),)

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    reward_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class RedeemedCode(Base):
    """Marks that an account has claimed a code. Kept even if the code is deleted."""

    __tablename__ = "redeemed_codes"

    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Global settings
# ---------------------------------------------------------------------------


class AppSettings(Base):
    """Singleton row (id=1) holding reward amounts, fees and global switches."""

    __tablename__ = "app_settings"
    __table_args__ = (
        CheckConstraint("admin_wallet_balance >= 0", name="admin_wallet_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    daily_check_in_reward: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("1"))
    mining_reward: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("2"))
    transaction_fee: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.3"))
    min_send_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("50"))
    referral_bonus: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("10"))
    admin_wallet_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    ads_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    maintenance_mode_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# KYC and referrals
# ---------------------------------------------------------------------------


class KycRequest(Base):
    __tablename__ = "kyc_requests"

    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    full_name: Mapped[str] = mapped_column(String(128), nullable=False)
    country: Mapped[str] = mapped_column(String(64), nullable=False)
    id_front_url: Mapped[str] = mapped_column(Text, nullable=False)
    id_back_url: Mapped[str] = mapped_column(Text, nullable=False)
    selfie_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[KycRequestStatus] = mapped_column(_str_enum(KycRequestStatus, 16), nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Referral(Base):
    """Unverified-balance credit made to a referrer when the referee registered."""

    __tablename__ = "referrals"

    referee_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    referrer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bonus_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    status: Mapped[ReferralStatus] = mapped_column(_str_enum(ReferralStatus, 16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class GrantRecord(Base):
    """Idempotency key for manual admin credits."""

    __tablename__ = "grant_records"

    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    grant_key: Mapped[str] = mapped_column(String(128), primary_key=True)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    granted_by_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class EmailVerificationToken(Base):
    __tablename__ = "email_verification_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
