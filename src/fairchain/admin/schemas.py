"""Request/response schemas for admin endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, EmailStr, Field

from fairchain.db.models import Role

Amount = Annotated[Decimal, Field(max_digits=18, decimal_places=8)]


# --- Users ---


class AdminUserResponse(BaseModel):
    id: int
    email: str
    username: str
    full_name: str
    role: str
    kyc_status: str
    email_verified: bool
    verified_balance: float
    unverified_balance: float
    referrals_verified: int
    referrals_unverified: int
    created_at: datetime


class AdminUserListResponse(BaseModel):
    users: list[AdminUserResponse]
    total: int
    page: int
    per_page: int


class RoleChangeRequest(BaseModel):
    email: EmailStr
    role: Role


class DashboardStatsResponse(BaseModel):
    total_users: int
    total_verified: int
    total_pending: int
    total_rejected: int
    total_not_submitted: int
    total_coins: float
    admin_wallet_balance: float
    top_referrers: list[AdminUserResponse]


# --- Balances ---


class ManualCreditRequest(BaseModel):
    email: EmailStr
    amount: Amount
    reason: str = Field(..., min_length=1, max_length=500)
    idempotency_key: str | None = Field(None, min_length=1, max_length=128)


class FeeWithdrawalRequest(BaseModel):
    email: EmailStr
    amount: Amount


# --- Tasks ---


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=128)
    reward: Amount
    url: str | None = None
    verification_text: str | None = Field(None, max_length=128)


class TaskUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=128)
    reward: Decimal | None = Field(None, max_digits=18, decimal_places=8)
    url: str | None = None
    verification_text: str | None = Field(None, max_length=128)


class AdminTaskResponse(BaseModel):
    id: int
    title: str
    reward: float
    url: str | None = None
    verification_text: str | None = None
    created_at: datetime


# --- Daily codes ---


class DailyCodeCreateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    reward_amount: Amount
    valid_until: datetime


class DailyCodeUpdateRequest(BaseModel):
    reward_amount: Decimal | None = Field(None, max_digits=18, decimal_places=8)
    valid_until: datetime | None = None


class DailyCodeResponse(BaseModel):
    code: str
    reward_amount: float
    valid_until: datetime
    created_at: datetime


# --- Settings ---


class AppSettingsResponse(BaseModel):
    daily_check_in_reward: float
    mining_reward: float
    transaction_fee: float
    min_send_amount: float
    referral_bonus: float
    admin_wallet_balance: float
    ads_enabled: bool
    maintenance_mode_enabled: bool
    updated_at: datetime


class AppSettingsUpdateRequest(BaseModel):
    daily_check_in_reward: Decimal | None = Field(None, gt=0, max_digits=18, decimal_places=8)
    mining_reward: Decimal | None = Field(None, gt=0, max_digits=18, decimal_places=8)
    transaction_fee: Decimal | None = Field(None, ge=0, max_digits=18, decimal_places=8)
    min_send_amount: Decimal | None = Field(None, ge=0, max_digits=18, decimal_places=8)
    referral_bonus: Decimal | None = Field(None, gt=0, max_digits=18, decimal_places=8)
    ads_enabled: bool | None = None


class MaintenanceRequest(BaseModel):
    enabled: bool
