"""Response schemas for the referral summary."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ReferredAccount(BaseModel):
    username: str
    status: str
    bonus_amount: float
    joined_at: datetime
    verified_at: datetime | None = None


class ReferralSummaryResponse(BaseModel):
    referral_code: str
    referral_link: str
    verified: int
    unverified: int
    held_bonus: float
    referrals: list[ReferredAccount]
