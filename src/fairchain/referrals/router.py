"""Referral API: the caller's code, counters and referred accounts."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.auth.dependencies import get_active_account
from fairchain.config import get_settings
from fairchain.database import get_session
from fairchain.db.models import Account
from fairchain.referrals.schemas import ReferralSummaryResponse, ReferredAccount
from fairchain.referrals.service import list_referrals, total_held

router = APIRouter(prefix="/api/v1", tags=["Referrals"])


@router.get("/referrals", response_model=ReferralSummaryResponse)
async def get_referrals(
    account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
) -> ReferralSummaryResponse:
    rows = await list_referrals(db, account.id)
    return ReferralSummaryResponse(
        referral_code=account.referral_code,
        referral_link=f"{get_settings().frontend_base_url}/signup?ref={account.referral_code}",
        verified=account.referrals_verified,
        unverified=account.referrals_unverified,
        held_bonus=float(total_held(rows)),
        referrals=[
            ReferredAccount(
                username=referee.username,
                status=referral.status.value,
                bonus_amount=float(referral.bonus_amount),
                joined_at=referral.created_at,
                verified_at=referral.verified_at,
            )
            for referral, referee in rows
        ],
    )
