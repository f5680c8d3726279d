"""Account snapshot: GET /api/v1/account."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fairchain.auth.dependencies import get_active_account
from fairchain.db.models import Account, utcnow
from fairchain.ledger.schemas import AccountResponse, build_account_response

router = APIRouter(prefix="/api/v1", tags=["Account"])


@router.get("/account", response_model=AccountResponse)
async def get_account(account: Account = Depends(get_active_account)) -> AccountResponse:
    """Balances, KYC status, role, referral counters and both cooldowns."""
    return build_account_response(account, utcnow())
