"""Wallet API: peer transfers."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.auth.dependencies import get_active_account
from fairchain.database import get_session
from fairchain.db.models import Account, utcnow
from fairchain.ledger.config import load_reward_config
from fairchain.ledger.schemas import SettlementResponse, build_settlement_response
from fairchain.redis_client import get_optional_redis
from fairchain.wallet.schemas import SendRequest, TransferQuoteResponse
from fairchain.wallet.service import send_funds

router = APIRouter(prefix="/api/v1/wallet", tags=["Wallet"])


@router.get("/quote", response_model=TransferQuoteResponse)
async def quote(
    amount: Decimal = Query(..., gt=0, max_digits=18, decimal_places=8),
    _account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
) -> TransferQuoteResponse:
    """What a transfer of ``amount`` would cost at the current fee."""
    config = await load_reward_config(db)
    return TransferQuoteResponse(
        amount=float(amount),
        fee=float(config.transaction_fee),
        total_debit=float(amount + config.transaction_fee),
        min_send_amount=float(config.min_send_amount),
    )


@router.post("/send", response_model=SettlementResponse)
async def send(
    body: SendRequest,
    account: Account = Depends(get_active_account),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    """Send Fair to another account by email. The fee is charged on top of ``amount``."""
    settlement = await send_funds(account.id, body.recipient_email, body.amount, redis=redis)
    return build_settlement_response(settlement, utcnow())
