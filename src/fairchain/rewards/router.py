"""Rewards API: check-in, ad bonus, mining, tasks and daily codes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.auth.dependencies import get_active_account
from fairchain.database import get_session
from fairchain.db.models import Account, utcnow
from fairchain.ledger.config import load_reward_config
from fairchain.ledger.schemas import SettlementResponse, build_cooldown, build_settlement_response
from fairchain.redis_client import get_optional_redis
from fairchain.rewards.schemas import (
    CompleteTaskRequest,
    MiningStatusResponse,
    RedeemCodeRequest,
    TaskListResponse,
    TaskResponse,
)
from fairchain.rewards.service import (
    claim_ad_bonus,
    claim_mining,
    complete_task,
    daily_check_in,
    list_tasks_for_account,
    redeem_code,
    start_mining,
)

router = APIRouter(prefix="/api/v1", tags=["Rewards"])


# ── Check-in ──


@router.post("/rewards/check-in", response_model=SettlementResponse)
async def check_in(
    account: Account = Depends(get_active_account),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await daily_check_in(account.id, redis=redis)
    return build_settlement_response(settlement, utcnow())


@router.post("/rewards/ad-bonus", response_model=SettlementResponse)
async def ad_bonus(
    account: Account = Depends(get_active_account),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await claim_ad_bonus(account.id, redis=redis)
    return build_settlement_response(settlement, utcnow())


# ── Mining ──


@router.get("/mining", response_model=MiningStatusResponse)
async def mining_status(
    account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
) -> MiningStatusResponse:
    config = await load_reward_config(db)
    session = build_cooldown(account.mining_started_at, config.mining_duration, utcnow())
    started = account.mining_started_at is not None
    return MiningStatusResponse(
        active=started and not session.ready,
        claimable=started and session.ready,
        reward=float(config.mining_reward),
        session=session,
    )


@router.post("/mining/start", response_model=SettlementResponse)
async def mining_start(
    account: Account = Depends(get_active_account),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await start_mining(account.id, redis=redis)
    return build_settlement_response(settlement, utcnow())


@router.post("/mining/claim", response_model=SettlementResponse)
async def mining_claim(
    account: Account = Depends(get_active_account),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await claim_mining(account.id, redis=redis)
    return build_settlement_response(settlement, utcnow())


# ── Tasks ──


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
) -> TaskListResponse:
    rows = await list_tasks_for_account(db, account.id)
    return TaskListResponse(
        tasks=[
            TaskResponse(
                id=task.id,
                title=task.title,
                reward=float(task.reward),
                url=task.url,
                requires_verification=bool(task.verification_text),
                status=status,
                created_at=task.created_at,
            )
            for task, status in rows
        ],
        total=len(rows),
    )


@router.post("/tasks/{task_id}/complete", response_model=SettlementResponse)
async def complete_task_endpoint(
    task_id: int,
    body: CompleteTaskRequest | None = None,
    account: Account = Depends(get_active_account),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    verification = body.verification if body else None
    settlement = await complete_task(account.id, task_id, verification, redis=redis)
    return build_settlement_response(settlement, utcnow())


# ── Daily codes ──


@router.post("/codes/redeem", response_model=SettlementResponse)
async def redeem(
    body: RedeemCodeRequest,
    account: Account = Depends(get_active_account),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await redeem_code(account.id, body.code, redis=redis)
    return build_settlement_response(settlement, utcnow())
