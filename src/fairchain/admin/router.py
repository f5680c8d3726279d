"""Admin API: every route requires the caller's stored role to be admin."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.admin.schemas import (
    AdminTaskResponse,
    AdminUserListResponse,
    AdminUserResponse,
    AppSettingsResponse,
    AppSettingsUpdateRequest,
    DailyCodeCreateRequest,
    DailyCodeResponse,
    DailyCodeUpdateRequest,
    DashboardStatsResponse,
    FeeWithdrawalRequest,
    MaintenanceRequest,
    ManualCreditRequest,
    RoleChangeRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
)
from fairchain.admin.service import (
    change_role,
    create_daily_code,
    create_task,
    credit_account,
    delete_daily_code,
    delete_task,
    get_dashboard_stats,
    list_accounts,
    list_daily_codes,
    list_tasks,
    set_maintenance_mode,
    top_referrers,
    update_app_settings,
    update_daily_code,
    update_task,
    withdraw_fees,
)
from fairchain.auth.dependencies import get_current_admin
from fairchain.database import get_session
from fairchain.db.models import Account, AppSettings, DailyCode, KycRequestStatus, KycStatus, Task, utcnow
from fairchain.kyc.router import build_kyc_request_response
from fairchain.kyc.schemas import KycRejectRequest, KycRequestListResponse
from fairchain.kyc.service import approve_kyc, list_kyc_requests, reject_kyc
from fairchain.ledger.config import get_or_create_app_settings
from fairchain.ledger.schemas import SettlementResponse, build_settlement_response
from fairchain.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


# ── Helpers ──


def _user_response(account: Account) -> AdminUserResponse:
    return AdminUserResponse(
        id=account.id,
        email=account.email,
        username=account.username,
        full_name=account.full_name,
        role=account.role.value,
        kyc_status=account.kyc_status.value,
        email_verified=account.email_verified,
        verified_balance=float(account.verified_balance),
        unverified_balance=float(account.unverified_balance),
        referrals_verified=account.referrals_verified,
        referrals_unverified=account.referrals_unverified,
        created_at=account.created_at,
    )


def _task_response(task: Task) -> AdminTaskResponse:
    return AdminTaskResponse(
        id=task.id,
        title=task.title,
        reward=float(task.reward),
        url=task.url,
        verification_text=task.verification_text,
        created_at=task.created_at,
    )


def _code_response(code: DailyCode) -> DailyCodeResponse:
    return DailyCodeResponse(
        code=code.code,
        reward_amount=float(code.reward_amount),
        valid_until=code.valid_until,
        created_at=code.created_at,
    )


def _settings_response(row: AppSettings) -> AppSettingsResponse:
    return AppSettingsResponse(
        daily_check_in_reward=float(row.daily_check_in_reward),
        mining_reward=float(row.mining_reward),
        transaction_fee=float(row.transaction_fee),
        min_send_amount=float(row.min_send_amount),
        referral_bonus=float(row.referral_bonus),
        admin_wallet_balance=float(row.admin_wallet_balance),
        ads_enabled=row.ads_enabled,
        maintenance_mode_enabled=row.maintenance_mode_enabled,
        updated_at=row.updated_at,
    )


# ── Dashboard & users ──


@router.get("/stats", response_model=DashboardStatsResponse)
async def stats(
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> DashboardStatsResponse:
    totals = await get_dashboard_stats(db)
    referrers = await top_referrers(db)
    return DashboardStatsResponse(
        total_users=totals.total_users,
        total_verified=totals.total_verified,
        total_pending=totals.total_pending,
        total_rejected=totals.total_rejected,
        total_not_submitted=totals.total_not_submitted,
        total_coins=float(totals.total_coins),
        admin_wallet_balance=float(totals.admin_wallet_balance),
        top_referrers=[_user_response(a) for a in referrers],
    )


@router.get("/users", response_model=AdminUserListResponse)
async def users(
    search: str | None = Query(None, max_length=128),
    kyc_status: KycStatus | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminUserListResponse:
    accounts, total = await list_accounts(db, search, kyc_status, page, per_page)
    return AdminUserListResponse(
        users=[_user_response(a) for a in accounts],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/users/role", response_model=AdminUserResponse)
async def set_role(
    body: RoleChangeRequest,
    admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminUserResponse:
    account = await change_role(db, admin, body.email, body.role)
    await db.commit()
    return _user_response(account)


# ── Balances ──


@router.post("/credit", response_model=SettlementResponse)
async def manual_credit(
    body: ManualCreditRequest,
    admin: Account = Depends(get_current_admin),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await credit_account(
        admin.id, body.email, body.amount, body.reason, body.idempotency_key, redis=redis
    )
    return build_settlement_response(settlement, utcnow())


@router.post("/fees/withdraw", response_model=SettlementResponse)
async def fee_withdrawal(
    body: FeeWithdrawalRequest,
    admin: Account = Depends(get_current_admin),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await withdraw_fees(admin.id, body.email, body.amount, redis=redis)
    return build_settlement_response(settlement, utcnow())


# ── KYC review ──


@router.get("/kyc", response_model=KycRequestListResponse)
async def kyc_requests(
    status: KycRequestStatus | None = Query(KycRequestStatus.PENDING),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> KycRequestListResponse:
    requests, total = await list_kyc_requests(db, status, page, per_page)
    return KycRequestListResponse(
        requests=[build_kyc_request_response(r) for r in requests],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/kyc/{account_id}/approve", response_model=SettlementResponse)
async def kyc_approve(
    account_id: int,
    _admin: Account = Depends(get_current_admin),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await approve_kyc(account_id, redis=redis)
    return build_settlement_response(settlement, utcnow())


@router.post("/kyc/{account_id}/reject", response_model=SettlementResponse)
async def kyc_reject(
    account_id: int,
    body: KycRejectRequest | None = None,
    _admin: Account = Depends(get_current_admin),
    redis: Redis | None = Depends(get_optional_redis),
) -> SettlementResponse:
    settlement = await reject_kyc(account_id, body.reason if body else None, redis=redis)
    return build_settlement_response(settlement, utcnow())


# ── Tasks ──


@router.get("/tasks", response_model=list[AdminTaskResponse])
async def tasks(
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> list[AdminTaskResponse]:
    return [_task_response(t) for t in await list_tasks(db)]


@router.post("/tasks", response_model=AdminTaskResponse, status_code=201)
async def add_task(
    body: TaskCreateRequest,
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminTaskResponse:
    task = await create_task(db, body.title, body.reward, body.url, body.verification_text)
    await db.commit()
    return _task_response(task)


@router.patch("/tasks/{task_id}", response_model=AdminTaskResponse)
async def edit_task(
    task_id: int,
    body: TaskUpdateRequest,
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminTaskResponse:
    task = await update_task(db, task_id, **body.model_dump(exclude_unset=True))
    await db.commit()
    return _task_response(task)


@router.delete("/tasks/{task_id}", status_code=204)
async def remove_task(
    task_id: int,
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> None:
    await delete_task(db, task_id)
    await db.commit()


# ── Daily codes ──


@router.get("/codes", response_model=list[DailyCodeResponse])
async def codes(
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> list[DailyCodeResponse]:
    return [_code_response(c) for c in await list_daily_codes(db)]


@router.post("/codes", response_model=DailyCodeResponse, status_code=201)
async def add_code(
    body: DailyCodeCreateRequest,
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> DailyCodeResponse:
    code = await create_daily_code(db, body.code, body.reward_amount, body.valid_until)
    await db.commit()
    return _code_response(code)


@router.patch("/codes/{code}", response_model=DailyCodeResponse)
async def edit_code(
    code: str,
    body: DailyCodeUpdateRequest,
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> DailyCodeResponse:
    daily_code = await update_daily_code(db, code, body.reward_amount, body.valid_until)
    await db.commit()
    return _code_response(daily_code)


@router.delete("/codes/{code}", status_code=204)
async def remove_code(
    code: str,
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> None:
    await delete_daily_code(db, code)
    await db.commit()


# ── Settings ──


@router.get("/settings", response_model=AppSettingsResponse)
async def read_settings(
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AppSettingsResponse:
    return _settings_response(await get_or_create_app_settings(db))


@router.patch("/settings", response_model=AppSettingsResponse)
async def edit_settings(
    body: AppSettingsUpdateRequest,
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AppSettingsResponse:
    row = await update_app_settings(db, **body.model_dump(exclude_unset=True))
    await db.commit()
    return _settings_response(row)


@router.post("/maintenance", response_model=AppSettingsResponse)
async def maintenance(
    body: MaintenanceRequest,
    _admin: Account = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AppSettingsResponse:
    row = await set_maintenance_mode(db, body.enabled)
    await db.commit()
    return _settings_response(row)
