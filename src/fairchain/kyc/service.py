"""KYC submission and review.

The request status and the account's ``kyc_status`` are always written in the
same transaction so a reader never sees them disagree. Approval also settles
any referral bonus that was waiting on this account's verification.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.database import run_transaction
from fairchain.db.models import (
    KycRequest,
    KycRequestStatus,
    KycStatus,
    NotificationType,
    utcnow,
)
from fairchain.ledger.accounts import Settlement, append_entry, lock_account
from fairchain.ledger.errors import KycAlreadyApproved, KycNotPending, KycRequestNotFound
from fairchain.ledger.push import publish_settlement
from fairchain.referrals.service import settle_referral_verification

logger = structlog.get_logger()


@dataclass(frozen=True)
class KycDocuments:
    """Storage URLs of the uploaded identity documents."""

    id_front_url: str
    id_back_url: str
    selfie_url: str


async def get_kyc_request(db: AsyncSession, account_id: int) -> KycRequest | None:
    return await db.get(KycRequest, account_id)


async def list_kyc_requests(
    db: AsyncSession,
    status: KycRequestStatus | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[KycRequest], int]:
    """List KYC requests, oldest submission first, optionally filtered by status."""
    base = select(KycRequest)
    count = select(func.count()).select_from(KycRequest)
    if status is not None:
        base = base.where(KycRequest.status == status)
        count = count.where(KycRequest.status == status)

    total = (await db.execute(count)).scalar_one()
    result = await db.execute(
        base.order_by(KycRequest.submitted_at.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def settle_kyc_submission(
    db: AsyncSession,
    account_id: int,
    full_name: str,
    country: str,
    documents: KycDocuments,
    now: datetime,
) -> KycRequest:
    account = await lock_account(db, account_id)
    if account.is_kyc_verified:
        raise KycAlreadyApproved()

    request = await db.get(KycRequest, account_id, with_for_update=True)
    if request is None:
        request = KycRequest(account_id=account_id)
        db.add(request)

    request.email = account.email
    request.full_name = full_name
    request.country = country
    request.id_front_url = documents.id_front_url
    request.id_back_url = documents.id_back_url
    request.selfie_url = documents.selfie_url
    request.status = KycRequestStatus.PENDING
    request.rejection_reason = None
    request.submitted_at = now
    request.reviewed_at = None

    account.kyc_status = KycStatus.PENDING
    account.full_name = full_name
    await db.flush()
    return request


async def submit_kyc(
    account_id: int,
    full_name: str,
    country: str,
    documents: KycDocuments,
    *,
    now: datetime | None = None,
) -> KycRequest:
    """Create or replace the caller's KYC request and mark the account pending."""
    now = now or utcnow()

    async def work(db: AsyncSession) -> KycRequest:
        return await settle_kyc_submission(db, account_id, full_name, country, documents, now)

    request = await run_transaction(work)
    logger.info("kyc_submitted", account_id=account_id, country=country)
    return request


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


async def settle_kyc_review(
    db: AsyncSession,
    account_id: int,
    approve: bool,
    reason: str | None,
    now: datetime,
) -> Settlement:
    account = await lock_account(db, account_id)
    request = await db.get(KycRequest, account_id, with_for_update=True)
    if request is None:
        raise KycRequestNotFound()
    if request.status is not KycRequestStatus.PENDING:
        raise KycNotPending()

    if approve:
        request.status = KycRequestStatus.APPROVED
        request.rejection_reason = None
        account.kyc_status = KycStatus.APPROVED
        entry = append_entry(
            db, account.id, NotificationType.KYC,
            "KYC Approved",
            "Your identity has been verified. You can now send Fair.",
            None, now,
        )
    else:
        request.status = KycRequestStatus.REJECTED
        request.rejection_reason = reason or ""
        account.kyc_status = KycStatus.REJECTED
        description = "Your KYC submission was rejected."
        if reason:
            description = f"{description} Reason: {reason}"
        entry = append_entry(db, account.id, NotificationType.KYC, "KYC Rejected", description, None, now)
    request.reviewed_at = now

    settlement = Settlement(account=account, entries=[entry])
    if approve:
        referrer, referral_entries = await settle_referral_verification(db, account, now)
        if referrer is not None:
            settlement.counterparties.append(referrer)
            settlement.entries.extend(referral_entries)

    await db.flush()
    return settlement


async def approve_kyc(
    account_id: int, *, now: datetime | None = None, redis: object | None = None
) -> Settlement:
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_kyc_review(db, account_id, True, None, now)

    settlement = await run_transaction(work)
    logger.info("kyc_approved", account_id=account_id)
    await publish_settlement(redis, settlement)
    return settlement


async def reject_kyc(
    account_id: int,
    reason: str | None = None,
    *,
    now: datetime | None = None,
    redis: object | None = None,
) -> Settlement:
    now = now or utcnow()

    async def work(db: AsyncSession) -> Settlement:
        return await settle_kyc_review(db, account_id, False, reason, now)

    settlement = await run_transaction(work)
    logger.info("kyc_rejected", account_id=account_id, reason=reason)
    await publish_settlement(redis, settlement)
    return settlement
