"""KYC API: submit identity documents and read the review status."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.auth.dependencies import get_active_account
from fairchain.database import get_session
from fairchain.db.models import Account, KycRequest
from fairchain.kyc.schemas import KycRequestResponse, KycStatusResponse, KycSubmitRequest
from fairchain.kyc.service import KycDocuments, get_kyc_request, submit_kyc

router = APIRouter(prefix="/api/v1/kyc", tags=["KYC"])


def build_kyc_request_response(request: KycRequest) -> KycRequestResponse:
    return KycRequestResponse(
        account_id=request.account_id,
        email=request.email,
        full_name=request.full_name,
        country=request.country,
        id_front_url=request.id_front_url,
        id_back_url=request.id_back_url,
        selfie_url=request.selfie_url,
        status=request.status.value,
        rejection_reason=request.rejection_reason,
        submitted_at=request.submitted_at,
        reviewed_at=request.reviewed_at,
    )


@router.post("", response_model=KycStatusResponse, status_code=201)
async def submit(
    body: KycSubmitRequest,
    account: Account = Depends(get_active_account),
) -> KycStatusResponse:
    request = await submit_kyc(
        account.id,
        body.full_name.strip(),
        body.country.strip(),
        KycDocuments(
            id_front_url=body.id_front_url,
            id_back_url=body.id_back_url,
            selfie_url=body.selfie_url,
        ),
    )
    return KycStatusResponse(
        kyc_status=request.status.value,
        request=build_kyc_request_response(request),
    )


@router.get("", response_model=KycStatusResponse)
async def status(
    account: Account = Depends(get_active_account),
    db: AsyncSession = Depends(get_session),
) -> KycStatusResponse:
    request = await get_kyc_request(db, account.id)
    return KycStatusResponse(
        kyc_status=account.kyc_status.value,
        request=build_kyc_request_response(request) if request else None,
    )
