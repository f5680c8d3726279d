"""Request/response schemas for KYC submission and review."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class KycSubmitRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=128)
    country: str = Field(..., min_length=2, max_length=64)
    id_front_url: str = Field(..., min_length=1)
    id_back_url: str = Field(..., min_length=1)
    selfie_url: str = Field(..., min_length=1)


class KycRequestResponse(BaseModel):
    account_id: int
    email: str
    full_name: str
    country: str
    id_front_url: str
    id_back_url: str
    selfie_url: str
    status: str
    rejection_reason: str | None = None
    submitted_at: datetime
    reviewed_at: datetime | None = None


class KycStatusResponse(BaseModel):
    kyc_status: str
    request: KycRequestResponse | None = None


class KycRejectRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class KycRequestListResponse(BaseModel):
    requests: list[KycRequestResponse]
    total: int
    page: int
    per_page: int
