"""Request schemas for peer transfers."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field


class SendRequest(BaseModel):
    recipient_email: EmailStr
    amount: Decimal = Field(..., max_digits=18, decimal_places=8)


class TransferQuoteResponse(BaseModel):
    amount: float
    fee: float
    total_debit: float
    min_send_amount: float
