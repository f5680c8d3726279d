"""Request/response schemas for rewards, mining, tasks and daily codes."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from fairchain.ledger.schemas import CooldownResponse


class MiningStatusResponse(BaseModel):
    active: bool
    claimable: bool
    reward: float
    session: CooldownResponse


class TaskResponse(BaseModel):
    id: int
    title: str
    reward: float
    url: str | None = None
    requires_verification: bool
    status: str | None = None
    created_at: datetime


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    total: int


class CompleteTaskRequest(BaseModel):
    verification: str | None = Field(None, max_length=128)


class RedeemCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
