"""Per-transaction snapshot of the global reward settings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.config import get_settings
from fairchain.database import run_transaction
from fairchain.db.models import AppSettings

SETTINGS_ROW_ID = 1


@dataclass(frozen=True)
class RewardConfig:
    """Immutable view of AppSettings plus process-level constants.

    Read once inside a transaction and handed to each settlement operation,
    so operations never consult shared mutable state mid-flight.
    """

    daily_check_in_reward: Decimal
    mining_reward: Decimal
    transaction_fee: Decimal
    min_send_amount: Decimal
    referral_bonus: Decimal
    ad_reward: Decimal
    ads_enabled: bool
    maintenance_mode_enabled: bool
    check_in_cooldown: timedelta
    mining_duration: timedelta

    @classmethod
    def from_row(cls, row: AppSettings) -> RewardConfig:
        settings = get_settings()
        return cls(
            daily_check_in_reward=row.daily_check_in_reward,
            mining_reward=row.mining_reward,
            transaction_fee=row.transaction_fee,
            min_send_amount=row.min_send_amount,
            referral_bonus=row.referral_bonus,
            ad_reward=Decimal(str(settings.ad_reward)),
            ads_enabled=row.ads_enabled,
            maintenance_mode_enabled=row.maintenance_mode_enabled,
            check_in_cooldown=timedelta(hours=settings.check_in_cooldown_hours),
            mining_duration=timedelta(hours=settings.mining_duration_hours),
        )


async def get_or_create_app_settings(db: AsyncSession, *, for_update: bool = False) -> AppSettings:
    """Return the singleton settings row, creating it with defaults on first use."""
    stmt = select(AppSettings).where(AppSettings.id == SETTINGS_ROW_ID)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    row = result.scalar_one_or_none()
    if row is None:
        row = AppSettings(id=SETTINGS_ROW_ID)
        db.add(row)
        await db.flush()
    return row


async def load_reward_config(db: AsyncSession) -> RewardConfig:
    row = await get_or_create_app_settings(db)
    return RewardConfig.from_row(row)


async def seed_app_settings() -> None:
    """Create the settings row at startup so request paths never race to insert it."""
    await run_transaction(get_or_create_app_settings)
