"""Admin operations: manual credit, fee withdrawal, roles, catalog and settings."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fairchain.admin.service import (
    change_role,
    create_daily_code,
    credit_account,
    get_dashboard_stats,
    top_referrers,
    update_app_settings,
    withdraw_fees,
)
from fairchain.database import get_session_factory
from fairchain.db.models import KycStatus, NotificationType, Role
from fairchain.ledger.config import get_or_create_app_settings
from fairchain.ledger.errors import (
    AlreadyGranted,
    InsufficientBalance,
    InvalidAmount,
    InvalidInput,
    InvalidRoleChange,
    RecipientNotFound,
)
from fairchain.wallet.service import send_funds

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestManualCredit:
    async def test_credit_verified_balance(self, make_account, fetch):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        user = await make_account("user@example.com")

        settlement = await credit_account(admin.id, "USER@example.com", Decimal("25"), "Top contributor", now=T0)

        assert settlement.entries[0].type is NotificationType.BONUS
        assert settlement.entries[0].title == "You Received a Bonus!"
        assert (await fetch(user.id)).verified_balance == Decimal("25")

    async def test_credit_does_not_touch_fee_pool(self, make_account):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        await make_account("user@example.com")
        await credit_account(admin.id, "user@example.com", Decimal("25"), "Promo", now=T0)
        async with get_session_factory()() as session:
            assert (await get_or_create_app_settings(session)).admin_wallet_balance == Decimal("0")

    async def test_idempotency_key_applies_once(self, make_account, fetch):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        user = await make_account("user@example.com")

        await credit_account(admin.id, "user@example.com", Decimal("25"), "Promo", "promo-2026-03", now=T0)
        with pytest.raises(AlreadyGranted):
            await credit_account(admin.id, "user@example.com", Decimal("25"), "Promo", "promo-2026-03", now=T0)

        assert (await fetch(user.id)).verified_balance == Decimal("25")

    async def test_concurrent_grants_with_same_key_apply_once(self, make_account, fetch):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        user = await make_account("user@example.com")

        results = await asyncio.gather(
            credit_account(admin.id, "user@example.com", Decimal("25"), "Promo", "promo-race", now=T0),
            credit_account(admin.id, "user@example.com", Decimal("25"), "Promo", "promo-race", now=T0),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], AlreadyGranted)
        assert (await fetch(user.id)).verified_balance == Decimal("25")

    async def test_reason_required(self, make_account):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        await make_account("user@example.com")
        with pytest.raises(InvalidInput):
            await credit_account(admin.id, "user@example.com", Decimal("25"), "   ", now=T0)

    async def test_positive_amount_required(self, make_account):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        await make_account("user@example.com")
        with pytest.raises(InvalidAmount):
            await credit_account(admin.id, "user@example.com", Decimal("0"), "Promo", now=T0)

    async def test_unknown_recipient(self, make_account):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        with pytest.raises(RecipientNotFound):
            await credit_account(admin.id, "ghost@example.com", Decimal("5"), "Promo", now=T0)


class TestFeeWithdrawal:
    async def test_withdraw_collected_fees(self, make_account, fetch):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        sender = await make_account("sender@example.com", verified_balance="200", kyc_status=KycStatus.APPROVED)
        await make_account("recipient@example.com")
        await send_funds(sender.id, "recipient@example.com", Decimal("100"), now=T0)

        with pytest.raises(InsufficientBalance, match="0.3"):
            await withdraw_fees(admin.id, "admin@example.com", Decimal("1"), now=T0)

        settlement = await withdraw_fees(admin.id, "admin@example.com", Decimal("0.3"), now=T0)

        assert settlement.entries[0].title == "Fee Wallet Withdrawal"
        assert (await fetch(admin.id)).verified_balance == Decimal("0.3")
        async with get_session_factory()() as session:
            assert (await get_or_create_app_settings(session)).admin_wallet_balance == Decimal("0")


class TestRoles:
    async def test_promote(self, make_account, db_session):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        await make_account("user@example.com")

        target = await change_role(db_session, admin, "user@example.com", Role.ADMIN)
        await db_session.commit()

        assert target.role is Role.ADMIN

    async def test_self_demotion_rejected(self, make_account, db_session):
        admin = await make_account("admin@example.com", role=Role.ADMIN)
        with pytest.raises(InvalidRoleChange):
            await change_role(db_session, admin, "admin@example.com", Role.USER)


class TestCatalogAndSettings:
    async def test_daily_code_normalized_and_unique(self, db_session):
        code = await create_daily_code(db_session, "  Spring ", Decimal("2"), T0 + timedelta(days=1))
        await db_session.commit()
        assert code.code == "spring"

        with pytest.raises(InvalidInput, match="already exists"):
            await create_daily_code(db_session, "SPRING", Decimal("2"), T0 + timedelta(days=1))

    async def test_update_settings(self, db_session):
        row = await update_app_settings(db_session, transaction_fee=Decimal("0.5"), ads_enabled=True)
        await db_session.commit()
        assert row.transaction_fee == Decimal("0.5")
        assert row.ads_enabled is True

    async def test_fee_pool_not_editable(self, db_session):
        with pytest.raises(InvalidInput, match="admin_wallet_balance"):
            await update_app_settings(db_session, admin_wallet_balance=Decimal("1000"))

    async def test_negative_setting_rejected(self, db_session):
        with pytest.raises(InvalidInput, match="negative"):
            await update_app_settings(db_session, mining_reward=Decimal("-1"))

    @pytest.mark.parametrize("key", ["daily_check_in_reward", "mining_reward", "referral_bonus"])
    async def test_zero_reward_rejected(self, db_session, key):
        with pytest.raises(InvalidInput, match="greater than zero"):
            await update_app_settings(db_session, **{key: Decimal("0")})

    async def test_zero_fee_allowed(self, db_session):
        row = await update_app_settings(db_session, transaction_fee=Decimal("0"), min_send_amount=Decimal("0"))
        assert row.transaction_fee == Decimal("0")


class TestDashboard:
    async def test_stats(self, make_account, db_session):
        await make_account("a@example.com", verified_balance="10", unverified_balance="5")
        await make_account("b@example.com", verified_balance="2", kyc_status=KycStatus.APPROVED)

        stats = await get_dashboard_stats(db_session)

        assert stats.total_users == 2
        assert stats.total_verified == 1
        assert stats.total_not_submitted == 1
        assert stats.total_coins == Decimal("17")
        assert await top_referrers(db_session) == []
