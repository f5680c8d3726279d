"""Shared test fixtures.

Tests run against a throwaway SQLite file per test and without Redis, so live
pushes, login lockout and rate limiting are all skipped.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ["FAIR_REDIS_URL"] = ""
os.environ["FAIR_JWT_ALGORITHM"] = "HS256"
os.environ["FAIR_JWT_SECRET"] = "test-secret-not-for-production-use"
os.environ["FAIR_LOG_FORMAT"] = "console"
os.environ["FAIR_TRANSACTION_RETRY_BACKOFF_MS"] = "1"

from fairchain.auth.jwt import create_access_token, reset_keys  # noqa: E402
from fairchain.auth.password import hash_password  # noqa: E402
from fairchain.config import get_settings  # noqa: E402
from fairchain.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from fairchain.db.base import Base  # noqa: E402
from fairchain.db.models import Account, KycStatus, Role  # noqa: E402
from fairchain.ledger.config import seed_app_settings  # noqa: E402
from fairchain.main import create_app  # noqa: E402
from fairchain.referrals.service import generate_referral_code  # noqa: E402

TEST_PASSWORD = "SecurePass1"

AccountFactory = Callable[..., Awaitable[Account]]


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh schema in a temporary SQLite file, with the settings row seeded."""
    get_settings.cache_clear()
    reset_keys()
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'fairchain.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_app_settings()
    yield
    await close_db()


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app (lifespan is not run; the database fixture covers it)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Direct session for arranging state and asserting on committed rows."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def mock_email_service(monkeypatch):
    """Mock the email service to prevent actual email sending."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)

    monkeypatch.setattr("fairchain.auth.router.get_email_service", lambda *a, **kw: mock_service)
    return mock_service


@pytest.fixture
def make_account(database) -> AccountFactory:
    """Insert an account directly, bypassing registration and email verification."""

    async def _make(
        email: str,
        *,
        username: str | None = None,
        verified_balance: Decimal | str = "0",
        unverified_balance: Decimal | str = "0",
        kyc_status: KycStatus = KycStatus.NONE,
        role: Role = Role.USER,
        email_verified: bool = True,
    ) -> Account:
        async with get_session_factory()() as session:
            account = Account(
                email=email.lower(),
                username=username or email.split("@")[0],
                full_name="",
                password_hash=hash_password(TEST_PASSWORD),
                email_verified=email_verified,
                verified_balance=Decimal(verified_balance),
                unverified_balance=Decimal(unverified_balance),
                kyc_status=kyc_status,
                role=role,
                referral_code=generate_referral_code(),
            )
            session.add(account)
            await session.commit()
            return account

    return _make


async def fetch_account(account_id: int) -> Account:
    """Read the committed state of an account in a fresh session."""
    async with get_session_factory()() as session:
        account = await session.get(Account, account_id)
        assert account is not None
        return account


def auth_headers(account: Account) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(account.id, account.role.value)}"}


@pytest.fixture
def fetch():
    return fetch_account


@pytest.fixture
def headers_for():
    return auth_headers
