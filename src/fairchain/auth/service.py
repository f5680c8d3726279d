"""
Account registration, email verification and login.

Registration runs as a single transaction because a referral code on signup
credits the referrer in the same commit that creates the account.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update

from fairchain.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from fairchain.config import get_settings
from fairchain.database import run_transaction
from fairchain.db.models import Account, EmailVerificationToken, utcnow
from fairchain.ledger.accounts import Settlement
from fairchain.ledger.config import load_reward_config
from fairchain.ledger.cooldown import as_utc
from fairchain.ledger.push import publish_settlement
from fairchain.referrals.service import (
    find_referrer,
    generate_unique_referral_code,
    settle_referral_signup,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

LOCKOUT_MAX_ATTEMPTS = 10
LOCKOUT_WINDOW_SECONDS = 900


@dataclass
class Registration:
    account: Account
    verification_token: str
    referral: Settlement | None = None


def _hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Account queries
# ---------------------------------------------------------------------------


async def get_account_by_id(db: AsyncSession, account_id: int) -> Account | None:
    return await db.get(Account, account_id)


async def get_account_by_email(db: AsyncSession, email: str) -> Account | None:
    """Fetch an account by email (case-insensitive)."""
    result = await db.execute(select(Account).where(func.lower(Account.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_account_by_username(db: AsyncSession, username: str) -> Account | None:
    result = await db.execute(
        select(Account).where(func.lower(Account.username) == username.strip().lower())
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def create_verification_token(db: AsyncSession, account_id: int, now: datetime | None = None) -> str:
    """
    Issue a fresh email verification token, invalidating older unused ones.

    Returns the raw token; only its SHA-256 hash is stored.
    """
    now = now or utcnow()
    settings = get_settings()
    raw_token = secrets.token_urlsafe(48)

    await db.execute(
        update(EmailVerificationToken)
        .where(EmailVerificationToken.account_id == account_id)
        .where(EmailVerificationToken.used_at.is_(None))
        .values(used_at=now)
    )
    db.add(EmailVerificationToken(
        account_id=account_id,
        token_hash=_hash_token(raw_token),
        created_at=now,
        expires_at=now + timedelta(hours=settings.email_verification_token_ttl_hours),
    ))
    await db.flush()
    return raw_token


async def register_account(
    email: str,
    password: str,
    username: str,
    full_name: str = "",
    referral_code: str | None = None,
    *,
    now: datetime | None = None,
    redis: Redis | None = None,
) -> Registration:
    """
    Create an account with a fresh referral code and an unverified email.

    Raises:
        PasswordStrengthError: If the password is too weak.
        ValueError: If the email or username is taken or the referral code is unknown.
    """
    validate_password_strength(password)
    password_hash = hash_password(password)
    now = now or utcnow()
    email = email.strip().lower()
    username = username.strip()

    async def work(db: AsyncSession) -> Registration:
        if await get_account_by_email(db, email) is not None:
            msg = "Email already registered"
            raise ValueError(msg)
        if await get_account_by_username(db, username) is not None:
            msg = "Username already taken"
            raise ValueError(msg)

        referrer = await find_referrer(db, referral_code)
        if referral_code and referrer is None:
            msg = "Invalid referral code"
            raise ValueError(msg)

        account = Account(
            email=email,
            username=username,
            full_name=full_name.strip(),
            password_hash=password_hash,
            email_verified=False,
            referral_code=await generate_unique_referral_code(db),
            created_at=now,
        )
        db.add(account)
        await db.flush()

        referral = None
        if referrer is not None:
            config = await load_reward_config(db)
            referral = await settle_referral_signup(db, referrer.id, account, config, now)

        raw_token = await create_verification_token(db, account.id, now)
        return Registration(account=account, verification_token=raw_token, referral=referral)

    registration = await run_transaction(work)
    logger.info(
        "account_created",
        account_id=registration.account.id,
        email=email,
        referred_by=registration.account.referred_by_id,
    )
    if registration.referral is not None:
        await publish_settlement(redis, registration.referral)
    return registration


async def verify_email_token(db: AsyncSession, raw_token: str) -> int:
    """
    Consume a verification token and mark the account's email verified.

    Returns the account id.

    Raises:
        ValueError: If the token is unknown, used, or expired.
    """
    result = await db.execute(
        select(EmailVerificationToken).where(EmailVerificationToken.token_hash == _hash_token(raw_token))
    )
    token = result.scalar_one_or_none()

    if token is None:
        msg = "Invalid or expired verification token"
        raise ValueError(msg)
    if token.used_at is not None:
        msg = "Token has already been used"
        raise ValueError(msg)
    now = utcnow()
    if as_utc(token.expires_at) < now:
        msg = "Verification token has expired"
        raise ValueError(msg)

    token.used_at = now
    await db.execute(update(Account).where(Account.id == token.account_id).values(email_verified=True))
    await db.flush()
    logger.info("email_verified", account_id=token.account_id)
    return token.account_id


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate(
    db: AsyncSession,
    redis: Redis | None,
    email: str,
    password: str,
) -> Account:
    """
    Check credentials.

    Raises:
        ValueError: If the credentials are invalid.
        PermissionError: If the account is locked or its email is unverified.
    """
    account = await get_account_by_email(db, email)
    if account is None:
        msg = "Invalid email or password"
        raise ValueError(msg)

    if await check_account_lockout(redis, account.id):
        msg = "Account temporarily locked. Try again later."
        raise PermissionError(msg)

    if not verify_password(password, account.password_hash):
        await increment_failed_login(redis, account.id)
        msg = "Invalid email or password"
        raise ValueError(msg)

    if not account.email_verified:
        msg = "Please verify your email before logging in"
        raise PermissionError(msg)

    await clear_failed_login(redis, account.id)

    if check_needs_rehash(account.password_hash):
        account.password_hash = hash_password(password)
        await db.flush()
        logger.info("password_rehashed", account_id=account.id)
    return account


# ---------------------------------------------------------------------------
# Lockout (skipped when Redis is not configured)
# ---------------------------------------------------------------------------


async def check_account_lockout(redis: Redis | None, account_id: int) -> bool:
    if redis is None:
        return False
    count = await redis.get(f"login_failures:{account_id}")
    return count is not None and int(count) >= LOCKOUT_MAX_ATTEMPTS


async def increment_failed_login(redis: Redis | None, account_id: int) -> None:
    if redis is None:
        return
    key = f"login_failures:{account_id}"
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, LOCKOUT_WINDOW_SECONDS)
    if count >= LOCKOUT_MAX_ATTEMPTS:
        logger.warning("account_locked", account_id=account_id, failures=count)


async def clear_failed_login(redis: Redis | None, account_id: int) -> None:
    if redis is not None:
        await redis.delete(f"login_failures:{account_id}")
