"""Authentication router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.auth.jwt import create_access_token
from fairchain.auth.password import PasswordStrengthError
from fairchain.auth.schemas import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    TokenResponse,
    VerifyEmailRequest,
)
from fairchain.auth.service import (
    authenticate,
    create_verification_token,
    get_account_by_email,
    register_account,
    verify_email_token,
)
from fairchain.config import get_settings
from fairchain.database import get_session
from fairchain.db.models import utcnow
from fairchain.email.service import get_email_service
from fairchain.ledger.schemas import build_account_response
from fairchain.redis_client import get_optional_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

RESEND_COOLDOWN_SECONDS = 300


def _verify_url(raw_token: str) -> str:
    return f"{get_settings().frontend_base_url}/auth/verify-email?token={raw_token}"


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: RegisterRequest,
    redis: Redis | None = Depends(get_optional_redis),
) -> RegisterResponse:
    """Register with email + password. Sends the verification email."""
    try:
        registration = await register_account(
            email=body.email,
            password=body.password,
            username=body.username,
            full_name=body.full_name,
            referral_code=body.referral_code,
            redis=redis,
        )
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        detail = str(e)
        if "already" in detail.lower():
            raise HTTPException(status_code=409, detail=detail) from e
        raise HTTPException(status_code=400, detail=detail) from e

    account = registration.account
    try:
        await get_email_service(redis).send_template(
            to=account.email,
            template_name="welcome",
            context={"username": account.username, "verify_url": _verify_url(registration.verification_token)},
        )
    except Exception:
        logger.exception("verification_email_failed", account_id=account.id)

    return RegisterResponse(
        id=account.id,
        email=account.email,
        username=account.username,
        referral_code=account.referral_code,
        email_verified=account.email_verified,
    )


@router.post("/verify-email")
async def verify_email_endpoint(
    body: VerifyEmailRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    try:
        await verify_email_token(db, body.token)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"status": "email_verified"}


@router.post("/resend-verification")
async def resend_verification(
    body: ResendVerificationRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> dict[str, str]:
    """Send a new verification link. Always 200 so addresses cannot be probed."""
    account = await get_account_by_email(db, body.email)
    if account is None or account.email_verified:
        return {"status": "verification_email_sent"}

    if redis is not None:
        cooldown_key = f"resend_cooldown:{account.id}"
        if await redis.get(cooldown_key):
            raise HTTPException(status_code=429, detail="Please wait before requesting another verification email")
        await redis.set(cooldown_key, "1", ex=RESEND_COOLDOWN_SECONDS)

    raw_token = await create_verification_token(db, account.id)
    await db.commit()
    await get_email_service(redis).send_template(
        to=account.email,
        template_name="verify_email",
        context={"verify_url": _verify_url(raw_token)},
    )
    return {"status": "verification_email_sent"}


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> TokenResponse:
    """Login with email + password. Unverified emails get 403."""
    try:
        account = await authenticate(db, redis, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except PermissionError as e:
        detail = str(e)
        if "locked" in detail.lower():
            raise HTTPException(status_code=429, detail=detail) from e
        raise HTTPException(status_code=403, detail=detail) from e
    await db.commit()

    settings = get_settings()
    logger.info("login_succeeded", account_id=account.id)
    return TokenResponse(
        access_token=create_access_token(account.id, account.role.value),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        account=build_account_response(account, utcnow()),
    )
