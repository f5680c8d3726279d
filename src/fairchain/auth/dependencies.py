"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from fairchain.auth.jwt import verify_token
from fairchain.auth.service import get_account_by_id
from fairchain.database import get_session
from fairchain.db.models import Account
from fairchain.ledger.config import get_or_create_app_settings

_bearer = HTTPBearer()


async def get_current_account(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Account:
    """Resolve the bearer token to an account. 401 on any failure."""
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    account = await get_account_by_id(db, int(payload["sub"]))
    if account is None:
        raise HTTPException(status_code=401, detail="User not found")
    return account


async def get_active_account(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> Account:
    """
    Same as get_current_account, but answers 503 for non-admins while
    maintenance mode is on.
    """
    if not account.is_admin:
        app_settings = await get_or_create_app_settings(db)
        if app_settings.maintenance_mode_enabled:
            raise HTTPException(
                status_code=503,
                detail="Fair Chain is under maintenance. Please check back soon.",
            )
    return account


async def get_current_admin(account: Account = Depends(get_current_account)) -> Account:
    """Require the stored role to be admin; the token's role claim is not trusted."""
    if not account.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return account
