"""Tests for JWT access tokens."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fairchain.auth.jwt import create_access_token, reset_keys, verify_token
from fairchain.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_keys():
    get_settings.cache_clear()
    reset_keys()
    yield
    reset_keys()


class TestAccessToken:
    def test_create_and_verify(self):
        token = create_access_token(account_id=7, role="user")
        payload = verify_token(token, expected_type="access")
        assert payload["sub"] == "7"
        assert payload["role"] == "user"
        assert payload["type"] == "access"
        assert payload["iss"] == get_settings().jwt_issuer

    def test_wrong_type_rejected(self):
        token = create_access_token(account_id=7, role="user")
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token, expected_type="refresh")

    def test_tampered_token_rejected(self):
        token = create_access_token(account_id=7, role="user")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token[:-4] + "AAAA")

    def test_foreign_secret_rejected(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        forged = jwt.encode(
            {"sub": "1", "role": "admin", "type": "access", "iss": settings.jwt_issuer,
             "iat": now, "exp": now + timedelta(minutes=5)},
            "some-other-secret",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(forged)

    def test_expired_token_rejected(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        expired = jwt.encode(
            {"sub": "1", "role": "user", "type": "access", "iss": settings.jwt_issuer,
             "iat": past, "exp": past + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(expired)

    def test_wrong_issuer_rejected(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "1", "role": "user", "type": "access", "iss": "someone-else",
             "iat": now, "exp": now + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)
