"""Tests for template rendering and per-recipient throttling."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fairchain.email.service import EmailService
from fairchain.email.templates import verify_email, welcome_email


def _provider() -> MagicMock:
    provider = MagicMock()
    provider.send = AsyncMock(return_value=True)
    return provider


class TestTemplates:
    def test_welcome_contains_link_and_name(self):
        subject, html_body, text_body = welcome_email("satoshi", "https://fairchain.app/auth/verify-email?token=abc")
        assert "Fair Chain" in subject
        assert "satoshi" in html_body
        assert "token=abc" in html_body
        assert "token=abc" in text_body

    def test_verify_email_mentions_expiry(self):
        _, _, text_body = verify_email("https://fairchain.app/v?token=x", expires_hours=12)
        assert "12" in text_body


class TestEmailService:
    async def test_send_template_uses_provider(self):
        provider = _provider()
        service = EmailService(provider=provider)

        assert await service.send_template("a@example.com", "verify_email", {"verify_url": "https://x/y"}) is True

        to_email, subject, _html, _text = provider.send.call_args.args
        assert to_email == "a@example.com"
        assert subject == "Verify your email address"

    async def test_unknown_template(self):
        service = EmailService(provider=_provider())
        with pytest.raises(ValueError, match="Unknown template"):
            await service.send_template("a@example.com", "password_reset", {})

    async def test_rate_limited_after_five(self):
        counts = iter(range(1, 10))
        redis = MagicMock()
        redis.incr = AsyncMock(side_effect=lambda key: next(counts))
        redis.expire = AsyncMock()
        provider = _provider()
        service = EmailService(provider=provider, redis=redis)

        results = [await service.send_email("a@example.com", "s", "<p>h</p>", "t") for _ in range(6)]

        assert results == [True] * 5 + [False]
        assert provider.send.await_count == 5
        redis.expire.assert_awaited_once()
