"""
Outgoing email over SMTP (aiosmtplib).

``EmailService`` renders a named template and hands it to the provider,
throttling per recipient when Redis is available.
"""

from __future__ import annotations

import hashlib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Any

import aiosmtplib
import structlog

from fairchain.config import get_settings
from fairchain.email.templates import verify_email, welcome_email

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()


class SMTPProvider:
    """Deliver messages through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.from_name = from_name
        self.use_tls = use_tls

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=ssl.create_default_context() if self.use_tls else None,
            )
        except aiosmtplib.SMTPException:
            logger.exception("email_send_failed", to=to_email, provider="smtp")
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider="smtp")
        return True


def _create_provider() -> SMTPProvider:
    settings = get_settings()
    if settings.email_provider.lower() != "smtp":
        msg = f"Unsupported email provider: {settings.email_provider}"
        raise ValueError(msg)
    return SMTPProvider(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        from_address=settings.email_from_address,
        from_name=settings.email_from_name,
        use_tls=settings.smtp_use_tls,
    )


class EmailService:
    """Template rendering plus per-recipient throttling."""

    RATE_LIMIT_MAX = 5
    RATE_LIMIT_WINDOW = 3600

    def __init__(self, provider: Any | None = None, redis: Redis | None = None) -> None:
        self.provider = provider or _create_provider()
        self._redis = redis

    async def _check_rate_limit(self, email: str) -> bool:
        if self._redis is None:
            return True
        key = f"email_rate:{hashlib.sha256(email.lower().encode()).hexdigest()}"
        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, self.RATE_LIMIT_WINDOW)
        return count <= self.RATE_LIMIT_MAX

    async def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> bool:
        """Send one message. Returns False if throttled or the relay refused it."""
        if not await self._check_rate_limit(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False
        return await self.provider.send(to, subject, html_body, text_body)

    async def send_template(self, to: str, template_name: str, context: dict[str, Any]) -> bool:
        """
        Render a named template and send it.

        Raises:
            ValueError: If the template name is unknown.
        """
        expires_hours = context.get("expires_hours", get_settings().email_verification_token_ttl_hours)
        if template_name == "welcome":
            subject, html_body, text_body = welcome_email(
                context.get("username"), context.get("verify_url", ""), expires_hours
            )
        elif template_name == "verify_email":
            subject, html_body, text_body = verify_email(context.get("verify_url", ""), expires_hours)
        else:
            msg = f"Unknown template: {template_name}"
            raise ValueError(msg)
        return await self.send_email(to, subject, html_body, text_body)


_email_service: EmailService | None = None


def get_email_service(redis: Redis | None = None) -> EmailService:
    """Get or create the email service singleton."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService(redis=redis)
    return _email_service


def reset_email_service() -> None:
    global _email_service  # noqa: PLW0603
    _email_service = None
