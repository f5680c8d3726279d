"""
Email templates for Fair Chain.

Inline CSS only, so the layout survives webmail clients.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

BG_PAGE = "#0B0F14"
BG_CARD = "#121821"
ACCENT = "#7C5CFF"
TEXT_PRIMARY = "#F5F7FA"
TEXT_MUTED = "#94A3B8"
BORDER = "#1F2937"

APP_NAME = "Fair Chain"


def _layout(content: str) -> str:
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="560" style="max-width: 560px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 28px; font-size: 22px; font-weight: 700; color: {ACCENT};">{APP_NAME}</td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 36px 28px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 28px; color: {TEXT_MUTED}; font-size: 12px; line-height: 1.5;">
                            You received this email because an account was created with this address on {APP_NAME}.
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 24px auto;">
    <tr>
        <td align="center" style="background-color: {ACCENT}; border-radius: 8px;">
            <a href="{url}" target="_blank" style="display: inline-block; padding: 12px 28px; color: #FFFFFF; font-size: 15px; font-weight: 600; text-decoration: none;">{label}</a>
        </td>
    </tr>
</table>"""


def _verify_block(verify_url: str, expires_hours: int) -> str:
    return f"""\
{_button(verify_url, "Verify Email Address")}
<p style="color: {TEXT_MUTED}; font-size: 13px; line-height: 1.5; margin: 20px 0 0 0;">
    The link expires in <strong style="color: {TEXT_PRIMARY};">{expires_hours} hours</strong>.
</p>
<p style="color: {TEXT_MUTED}; font-size: 12px; line-height: 1.5; margin: 16px 0 0 0;">
    Button not working? Paste this URL into your browser:<br>
    <a href="{verify_url}" style="color: {ACCENT}; word-break: break-all;">{verify_url}</a>
</p>"""


def welcome_email(username: str | None, verify_url: str, expires_hours: int = 24) -> tuple[str, str, str]:
    """Sent right after registration. Login stays blocked until the link is used."""
    name = username or "there"
    subject = f"Welcome to {APP_NAME}, verify your email"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; margin: 0 0 14px 0;">Welcome to {APP_NAME}!</h1>
<p style="color: {TEXT_MUTED}; font-size: 15px; line-height: 1.6; margin: 0;">
    Hi {name}, your account is ready. Verify your email address to log in and start
    collecting daily rewards.
</p>
{_verify_block(verify_url, expires_hours)}"""
    text_body = (
        f"Hi {name},\n\n"
        f"Welcome to {APP_NAME}! Verify your email address to log in:\n\n{verify_url}\n\n"
        f"This link expires in {expires_hours} hours.\n\n"
        f"-- The {APP_NAME} Team"
    )
    return subject, _layout(content), text_body


def verify_email(verify_url: str, expires_hours: int = 24) -> tuple[str, str, str]:
    subject = "Verify your email address"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 22px; margin: 0 0 14px 0;">Verify your email</h1>
<p style="color: {TEXT_MUTED}; font-size: 15px; line-height: 1.6; margin: 0;">
    Use the button below to confirm this address.
</p>
{_verify_block(verify_url, expires_hours)}"""
    text_body = (
        f"Verify your email address:\n\n{verify_url}\n\n"
        f"This link expires in {expires_hours} hours.\n\n"
        f"-- The {APP_NAME} Team"
    )
    return subject, _layout(content), text_body
