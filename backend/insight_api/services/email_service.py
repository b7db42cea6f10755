"""Transactional email over SMTP (password reset codes)."""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from insight_api.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    use_tls: bool
    from_email: str


def smtp_config_from_settings() -> SmtpConfig | None:
    settings = get_settings()
    from_email = settings.smtp_from_email or settings.smtp_user
    if not settings.smtp_host or not from_email:
        return None
    return SmtpConfig(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user or None,
        password=settings.smtp_password or None,
        use_tls=settings.smtp_use_tls,
        from_email=from_email,
    )


def send_email_via_smtp(
    *,
    smtp: SmtpConfig,
    to_email: str,
    subject: str,
    body_text: str,
    body_html: Optional[str] = None,
) -> None:
    msg = EmailMessage()
    msg["From"] = f"AI Insight <{smtp.from_email}>"
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body_text)
    if body_html:
        msg.add_alternative(body_html, subtype="html")

    context = ssl.create_default_context()

    # Port 465 uses implicit SSL (SMTP_SSL), port 587 uses STARTTLS
    if smtp.port == 465:
        connection = smtplib.SMTP_SSL(smtp.host, smtp.port, timeout=20, context=context)
    else:
        connection = smtplib.SMTP(smtp.host, smtp.port, timeout=20)
    # The context manager closes the socket even when STARTTLS or login fails.
    with connection as server:
        if smtp.port != 465 and smtp.use_tls:
            server.starttls(context=context)
        if smtp.user and smtp.password:
            server.login(smtp.user, smtp.password)
        server.send_message(msg)


def send_password_reset_otp(to_email: str, otp: str, *, minutes: int) -> bool:
    """Send the reset code; returns False when SMTP is not configured."""
    smtp = smtp_config_from_settings()
    if smtp is None:
        logger.warning("SMTP not configured; password reset email to %s not sent", to_email)
        return False

    body_text = (
        f"Your AI Insight password reset code is {otp}.\n\n"
        f"It expires in {minutes} minutes. If you did not ask for a reset, ignore this email."
    )
    body_html = (
        "<p>Your AI Insight password reset code is</p>"
        f"<p style=\"font-size:24px;font-weight:bold;letter-spacing:4px\">{otp}</p>"
        f"<p>It expires in {minutes} minutes. If you did not ask for a reset, ignore this email.</p>"
    )
    send_email_via_smtp(
        smtp=smtp,
        to_email=to_email,
        subject="Your password reset code",
        body_text=body_text,
        body_html=body_html,
    )
    logger.info("Password reset code sent to %s", to_email)
    return True
