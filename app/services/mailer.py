"""
Outbound mail for password reset links.

SmtpMailer sends over SMTP using the settings from app.core.config.
LoggingMailer only logs the message; it is used in dev when SMTP is not
configured so the reset flow can be exercised locally.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


class MailDeliveryError(Exception):
    """Raised when a message could not be handed to the mail transport."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class Mailer(Protocol):
    def send(self, to_address: str, subject: str, template_data: dict[str, Any]) -> None: ...


def render_password_reset(app_name: str, template_data: dict[str, Any]) -> tuple[str, str]:
    """Return (text_body, html_body) for a reset mail. Needs username and reset_link."""
    try:
        username = template_data["username"]
        reset_link = template_data["reset_link"]
    except KeyError as e:
        raise MailDeliveryError(f"Missing template field: {e.args[0]}") from e

    text_body = f"""
Password Reset Request for {app_name}

Hi {username},

We received a request to reset your password. Use the link below (expires in 1 hour):

{reset_link}

If you didn't request this, you can safely ignore this email.
    """.strip()

    html_body = f"""
    <div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 560px; margin: 0 auto; padding: 32px 24px;">
        <h2 style="font-size: 18px; margin: 0 0 16px 0;">Password Reset Request</h2>
        <p style="font-size: 14px; line-height: 1.6; margin: 0 0 20px 0;">
            Hi <strong>{username}</strong>, we received a request to reset your {app_name} password.
            Click the link below to set a new password. The link expires in <strong>1 hour</strong>.
        </p>
        <a href="{reset_link}" style="display: inline-block; padding: 12px 32px; font-weight: 600; font-size: 14px;">
            Reset My Password
        </a>
        <p style="font-size: 12px; margin: 20px 0 0 0;">
            If you didn't request a password reset, you can safely ignore this email.
        </p>
    </div>
    """
    return text_body, html_body


class SmtpMailer:
    """Send password reset mails through an SMTP relay. No retries."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _from_address(self) -> str:
        address = self.settings.SMTP_FROM_ADDRESS or self.settings.SMTP_USERNAME
        if not address:
            raise MailDeliveryError("SMTP_FROM_ADDRESS or SMTP_USERNAME must be set.")
        return address

    def send(self, to_address: str, subject: str, template_data: dict[str, Any]) -> None:
        if not self.settings.SMTP_HOST:
            raise MailDeliveryError("SMTP is not configured (SMTP_HOST is empty).")

        from_address = self._from_address()
        text_body, html_body = render_password_reset(self.settings.APP_NAME, template_data)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.settings.APP_NAME} <{from_address}>"
        msg["To"] = to_address
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(
                self.settings.SMTP_HOST,
                self.settings.SMTP_PORT,
                timeout=self.settings.SMTP_TIMEOUT_SEC,
            ) as server:
                server.ehlo()
                if self.settings.SMTP_USE_TLS:
                    server.starttls()
                    server.ehlo()
                if self.settings.SMTP_USERNAME and self.settings.SMTP_PASSWORD is not None:
                    server.login(
                        self.settings.SMTP_USERNAME,
                        self.settings.SMTP_PASSWORD.get_secret_value(),
                    )
                server.sendmail(from_address, [to_address], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"SMTP delivery to {to_address} failed: {e}") from e

        logger.info("Mail sent", extra={"to_address": to_address, "subject": subject})


class LoggingMailer:
    """Dev-only mailer: logs the rendered message instead of sending it."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send(self, to_address: str, subject: str, template_data: dict[str, Any]) -> None:
        text_body, _ = render_password_reset(self.settings.APP_NAME, template_data)
        logger.warning(
            "SMTP not configured; mail to %s not sent. Subject: %s\n%s",
            to_address,
            subject,
            text_body,
        )


def build_mailer(settings: Settings) -> Mailer:
    """SMTP when configured; in dev without SMTP_HOST, log mails instead."""
    if settings.SMTP_HOST is None and settings.APP_ENV == "dev":
        return LoggingMailer(settings)
    return SmtpMailer(settings)
