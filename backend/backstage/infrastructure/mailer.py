"""Mailer — outgoing SMTP email for account flows.

Invariants:
    - Missing SMTP configuration raises EmailDeliveryError before any network call
    - Port 465 uses implicit TLS; other ports negotiate STARTTLS when offered
    - Every message carries both a plain-text and an HTML part

Design Decisions:
    - aiosmtplib.send: one awaited call per message, no pooled connection
    - get_mailer() is a FastAPI dependency so tests capture messages with a fake
"""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from backstage.config import get_settings
from backstage.core.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 30
IMPLICIT_TLS_PORT = 465


class SmtpMailer:
    """Sends email through the configured SMTP relay."""

    def __init__(
        self,
        host: str | None,
        port: int | None,
        username: str | None,
        password: str | None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password

    @property
    def configured(self) -> bool:
        return bool(self.host and self.port and self.username and self.password)

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        if not self.configured:
            raise EmailDeliveryError("SMTP is not configured")

        message = MIMEMultipart("alternative")
        message["From"] = self.username
        message["To"] = to
        message["Subject"] = subject
        message.attach(MIMEText(text_body, "plain", "utf-8"))
        message.attach(MIMEText(html_body, "html", "utf-8"))

        implicit_tls = self.port == IMPLICIT_TLS_PORT
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=implicit_tls,
                start_tls=False if implicit_tls else None,
                timeout=SMTP_TIMEOUT,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email via SMTP: {e}")
            raise EmailDeliveryError(str(e))
        logger.info(f"Email sent via SMTP to {to}")


def get_mailer() -> SmtpMailer:
    """FastAPI dependency: mailer built from current settings."""
    settings = get_settings()
    return SmtpMailer(
        settings.smtp_host,
        settings.smtp_port,
        settings.smtp_user,
        settings.smtp_password,
    )
