"""Email sending via SMTP (fallback channel for members without LINE)."""

import logging
from email.message import EmailMessage

import aiosmtplib

from studiobook.core.config import settings

logger = logging.getLogger(__name__)


async def send_email(to: str, subject: str, body: str) -> None:
    """Send a plain-text email via SMTP. Raises aiosmtplib.SMTPException on failure."""
    message = EmailMessage()
    message["From"] = settings.smtp_from
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)

    await aiosmtplib.send(message, hostname=settings.smtp_host, port=settings.smtp_port)
    logger.info("Email '%s' sent to %s", subject, to)
