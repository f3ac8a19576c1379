import logging
from email.message import EmailMessage

import aiosmtplib

from forum.config import settings

logger = logging.getLogger(__name__)


async def send_email(to: str, subject: str, html: str) -> None:
    """
    Deliver an HTML email through the configured backend.

    The ``console`` backend only logs the message; ``smtp`` hands it to
    ``aiosmtplib`` with ``SMTP_TIMEOUT`` bounding the whole exchange.
    """
    if settings.EMAIL_BACKEND == "console":
        logger.info("Email to=%s subject=%r\n%s", to, subject, html)
        return

    message = EmailMessage()
    message["From"] = settings.EMAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(html, subtype="html")

    await aiosmtplib.send(
        message,
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        start_tls=settings.SMTP_STARTTLS,
        timeout=settings.SMTP_TIMEOUT,
    )
    logger.info("Email sent to=%s subject=%r", to, subject)
