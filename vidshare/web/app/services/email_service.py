"""
Outbound email delivery.
"""
import asyncio
import smtplib
import ssl
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache

from ..config import get_settings
from ..errors import FatalError
from .logging_service import get_logger

settings = get_settings()
logger = get_logger("email")


class EmailSender:
    """Delivers plain-text mail over SMTP; logs instead when SMTP is not configured."""

    def __init__(self):
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_username)

    async def send(self, to: str, subject: str, body: str) -> str:
        message_id = str(uuid.uuid4())

        if not self.enabled:
            logger.event("email_skipped", f"SMTP not configured, not sending '{subject}'",
                         message_id=message_id, recipient=to)
            return message_id

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.from_email
        msg['To'] = to
        msg['Message-ID'] = f"<{message_id}@{self.from_email.split('@')[-1]}>"
        msg.attach(MIMEText(body, 'plain'))

        try:
            await asyncio.to_thread(self._deliver, msg, to)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email delivery failed", exc_info=True, extra={'recipient': to})
            raise FatalError("Failed to send email") from e

        logger.event("email_sent", message_id=message_id, recipient=to)
        return message_id

    def _deliver(self, msg: MIMEMultipart, to: str):
        context = ssl.create_default_context()
        with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
            server.starttls(context=context)
            server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg, to_addrs=[to])


@lru_cache()
def get_email_sender() -> EmailSender:
    return EmailSender()
