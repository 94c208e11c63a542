"""Outgoing email.

Two backends, selected by EMAIL_BACKEND:
- console: logs the message (development, tests)
- smtp: sends via aiosmtplib with STARTTLS
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from html import escape

import aiosmtplib

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body_html: str
    body_text: str


class EmailSendError(Exception):
    """Delivery to one recipient failed."""


class EmailService(ABC):
    @abstractmethod
    async def send_email(self, message: EmailMessage) -> None:
        """Deliver one message. Raises EmailSendError on failure."""


class ConsoleEmailService(EmailService):
    async def send_email(self, message: EmailMessage) -> None:
        logger.info(
            "email.console",
            to=message.to,
            subject=message.subject,
            body=message.body_text,
        )


class SMTPEmailService(EmailService):
    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        username: str,
        password: str,
        from_email: str,
        from_name: str,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name

    def _build_mime(self, message: EmailMessage) -> MimeMessage:
        msg = MimeMessage()
        msg["Subject"] = message.subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = message.to
        msg.set_content(message.body_text)
        msg.add_alternative(message.body_html, subtype="html")
        return msg

    async def send_email(self, message: EmailMessage) -> None:
        try:
            await aiosmtplib.send(
                self._build_mime(message),
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.username or None,
                password=self.password or None,
                start_tls=True,
            )
        except aiosmtplib.SMTPException as e:
            raise EmailSendError(f"SMTP delivery to {message.to} failed: {e}") from e


def get_email_service() -> EmailService:
    settings = get_settings()
    if settings.email_backend == "smtp":
        return SMTPEmailService(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_email=settings.email_from_address,
            from_name=settings.email_from_name,
        )
    return ConsoleEmailService()


def build_streak_reminder(username: str, email: str, app_url: str) -> EmailMessage:
    """Reminder for a user who logged nothing yesterday."""
    safe_name = escape(username)
    safe_url = escape(app_url, quote=True)
    html = f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 24px; border-radius: 12px; border: 1px solid #e5e7eb;">
  <h2 style="margin: 0 0 16px; color: #111827;">Hi {safe_name}</h2>
  <p style="margin: 0 0 12px; color: #374151;">
    You missed your streak yesterday, but you can still keep logging today.
  </p>
  <div style="margin: 0 0 24px;">
    <a href="{safe_url}"
       style="display: inline-block; padding: 10px 20px; background-color: #4f46e5; color: #ffffff; text-decoration: none; border-radius: 999px; font-weight: 600;">
      Log today's activities
    </a>
  </div>
  <p style="margin: 0; color: #111827;">Keep growing</p>
</div>
"""
    text = (
        f"Hi {username},\n\n"
        "You missed your streak yesterday, but you can still keep logging today.\n\n"
        f"Log today's activities: {app_url}\n\n"
        "Keep growing\n"
    )
    return EmailMessage(
        to=email,
        subject=f"Don't lose your streak, {username}!",
        body_html=html,
        body_text=text,
    )
