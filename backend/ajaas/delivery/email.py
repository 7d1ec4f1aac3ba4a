"""Email delivery via SMTP, with a console stand-in for development."""

import asyncio
import html
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

logger = logging.getLogger(__name__)

_SMTP_TIMEOUT = 30.0


class EmailDelivery(Protocol):
    """Sends a message body to one recipient. Returns True on success."""

    async def send_message(self, to_address: str, recipient_name: str, message: str) -> bool: ...


@dataclass(frozen=True)
class SMTPConfig:
    host: str
    port: int = 587
    secure: bool = False
    user: str | None = None
    password: str | None = None
    from_address: str = "ajaas@localhost"


def build_email(from_address: str, to_address: str, recipient_name: str, message: str) -> EmailMessage:
    """Build a plain-text + HTML email for a delivery."""
    email = EmailMessage()
    email["Subject"] = f"Awesome Job, {recipient_name}!"
    email["From"] = from_address
    email["To"] = to_address
    email.set_content(message)
    email.add_alternative(
        f"""\
<div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 40px 20px;">
  <h1 style="color: #2563eb; margin-bottom: 24px;">&#127881; Awesome Job!</h1>
  <p style="font-size: 18px; line-height: 1.6; color: #374151;">{html.escape(message)}</p>
  <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 32px 0;">
  <p style="font-size: 12px; color: #9ca3af;">Sent via AJaaS - Awesome Job As A Service</p>
</div>
""",
        subtype="html",
    )
    return email


class SMTPEmailDelivery:
    """Sends email through an SMTP server.

    smtplib is blocking, so each send runs in a worker thread.
    """

    def __init__(self, config: SMTPConfig):
        self._config = config

    def _send_sync(self, email: EmailMessage) -> None:
        config = self._config
        smtp_class = smtplib.SMTP_SSL if config.secure else smtplib.SMTP
        with smtp_class(config.host, config.port, timeout=_SMTP_TIMEOUT) as server:
            if not config.secure and config.port != 25:
                server.starttls()
            if config.user and config.password:
                server.login(config.user, config.password)
            server.send_message(email)

    async def send_message(self, to_address: str, recipient_name: str, message: str) -> bool:
        email = build_email(self._config.from_address, to_address, recipient_name, message)
        try:
            await asyncio.to_thread(self._send_sync, email)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email delivery failed: %s", e)
            return False


class ConsoleEmailDelivery:
    """Logs emails instead of sending them."""

    async def send_message(self, to_address: str, recipient_name: str, message: str) -> bool:
        logger.info("[EMAIL] To: %s (%s)", to_address, recipient_name)
        logger.info("[EMAIL] Message: %s", message)
        return True
