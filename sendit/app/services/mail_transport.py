"""
SMTP mail transport.

smtplib is blocking, so each send runs in a worker thread. Calls go through
the SMTP circuit breaker so a dead relay fails fast instead of tying up a
thread per notification.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from sendit.app.core.config import settings
from sendit.app.core.exceptions import NotificationDeliveryError
from sendit.app.core.reliability import CircuitBreaker, CircuitOpenError, mail_circuit_breaker

logger = logging.getLogger(__name__)


class MailTransport:

    def __init__(self, breaker: CircuitBreaker = mail_circuit_breaker):
        self.breaker = breaker

    @property
    def configured(self) -> bool:
        return bool(settings.smtp_host and settings.smtp_user and settings.smtp_password)

    def build_message(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((settings.smtp_from_name, settings.smtp_from_email))
        message["To"] = formataddr((to_name or "", to_email))
        message["Subject"] = subject
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")
        return message

    async def send(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> bool:
        """
        Send one email.

        Returns:
            True if the relay accepted the message, False if SMTP is not
            configured (nothing is attempted).

        Raises:
            NotificationDeliveryError: relay failure or open circuit
        """
        if not self.configured:
            logger.info("SMTP not configured, skipping email to %s", to_email)
            return False

        message = self.build_message(to_email, to_name, subject, text, html)
        try:
            await self.breaker.call(asyncio.to_thread, self._send_sync, message)
        except CircuitOpenError as exc:
            raise NotificationDeliveryError(str(exc)) from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationDeliveryError(f"SMTP send to {to_email} failed: {exc}") from exc

        logger.info("Email sent to %s: %s", to_email, subject)
        return True

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as smtp:
            smtp.starttls()
            smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(message)
