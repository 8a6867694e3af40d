"""
SMTP Mail Relay

Sends notification emails through an SSL SMTP relay (Gmail by default).
Credentials come from EMAIL_USER / EMAIL_PASS and are checked at send
time, not at import time.

There is no retry and no dead-letter: a failed send raises
MailDeliveryError and the caller decides what happens next.
"""

import smtplib
import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

import structlog

from finance_tracker.config import EmailSettings, get_settings


logger = structlog.get_logger(__name__)


class MailDeliveryError(Exception):
    """The relay rejected the message or could not be reached."""
    pass


class MailerInterface(ABC):
    """Abstract interface for sending email."""

    @property
    @abstractmethod
    def sender(self) -> str:
        """
        Mailbox that notifications are sent from (and to).

        Raises:
            ConfigurationError: If the mailbox is not configured
        """
        pass

    @abstractmethod
    async def send(self, message: EmailMessage) -> None:
        """
        Send one message.

        Raises:
            ConfigurationError: If credentials are missing
            MailDeliveryError: If sending fails
        """
        pass


class SmtpMailer(MailerInterface):
    """Mailer using smtplib over implicit TLS."""

    def __init__(self, settings: Optional[EmailSettings] = None):
        self._settings = settings or get_settings().email

    @property
    def sender(self) -> str:
        user, _ = self._settings.require_credentials()
        return user

    async def send(self, message: EmailMessage) -> None:
        user, password = self._settings.require_credentials()
        context = ssl.create_default_context()

        try:
            with smtplib.SMTP_SSL(
                self._settings.smtp_host,
                self._settings.smtp_port,
                timeout=self._settings.timeout_seconds,
                context=context,
            ) as smtp:
                smtp.login(user, password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "mail_send_failed",
                host=self._settings.smtp_host,
                subject=message.get("Subject"),
                error=str(e),
            )
            raise MailDeliveryError(f"Failed to send email: {e}") from e

        logger.info("mail_sent", subject=message.get("Subject"), to=message.get("To"))
