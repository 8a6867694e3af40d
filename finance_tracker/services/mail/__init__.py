"""Mail relay services package."""

from finance_tracker.services.mail.smtp import (
    MailDeliveryError,
    MailerInterface,
    SmtpMailer,
)

__all__ = ["MailDeliveryError", "MailerInterface", "SmtpMailer"]
