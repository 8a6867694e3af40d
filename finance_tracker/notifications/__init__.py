"""Contact form and owner notification."""

from finance_tracker.notifications.contact import (
    ContactForm,
    ContactNotifier,
    ContactTrigger,
    build_contact_email,
    format_timestamp,
)

__all__ = [
    "ContactForm",
    "ContactNotifier",
    "ContactTrigger",
    "build_contact_email",
    "format_timestamp",
]
