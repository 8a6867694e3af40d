"""
Contact Form and Contact Notifier

The form writes one contactMessages document per submission.
The notifier reacts to each newly created document by emailing the
site owner (from and to EMAIL_USER).

DELIVERY SEMANTICS:
- A document missing name, email or message is logged and dropped.
  It is not retried and not marked as failed.
- Missing mail credentials are fatal (ConfigurationError).
- A send failure is logged and re-raised by the notifier. The trigger
  records it and keeps watching. No retry.
"""

import html
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any, Callable, Optional

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.config import ConfigurationError
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.documents import CONTACT_MESSAGES, CollectionQuery, Document
from finance_tracker.models.records import ContactMessage, utc_now
from finance_tracker.services.auth import SessionContext
from finance_tracker.services.mail import MailerInterface
from finance_tracker.services.storage import DocumentStoreInterface, LiveQuery
from finance_tracker.validation import FormValidator, ValidationError


logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("name", "email", "message")


class ContactForm:
    """Stores contact messages from signed-in users and anonymous visitors."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FormValidator] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._validator = validator or FormValidator()

    async def submit(
        self,
        session: SessionContext,
        name: str,
        email: str,
        message: str,
    ) -> ContactMessage:
        """
        Validate and store a contact message.

        Raises:
            ValidationError: Missing field or malformed email (nothing is written)
        """
        try:
            entry = self._validator.contact(name, email, message)
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    "contact", e.to_dicts(), session.uid
                )
            raise

        contact = ContactMessage(
            name=entry.name,
            email=entry.email,
            message=entry.message,
            uid=session.uid or "anonymous",
        )
        message_id = await self._store.add_document(
            CONTACT_MESSAGES, contact.to_document_data()
        )

        logger.info("contact_message_stored", message_id=message_id, uid=contact.uid)
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.contact_message_received(message_id, contact.uid)
            )
        return contact.model_copy(update={"id": message_id})


def format_timestamp(data: dict[str, Any], now: Callable[[], datetime] = utc_now) -> str:
    """createdAt, else timestamp, else now; as ISO 8601."""
    value = data.get("createdAt") or data.get("timestamp")
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str) and value.strip():
        return value.strip()
    return now().isoformat()


def build_contact_email(
    data: dict[str, Any],
    sender: str,
    timestamp: str,
) -> EmailMessage:
    """Plain text and HTML notification for one contact message."""
    name = str(data["name"])
    email = str(data["email"])
    text = str(data["message"])

    message = EmailMessage()
    message["From"] = sender
    message["To"] = sender
    message["Subject"] = f"New Contact Message from {name}"
    message.set_content(
        f"Name: {name}\n"
        f"Email: {email}\n"
        f"Message: {text}\n"
        f"Sent at: {timestamp}\n"
    )
    message.add_alternative(
        "<h3>New Contact Message</h3>\n"
        f"<p><strong>Name:</strong> {html.escape(name)}</p>\n"
        f"<p><strong>Email:</strong> {html.escape(email)}</p>\n"
        f"<p><strong>Message:</strong> {html.escape(text)}</p>\n"
        f"<p><strong>Sent at:</strong> {html.escape(timestamp)}</p>\n",
        subtype="html",
    )
    return message


class ContactNotifier:
    """Sends one email per newly created contact message."""

    def __init__(
        self,
        mailer: MailerInterface,
        audit_logger: Optional[AuditLogger] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self._mailer = mailer
        self._audit_logger = audit_logger
        self._now = now

    async def handle_created(self, document: Document) -> bool:
        """
        Notify about one new contact message.

        Returns:
            True if an email was sent, False if the message was dropped

        Raises:
            ConfigurationError: Mail credentials are not configured
            MailDeliveryError: The relay failed (after logging)
        """
        data = document.data
        logger.info("contact_message_received", message_id=document.id)

        missing = [f for f in REQUIRED_FIELDS if not str(data.get(f) or "").strip()]
        if missing:
            logger.error(
                "contact_message_missing_fields",
                message_id=document.id,
                missing=missing,
            )
            if self._audit_logger:
                await self._audit_logger.log(
                    AuditEventBuilder.contact_message_dropped(document.id, missing)
                )
            return False

        sender = self._mailer.sender
        email = build_contact_email(data, sender, format_timestamp(data, self._now))

        try:
            await self._mailer.send(email)
        except Exception as e:
            logger.error("contact_email_failed", message_id=document.id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="mail",
                    error_message=str(e),
                )
            raise

        logger.info("contact_email_sent", message_id=document.id, email=data["email"])
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.contact_email_sent(document.id, str(data["email"]))
            )
        return True


class ContactTrigger:
    """
    Runs the notifier for every contact message created while it watches.

    Messages in the first snapshot are notified only when their createdAt
    is after the moment the trigger started. Documents are handled
    one at a time, in arrival order. A failed send is logged and the
    trigger keeps watching; only ConfigurationError stops it.
    """

    def __init__(
        self,
        notifier: ContactNotifier,
        now: Callable[[], datetime] = utc_now,
    ):
        self._notifier = notifier
        self._now = now
        self._live: Optional[LiveQuery] = None
        self.failed: list[str] = []

    @staticmethod
    def _created_since(document: Document, started: datetime) -> bool:
        value = document.data.get("createdAt")
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return False
        if not isinstance(value, datetime):
            return False
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value > started

    async def _handle(self, document: Document) -> None:
        try:
            await self._notifier.handle_created(document)
        except ConfigurationError:
            raise
        except Exception as e:
            # Already logged and audited by the notifier
            self.failed.append(document.id)
            logger.warning(
                "contact_trigger_message_failed",
                message_id=document.id,
                error=str(e),
            )

    async def run(self, store: DocumentStoreInterface) -> int:
        """
        Watch until stopped.

        Returns:
            Number of documents handled (sent, dropped or failed)

        Raises:
            ConfigurationError: Mail credentials are not configured
        """
        handled = 0
        started = self._now()
        async with store.subscribe(CollectionQuery(collection=CONTACT_MESSAGES)) as live:
            self._live = live
            logger.info("contact_trigger_started")
            try:
                async for snapshot in live:
                    if snapshot.is_initial:
                        pending = [
                            d for d in snapshot.documents
                            if self._created_since(d, started)
                        ]
                    else:
                        pending = snapshot.added
                    for document in pending:
                        await self._handle(document)
                        handled += 1
            finally:
                self._live = None

        logger.info("contact_trigger_stopped", handled=handled, failed=len(self.failed))
        return handled

    def stop(self) -> None:
        if self._live is not None:
            self._live.cancel()
