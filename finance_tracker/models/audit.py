"""
Audit Models for Finance Tracker

Every write the app performs is recorded as an audit event.
This provides:
1. Traceability of who changed what
2. Debugging information when a write or a notification fails
3. A record of dropped contact messages (they are never retried)

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    TRANSACTION_SAVED = "transaction_saved"
    RECEIPT_UPLOADED = "receipt_uploaded"

    # Goals
    GOAL_CREATED = "goal_created"
    GOAL_PROGRESS_UPDATED = "goal_progress_updated"
    GOAL_DELETED = "goal_deleted"

    # Subscriptions
    SUBSCRIPTION_SAVED = "subscription_saved"
    SUBSCRIPTION_DELETED = "subscription_deleted"

    # Contact
    CONTACT_MESSAGE_RECEIVED = "contact_message_received"
    CONTACT_EMAIL_SENT = "contact_email_sent"
    CONTACT_MESSAGE_DROPPED = "contact_message_dropped"

    # Accounts
    USER_SIGNED_UP = "user_signed_up"
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"
    PROFILE_UPDATED = "profile_updated"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What the event is about
    entity_type: Optional[str] = Field(
        default=None,
        description="Collection or entity kind (e.g. 'transactions', 'user')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Document id or user id"
    )
    uid: Optional[str] = Field(
        default=None,
        description="User who triggered the event, if any"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Links the events of one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "uid": self.uid,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_document_data(self) -> dict:
        """Convert to a document for the auditEvents collection."""
        data = self.to_log_dict()
        data["eventId"] = data.pop("event_id")
        data["eventType"] = data.pop("event_type")
        data["entityType"] = data.pop("entity_type")
        data["entityId"] = data.pop("entity_id")
        data["correlationId"] = data.pop("correlation_id")
        data["errorMessage"] = data.pop("error_message")
        return data


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(doc_id, uid, "Food", "-25.50")
        event = AuditEventBuilder.contact_message_dropped(doc_id, missing)
    """

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        uid: str,
        category: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transactions",
            entity_id=transaction_id,
            uid=uid,
            description=f"Transaction saved: {category} {amount}",
            details={"category": category, "amount": amount},
        )

    @staticmethod
    def receipt_uploaded(uid: str, path: str, size_bytes: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            entity_type="object",
            entity_id=path,
            uid=uid,
            description=f"Receipt image uploaded to {path}",
            details={"size_bytes": size_bytes},
        )

    @staticmethod
    def goal_changed(
        event_type: AuditEventType,
        goal_id: str,
        uid: Optional[str],
        details: Optional[dict] = None,
    ) -> AuditEvent:
        verb = {
            AuditEventType.GOAL_CREATED: "created",
            AuditEventType.GOAL_PROGRESS_UPDATED: "progress updated",
            AuditEventType.GOAL_DELETED: "deleted",
        }[event_type]
        return AuditEvent(
            event_type=event_type,
            entity_type="goals",
            entity_id=goal_id,
            uid=uid,
            description=f"Goal {verb}",
            details=details or {},
        )

    @staticmethod
    def subscription_changed(
        subscription_id: str,
        uid: Optional[str],
        deleted: bool = False,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.SUBSCRIPTION_DELETED
                if deleted
                else AuditEventType.SUBSCRIPTION_SAVED
            ),
            entity_type="subscriptions",
            entity_id=subscription_id,
            uid=uid,
            description="Subscription deleted" if deleted else "Subscription saved",
            details=details or {},
        )

    @staticmethod
    def contact_message_received(message_id: str, uid: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACT_MESSAGE_RECEIVED,
            entity_type="contactMessages",
            entity_id=message_id,
            uid=uid,
            description="Contact message received",
        )

    @staticmethod
    def contact_email_sent(message_id: str, sender_email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACT_EMAIL_SENT,
            entity_type="contactMessages",
            entity_id=message_id,
            description="Contact notification email sent",
            details={"email": sender_email},
        )

    @staticmethod
    def contact_message_dropped(message_id: str, missing: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACT_MESSAGE_DROPPED,
            severity=AuditSeverity.ERROR,
            entity_type="contactMessages",
            entity_id=message_id,
            description="Missing required fields in contact message",
            details={"missing_fields": missing},
        )

    @staticmethod
    def account_event(
        event_type: AuditEventType,
        uid: str,
        email: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="user",
            entity_id=uid,
            uid=uid,
            description=event_type.value.replace("_", " ").capitalize(),
            details={"email": email} if email else {},
        )

    @staticmethod
    def validation_failed(
        form: str,
        issues: list[dict],
        uid: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=form,
            uid=uid,
            description=f"{form.capitalize()} form rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        uid: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            uid=uid,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
        )
