"""
Audit Logger

DESIGN DECISION: Every write in the system is logged.
This provides:
1. Traceability of who changed what
2. Debugging capability for failed uploads and notifications
3. A record of contact messages that were dropped without an email

The audit logger:
- Always logs locally through structlog
- Optionally persists events to the auditEvents collection
- Never breaks the main flow if persisting fails
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finance_tracker.models.documents import AUDIT_EVENTS
from finance_tracker.services.storage import DocumentStoreInterface


def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog for JSON output."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_correlation_id() -> UUID:
    """Create an id linking the audit events of one user action."""
    return uuid4()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The auditEvents collection (when a store is given)
    """

    def __init__(self, store: Optional[DocumentStoreInterface] = None):
        """
        Args:
            store: Document store for persistence.
                   If None, only logs locally.
        """
        self._store = store
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(
        self,
        event: AuditEvent,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Log an audit event.

        Returns True if the store write succeeded (or no store configured).
        """
        if correlation_id is not None and event.correlation_id is None:
            event = event.model_copy(update={"correlation_id": correlation_id})
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._store is not None:
            try:
                await self._store.add_document(AUDIT_EVENTS, event.to_document_data())
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_validation_failed(
        self,
        form: str,
        issues: list[dict],
        uid: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(form, issues, uid))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        uid: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(service, error_message, uid))

    async def log_account_event(
        self,
        event_type: AuditEventType,
        uid: str,
        email: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.account_event(event_type, uid, email))
