"""
Application Wiring for Finance Tracker

This module builds every component once and hands them to the UI
and to the notifier worker.

DESIGN DECISION: Hosted collaborators are optional.
- Google Sheets configured  -> shared, persistent document store
- Cloudinary configured     -> hosted receipt and avatar images
- Anything missing          -> in-memory fallback (local mode), with a warning

Business modules only see the abstract interfaces, so they behave the
same in both modes.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.dashboard import DashboardAggregator
from finance_tracker.models.records import utc_today
from finance_tracker.notifications import ContactForm, ContactNotifier
from finance_tracker.services.auth import DocumentStoreAuthProvider
from finance_tracker.services.image import (
    CloudinaryObjectStorage,
    InMemoryObjectStorage,
    ObjectStorageInterface,
)
from finance_tracker.services.mail import MailerInterface, SmtpMailer
from finance_tracker.services.storage import (
    DocumentStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
)
from finance_tracker.tracking import GoalTracker, SubscriptionManager, TransactionLedger
from finance_tracker.validation import FormValidator


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything the UI and the worker need, built once."""

    store: DocumentStoreInterface
    object_storage: ObjectStorageInterface
    audit_logger: AuditLogger
    auth: DocumentStoreAuthProvider
    ledger: TransactionLedger
    goals: GoalTracker
    subscriptions: SubscriptionManager
    dashboard: DashboardAggregator
    contact_form: ContactForm
    contact_notifier: ContactNotifier
    local_mode: bool = False


def _create_store(use_storage: bool) -> tuple[DocumentStoreInterface, bool]:
    if use_storage:
        try:
            client = GoogleSheetsClient()
            client.connect()
            return GoogleSheetsDocumentStore(client), False
        except Exception as e:
            # Storage not configured - continue in local mode
            logger.warning("document_store_not_configured", error=str(e))
    return InMemoryDocumentStore(), True


def _create_object_storage(use_storage: bool) -> ObjectStorageInterface:
    if use_storage:
        try:
            return CloudinaryObjectStorage(get_settings().cloudinary)
        except Exception as e:
            logger.warning("object_storage_not_configured", error=str(e))
    return InMemoryObjectStorage()


def create_app_components(
    use_storage: bool = True,
    store: Optional[DocumentStoreInterface] = None,
    object_storage: Optional[ObjectStorageInterface] = None,
    mailer: Optional[MailerInterface] = None,
    today: Callable[[], date] = utc_today,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to try the hosted store and image host.
                     Set to False for local mode and testing.
        store, object_storage, mailer: Explicit collaborators (tests)
        today: Clock for deadline validation
    """
    settings = get_settings()

    local_mode = False
    if store is None:
        store, local_mode = _create_store(use_storage)
    if object_storage is None:
        object_storage = _create_object_storage(use_storage)
    if mailer is None:
        mailer = SmtpMailer(settings.email)

    audit_logger = AuditLogger(store if settings.app.persist_audit_events else None)
    validator = FormValidator(today=today)

    components = AppComponents(
        store=store,
        object_storage=object_storage,
        audit_logger=audit_logger,
        auth=DocumentStoreAuthProvider(store, object_storage, audit_logger, settings.app),
        ledger=TransactionLedger(store, object_storage, audit_logger, validator),
        goals=GoalTracker(store, audit_logger, validator),
        subscriptions=SubscriptionManager(store, audit_logger, validator),
        dashboard=DashboardAggregator(store),
        contact_form=ContactForm(store, audit_logger, validator),
        contact_notifier=ContactNotifier(mailer, audit_logger),
        local_mode=local_mode,
    )

    logger.info(
        "app_components_created",
        store=type(store).__name__,
        object_storage=type(object_storage).__name__,
        local_mode=local_mode,
    )
    return components
