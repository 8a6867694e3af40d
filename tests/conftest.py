"""
Shared fixtures.

Everything runs against in-memory collaborators. No network calls.
"""

from datetime import date
from email.message import EmailMessage
from io import BytesIO
from typing import Optional

import pytest
from PIL import Image

from finance_tracker.audit import AuditLogger
from finance_tracker.config import AppSettings, EmailSettings
from finance_tracker.dashboard import DashboardAggregator
from finance_tracker.models import UploadedImage, UserProfile
from finance_tracker.notifications import ContactForm, ContactNotifier
from finance_tracker.services.auth import DocumentStoreAuthProvider, SessionContext
from finance_tracker.services.image import (
    ImageUploadError,
    InMemoryObjectStorage,
    ObjectStorageInterface,
    StoredObject,
)
from finance_tracker.services.mail import MailerInterface
from finance_tracker.services.storage import InMemoryDocumentStore
from finance_tracker.tracking import GoalTracker, SubscriptionManager, TransactionLedger
from finance_tracker.validation import FormValidator


TODAY = date(2024, 1, 15)


def make_png(size: tuple[int, int] = (4, 4)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, "red").save(buffer, format="PNG")
    return buffer.getvalue()


class FailingObjectStorage(ObjectStorageInterface):
    """Object storage whose uploads always fail."""

    def __init__(self):
        self.attempts = 0

    async def upload(self, data: bytes, path: str, content_type: str) -> StoredObject:
        self.attempts += 1
        raise ImageUploadError("Upload service unavailable")


class RecordingMailer(MailerInterface):
    """Keeps sent messages instead of talking to a relay."""

    def __init__(self, settings: EmailSettings, error: Optional[Exception] = None):
        self._settings = settings
        self._error = error
        self.sent: list[EmailMessage] = []

    @property
    def sender(self) -> str:
        return self._settings.require_credentials()[0]

    async def send(self, message: EmailMessage) -> None:
        self._settings.require_credentials()
        if self._error is not None:
            raise self._error
        self.sent.append(message)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def object_storage():
    return InMemoryObjectStorage()


@pytest.fixture
def app_settings():
    return AppSettings(_env_file=None)


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def validator():
    return FormValidator(today=lambda: TODAY)


@pytest.fixture
def user():
    return UserProfile(uid="user-1", email="alice@example.com", display_name="Alice")


@pytest.fixture
def other_user():
    return UserProfile(uid="user-2", email="bob@example.com", display_name="Bob")


@pytest.fixture
def session(user):
    return SessionContext(user)


@pytest.fixture
def anonymous_session():
    return SessionContext()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def receipt():
    return UploadedImage(filename="receipt.png", content_type="image/png", data=make_png())


@pytest.fixture
def ledger(store, object_storage, audit_logger, validator):
    return TransactionLedger(store, object_storage, audit_logger, validator)


@pytest.fixture
def goals(store, audit_logger, validator):
    return GoalTracker(store, audit_logger, validator)


@pytest.fixture
def subscriptions(store, audit_logger, validator):
    return SubscriptionManager(store, audit_logger, validator)


@pytest.fixture
def aggregator(store):
    return DashboardAggregator(store)


@pytest.fixture
def auth(store, object_storage, audit_logger, app_settings):
    return DocumentStoreAuthProvider(store, object_storage, audit_logger, app_settings)


@pytest.fixture
def email_settings():
    return EmailSettings(user="owner@example.com", password="app-password")


@pytest.fixture
def mailer(email_settings):
    return RecordingMailer(email_settings)


@pytest.fixture
def contact_form(store, audit_logger, validator):
    return ContactForm(store, audit_logger, validator)


@pytest.fixture
def notifier(mailer, audit_logger):
    return ContactNotifier(mailer, audit_logger)


@pytest.fixture
def failing_storage():
    return FailingObjectStorage()


@pytest.fixture
def make_mailer():
    """Build a RecordingMailer with custom settings or a send error."""
    def factory(settings: EmailSettings, error: Optional[Exception] = None) -> RecordingMailer:
        return RecordingMailer(settings, error)
    return factory
