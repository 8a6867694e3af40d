"""
Storage Services Package

Provides the abstract document store interface, live queries, and two
implementations: Google Sheets (hosted) and in-memory (local mode, tests).
"""

from finance_tracker.services.storage.interface import (
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.live import LiveQuery
from finance_tracker.services.storage.memory import InMemoryDocumentStore
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Interfaces
    "DocumentStoreInterface",
    "LiveQuery",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
]
