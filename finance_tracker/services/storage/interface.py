"""
Abstract Document Store Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run on Google Sheets without touching business logic
2. Use in-memory storage for local mode and testing
3. Swap in a hosted document database later

The interface is intentionally small - we're not building a database.
Just the operations the ledger, goals, subscriptions, contact form and
auth provider perform: single-document writes, equality queries and
live queries.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from finance_tracker.models.documents import CollectionQuery, Document
from finance_tracker.services.storage.live import LiveQuery


class DocumentStoreInterface(ABC):
    """
    Abstract interface for a collection/document store.

    Writes are last-write-wins. There is no referential integrity and
    no multi-document transaction.
    """

    @abstractmethod
    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        """
        Create a document with a store-assigned id.

        Returns:
            The new document id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_document(self, collection: str, document_id: str) -> Optional[Document]:
        """Return the document, or None if it does not exist."""
        pass

    @abstractmethod
    async def set_document(
        self,
        collection: str,
        document_id: str,
        data: dict[str, Any],
    ) -> None:
        """
        Overwrite every field of an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_document(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, Any],
    ) -> Document:
        """
        Merge fields into an existing document.

        Returns:
            The document after the update

        Raises:
            NotFoundError: If the document doesn't exist
        """
        pass

    @abstractmethod
    async def delete_document(self, collection: str, document_id: str) -> bool:
        """
        Delete a document.

        Returns:
            True if a document was deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def run_query(self, query: CollectionQuery) -> list[Document]:
        """Return the documents matching a query, in query order."""
        pass

    @abstractmethod
    def subscribe(self, query: CollectionQuery) -> LiveQuery:
        """
        Start a live query.

        The returned LiveQuery yields an initial snapshot, then one
        snapshot per change to the result set, until cancelled.
        The caller MUST cancel it (or use `async with`) when done.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Document not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
