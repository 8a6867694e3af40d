"""
In-Memory Document Store

Used in local mode (no spreadsheet configured) and in tests.
Live queries are pushed synchronously on every write, so consumers see
each change exactly once and in order.

Nothing here survives a restart.
"""

import copy
from typing import Any, Optional
from uuid import uuid4

import structlog

from finance_tracker.models.documents import CollectionQuery, Document
from finance_tracker.services.storage.interface import (
    DocumentStoreInterface,
    NotFoundError,
)
from finance_tracker.services.storage.live import LiveQuery


logger = structlog.get_logger(__name__)


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dictionary-backed implementation of the document store."""

    def __init__(self):
        # collection -> {document_id: data}, insertion ordered
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._live_queries: list[LiveQuery] = []

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def _documents(self, collection: str) -> list[Document]:
        return [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collection(collection).items()
        ]

    def _notify(self, collection: str) -> None:
        """Push the new result set to every live query on this collection."""
        documents = self._documents(collection)
        for live in list(self._live_queries):
            if live.query.collection == collection:
                live.push(live.query.apply(documents))

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        document_id = uuid4().hex
        self._collection(collection)[document_id] = copy.deepcopy(data)
        logger.debug("document_added", collection=collection, document_id=document_id)
        self._notify(collection)
        return document_id

    async def get_document(self, collection: str, document_id: str) -> Optional[Document]:
        data = self._collection(collection).get(document_id)
        if data is None:
            return None
        return Document(id=document_id, data=copy.deepcopy(data))

    async def set_document(
        self,
        collection: str,
        document_id: str,
        data: dict[str, Any],
    ) -> None:
        documents = self._collection(collection)
        if document_id not in documents:
            raise NotFoundError(f"Document not found: {collection}/{document_id}")
        documents[document_id] = copy.deepcopy(data)
        self._notify(collection)

    async def update_document(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, Any],
    ) -> Document:
        documents = self._collection(collection)
        if document_id not in documents:
            raise NotFoundError(f"Document not found: {collection}/{document_id}")
        documents[document_id].update(copy.deepcopy(fields))
        self._notify(collection)
        return Document(id=document_id, data=copy.deepcopy(documents[document_id]))

    async def delete_document(self, collection: str, document_id: str) -> bool:
        documents = self._collection(collection)
        if documents.pop(document_id, None) is None:
            return False
        self._notify(collection)
        return True

    async def run_query(self, query: CollectionQuery) -> list[Document]:
        return query.apply(self._documents(query.collection))

    def subscribe(self, query: CollectionQuery) -> LiveQuery:
        live = LiveQuery(query, on_cancel=self._live_queries.remove)
        live.push(query.apply(self._documents(query.collection)))
        self._live_queries.append(live)
        return live

    @property
    def active_live_queries(self) -> int:
        """Number of live queries not yet cancelled (leak detection in tests)."""
        return len(self._live_queries)
