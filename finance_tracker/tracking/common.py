"""Helpers shared by the per-user record managers."""

from typing import Optional, Type, TypeVar

import pydantic
import structlog

from finance_tracker.models.documents import CollectionQuery, Document
from finance_tracker.models.records import StoredRecord
from finance_tracker.services.storage import DocumentStoreInterface


logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=StoredRecord)


def owned_by(
    collection: str,
    uid: str,
    order_by: str = "createdAt",
    descending: bool = False,
) -> CollectionQuery:
    """Query for one user's documents in a collection."""
    return CollectionQuery(collection=collection).where("uid", uid).order(
        order_by, descending=descending
    )


async def get_owned(
    store: DocumentStoreInterface,
    collection: str,
    document_id: str,
    uid: str,
) -> Optional[Document]:
    """
    Load a document only if it belongs to `uid`.

    Another user's document is reported as missing (None).
    """
    document = await store.get_document(collection, document_id)
    if document is None:
        return None
    if document.data.get("uid") != uid:
        logger.warning(
            "foreign_document_access_denied",
            collection=collection,
            document_id=document_id,
            uid=uid,
        )
        return None
    return document


def parse_records(model: Type[R], documents: list[Document]) -> list[R]:
    """
    Parse stored documents into records.

    Malformed documents (unknown enum values, bad amounts) are skipped
    and logged rather than failing the whole list.
    """
    records = []
    for document in documents:
        try:
            records.append(model.from_document(document))
        except pydantic.ValidationError as e:
            logger.warning(
                "malformed_document_skipped",
                model=model.__name__,
                document_id=document.id,
                errors=e.error_count(),
            )
    return records
