"""
Transaction Ledger

Records income and expense entries for the signed-in user.

FLOW:
1. Require a signed-in user
2. Validate the form (date, category, amount, type, notes)
3. Upload the receipt image, if any (failure aborts the submission)
4. Write the transaction with a signed amount

Transactions are never edited after they are written.
There is no duplicate detection: submitting the same form twice
creates two transactions.
"""

from typing import Optional

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.documents import TRANSACTIONS, CollectionQuery
from finance_tracker.models.records import Transaction, UploadedImage
from finance_tracker.services.auth import SessionContext
from finance_tracker.services.image import (
    InvalidImageError,
    ObjectStorageError,
    ObjectStorageInterface,
    receipt_path,
)
from finance_tracker.services.storage import DocumentStoreInterface, LiveQuery
from finance_tracker.tracking.common import owned_by, parse_records
from finance_tracker.validation import FormValidator, ValidationError


logger = structlog.get_logger(__name__)


class TransactionLedger:
    """Creates and lists a user's transactions."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        object_storage: Optional[ObjectStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FormValidator] = None,
    ):
        self._store = store
        self._object_storage = object_storage
        self._audit_logger = audit_logger
        self._validator = validator or FormValidator()

    @staticmethod
    def query_for(uid: str) -> CollectionQuery:
        """The user's transactions, newest date first."""
        return owned_by(TRANSACTIONS, uid, order_by="date", descending=True)

    async def _upload_receipt(self, uid: str, image: UploadedImage, correlation_id) -> str:
        if self._object_storage is None:
            raise ObjectStorageError("Image storage is not configured")

        path = receipt_path(uid, image.filename)
        try:
            stored = await self._object_storage.upload_image(image, path)
        except InvalidImageError:
            raise
        except ObjectStorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="object_storage",
                    error_message=str(e),
                    uid=uid,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.receipt_uploaded(uid, stored.path, stored.size_bytes),
                correlation_id=correlation_id,
            )
        return stored.url

    async def submit_transaction(
        self,
        session: SessionContext,
        date,
        category,
        amount_text,
        type,
        notes: str = "",
        image: Optional[UploadedImage] = None,
    ) -> Transaction:
        """
        Validate and store one transaction.

        Args:
            session: Current session (must be signed in)
            date: "YYYY-MM-DD"
            category: TransactionCategory or its value
            amount_text: Positive amount as typed; the sign comes from `type`
            type: TransactionType or its value
            notes: Optional free text
            image: Optional receipt image

        Returns:
            The stored Transaction, with its id

        Raises:
            AuthError: Not signed in
            ValidationError: The form is invalid (nothing is written)
            ObjectStorageError: The receipt upload failed (nothing is written)
            StorageError: The document write failed
        """
        user = session.require_user("You must be logged in to add a transaction")
        correlation_id = create_correlation_id()

        try:
            entry = self._validator.transaction(date, category, amount_text, type, notes)
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    "transaction", e.to_dicts(), user.uid
                )
            raise

        image_url = ""
        if image is not None:
            image_url = await self._upload_receipt(user.uid, image, correlation_id)

        transaction = Transaction(
            date=entry.date,
            category=entry.category,
            amount=entry.signed_amount,
            type=entry.type,
            notes=entry.notes,
            image_url=image_url,
            uid=user.uid,
        )
        transaction_id = await self._store.add_document(
            TRANSACTIONS, transaction.to_document_data()
        )
        transaction = transaction.model_copy(update={"id": transaction_id})

        logger.info(
            "transaction_saved",
            transaction_id=transaction_id,
            uid=user.uid,
            category=transaction.category.value,
        )
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.transaction_saved(
                    transaction_id,
                    user.uid,
                    transaction.category.value,
                    str(transaction.amount),
                ),
                correlation_id=correlation_id,
            )
        return transaction

    async def list_transactions(self, session: SessionContext) -> list[Transaction]:
        """The signed-in user's transactions, newest date first."""
        user = session.require_user("You must be logged in to view transactions")
        documents = await self._store.run_query(self.query_for(user.uid))
        return parse_records(Transaction, documents)

    def watch_transactions(self, session: SessionContext) -> LiveQuery:
        """Live query over the signed-in user's transactions. Caller cancels it."""
        user = session.require_user("You must be logged in to view transactions")
        return self._store.subscribe(self.query_for(user.uid))
