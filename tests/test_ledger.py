"""Tests for the transaction ledger."""

from decimal import Decimal

import pytest

from finance_tracker.models import TRANSACTIONS, CollectionQuery, TransactionType, UploadedImage
from finance_tracker.services.auth import AuthError, SessionContext
from finance_tracker.services.image import ImageUploadError, InvalidImageError
from finance_tracker.tracking import TransactionLedger
from finance_tracker.validation import ValidationError


ALL_TRANSACTIONS = CollectionQuery(collection=TRANSACTIONS)


class TestSubmitTransaction:
    """Creating transactions."""

    async def test_food_expense_is_stored_negative(self, ledger, store, session):
        """Expense of 25.50 in Food is stored as -25.50."""
        transaction = await ledger.submit_transaction(
            session, "2024-01-10", "Food", "25.50", "Expense"
        )
        assert transaction.amount == Decimal("-25.50")

        document = await store.get_document(TRANSACTIONS, transaction.id)
        assert document.data["amount"] == "-25.50"
        assert document.data["type"] == "Expense"
        assert document.data["uid"] == "user-1"
        assert document.data["imageUrl"] == ""

    @pytest.mark.parametrize("type_, sign", [("Income", 1), ("Expense", -1)])
    async def test_sign_follows_type(self, ledger, session, type_, sign):
        transaction = await ledger.submit_transaction(
            session, "2024-01-10", "Salary", "1200", type_
        )
        assert transaction.amount == Decimal("1200") * sign
        assert transaction.magnitude == Decimal("1200")
        assert transaction.type is TransactionType(type_)

    async def test_requires_sign_in(self, ledger, store, anonymous_session):
        with pytest.raises(AuthError, match="You must be logged in to add a transaction"):
            await ledger.submit_transaction(
                anonymous_session, "2024-01-10", "Food", "10", "Expense"
            )
        assert await store.run_query(ALL_TRANSACTIONS) == []

    async def test_invalid_form_writes_nothing(self, ledger, store, session):
        with pytest.raises(ValidationError, match="Amount must be a positive number"):
            await ledger.submit_transaction(session, "2024-01-10", "Food", "-3", "Expense")
        assert await store.run_query(ALL_TRANSACTIONS) == []

    async def test_duplicate_submissions_create_two(self, ledger, store, session):
        """There is no idempotency key."""
        for _ in range(2):
            await ledger.submit_transaction(session, "2024-01-10", "Food", "5", "Expense")
        assert len(await store.run_query(ALL_TRANSACTIONS)) == 2


class TestReceiptUpload:
    """Receipt images attached to transactions."""

    async def test_receipt_uploaded_under_user_path(
        self, ledger, store, object_storage, session, receipt
    ):
        transaction = await ledger.submit_transaction(
            session, "2024-01-10", "Food", "12", "Expense", image=receipt
        )
        (path,) = object_storage.objects
        assert path.startswith("transaction-images/user-1/")
        assert path.endswith("_receipt.png")
        assert transaction.image_url == f"memory://{path}"

    async def test_upload_failure_aborts_submission(
        self, store, audit_logger, validator, failing_storage, session, receipt
    ):
        ledger = TransactionLedger(store, failing_storage, audit_logger, validator)
        with pytest.raises(ImageUploadError):
            await ledger.submit_transaction(
                session, "2024-01-10", "Food", "12", "Expense", image=receipt
            )
        assert await store.run_query(ALL_TRANSACTIONS) == []

    async def test_non_image_rejected(self, ledger, store, session):
        pdf = UploadedImage(filename="r.pdf", content_type="application/pdf", data=b"%PDF")
        with pytest.raises(InvalidImageError):
            await ledger.submit_transaction(
                session, "2024-01-10", "Food", "12", "Expense", image=pdf
            )
        assert await store.run_query(ALL_TRANSACTIONS) == []


class TestListTransactions:
    """Listing and watching a user's transactions."""

    async def test_newest_first_and_own_only(self, ledger, session, other_user):
        await ledger.submit_transaction(session, "2024-01-02", "Food", "1", "Expense")
        await ledger.submit_transaction(session, "2024-01-09", "Rent", "2", "Expense")
        await ledger.submit_transaction(
            SessionContext(other_user), "2024-01-05", "Food", "3", "Expense"
        )

        transactions = await ledger.list_transactions(session)
        assert [t.date.isoformat() for t in transactions] == ["2024-01-09", "2024-01-02"]

    async def test_malformed_documents_skipped(self, ledger, store, session):
        await ledger.submit_transaction(session, "2024-01-02", "Food", "1", "Expense")
        await store.add_document(TRANSACTIONS, {
            "uid": "user-1",
            "date": "2024-01-03",
            "category": "Travel",
            "amount": "-4",
            "type": "Expense",
        })
        transactions = await ledger.list_transactions(session)
        assert len(transactions) == 1

    async def test_watch_pushes_new_transactions(self, ledger, store, session):
        async with ledger.watch_transactions(session) as live:
            initial = await live.__anext__()
            assert initial.size == 0
            await ledger.submit_transaction(session, "2024-01-02", "Food", "1", "Expense")
            update = await live.__anext__()
            assert update.size == 1
        assert store.active_live_queries == 0
