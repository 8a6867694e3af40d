"""
Tests for Finance Tracker models

Test strategy:
1. Unit tests for records, store models and audit events
2. Stored field names and amount encoding are part of the data contract
3. No real API calls in tests
"""

from datetime import date
from decimal import Decimal

import pydantic
import pytest

from finance_tracker.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BudgetStatus,
    CollectionQuery,
    Document,
    Goal,
    Subscription,
    SubscriptionFrequency,
    Transaction,
    TransactionCategory,
    TransactionType,
    build_snapshot,
)


def make_transaction(**overrides) -> Transaction:
    fields = dict(
        date=date(2024, 1, 10),
        category=TransactionCategory.FOOD,
        amount=Decimal("-25.50"),
        type=TransactionType.EXPENSE,
        uid="user-1",
    )
    fields.update(overrides)
    return Transaction(**fields)


class TestTransactionModel:
    """Tests for the Transaction record."""

    def test_expense_is_negative(self):
        """An expense stores a negative amount."""
        transaction = make_transaction()
        assert transaction.is_expense
        assert transaction.magnitude == Decimal("25.50")

    def test_sign_must_match_type(self):
        """A positive expense is rejected."""
        with pytest.raises(pydantic.ValidationError):
            make_transaction(amount=Decimal("25.50"))

    def test_zero_amount_rejected(self):
        """Zero is neither income nor expense."""
        with pytest.raises(pydantic.ValidationError):
            make_transaction(amount=Decimal("0"), type=TransactionType.INCOME)

    def test_document_data_uses_camel_case(self):
        """Stored fields are camelCase and amounts are decimal strings."""
        data = make_transaction(image_url="memory://x.png").to_document_data()
        assert data["amount"] == "-25.50"
        assert data["date"] == "2024-01-10"
        assert data["imageUrl"] == "memory://x.png"
        assert "createdAt" in data
        assert "id" not in data

    def test_from_document_roundtrip(self):
        """A stored document parses back to the same record."""
        original = make_transaction(notes="lunch")
        parsed = Transaction.from_document(
            Document(id="t1", data=original.to_document_data())
        )
        assert parsed.id == "t1"
        assert parsed.amount == Decimal("-25.50")
        assert parsed.notes == "lunch"

    def test_unknown_category_rejected(self):
        """Unknown enum values in stored data are rejected."""
        data = make_transaction().to_document_data()
        data["category"] = "Travel"
        with pytest.raises(pydantic.ValidationError):
            Transaction.from_document(Document(id="t1", data=data))


class TestGoalModel:
    """Tests for Goal progress."""

    def _goal(self, current: str, target: str = "1000") -> Goal:
        return Goal(
            name="Vacation",
            target_amount=Decimal(target),
            current_amount=Decimal(current),
            deadline=date(2024, 12, 31),
            uid="user-1",
        )

    def test_progress_percentage(self):
        assert self._goal("250").progress == 25.0

    def test_progress_capped_at_100(self):
        """currentAmount may exceed the target, progress may not."""
        goal = self._goal("1500")
        assert goal.current_amount == Decimal("1500")
        assert goal.progress == 100.0

    def test_progress_floored_at_0(self):
        assert self._goal("-200").progress == 0.0

    def test_target_must_be_positive(self):
        with pytest.raises(pydantic.ValidationError):
            self._goal("0", target="0")


class TestSubscriptionModel:
    """Tests for the Subscription record."""

    def test_frequency_values(self):
        assert {f.value for f in SubscriptionFrequency} == {"monthly", "yearly"}

    def test_amount_must_be_positive(self):
        with pytest.raises(pydantic.ValidationError):
            Subscription(
                name="Netflix",
                amount=Decimal("-1"),
                frequency=SubscriptionFrequency.MONTHLY,
                uid="user-1",
            )


class TestStoreModels:
    """Tests for queries and snapshots."""

    def test_query_filters_and_orders(self):
        """Equality filters apply, then the sort key."""
        documents = [
            Document(id="a", data={"uid": "u1", "date": "2024-01-02"}),
            Document(id="b", data={"uid": "u2", "date": "2024-01-03"}),
            Document(id="c", data={"uid": "u1", "date": "2024-01-05"}),
        ]
        query = CollectionQuery(collection="transactions").where("uid", "u1")
        result = query.order("date", descending=True).apply(documents)
        assert [d.id for d in result] == ["c", "a"]

    def test_initial_snapshot_marks_everything_added(self):
        query = CollectionQuery(collection="goals")
        docs = [Document(id="a", data={"x": 1})]
        snapshot = build_snapshot(query, None, docs)
        assert snapshot.is_initial
        assert [d.id for d in snapshot.added] == ["a"]

    def test_snapshot_diff(self):
        """Added, modified and removed are relative to the previous result."""
        query = CollectionQuery(collection="goals")
        before = [Document(id="a", data={"x": 1}), Document(id="b", data={"x": 1})]
        after = [Document(id="a", data={"x": 2}), Document(id="c", data={"x": 1})]
        snapshot = build_snapshot(query, before, after)
        assert [d.id for d in snapshot.added] == ["c"]
        assert [d.id for d in snapshot.modified] == ["a"]
        assert [d.id for d in snapshot.removed] == ["b"]
        assert snapshot.has_changes


class TestBudgetStatus:
    """Tests for budget flags."""

    def test_over_budget(self):
        status = BudgetStatus(category="Food", spent=Decimal("120"), budget=Decimal("100"))
        assert status.over_budget
        assert status.remaining == Decimal("-20")

    def test_no_budget_never_over(self):
        assert not BudgetStatus(category="Food", spent=Decimal("120")).over_budget
        assert not BudgetStatus(
            category="Food", spent=Decimal("120"), budget=Decimal("0")
        ).over_budget


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.GOAL_CREATED,
            description="Goal created",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_document_data(self):
        """Stored audit events use camelCase keys."""
        event = AuditEventBuilder.transaction_saved("t1", "user-1", "Food", "-25.50")
        data = event.to_document_data()
        assert data["eventType"] == "transaction_saved"
        assert data["entityId"] == "t1"
        assert data["details"]["amount"] == "-25.50"
        assert "event_type" not in data

    def test_dropped_contact_message_is_error(self):
        event = AuditEventBuilder.contact_message_dropped("m1", ["email"])
        assert event.severity == AuditSeverity.ERROR
        assert event.details["missing_fields"] == ["email"]
