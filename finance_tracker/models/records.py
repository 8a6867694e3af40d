"""
Core Data Models for Finance Tracker

These models define the strict schemas for every record the app stores.
They are designed to:
1. Reject unknown enum values instead of trusting stored data
2. Keep the stored field names (camelCase) stable
3. Serialize losslessly to store documents (amounts as decimal strings)

DESIGN DECISION: Python attributes are snake_case, documents are camelCase.
The alias generator does the mapping so the store contract lives in one place.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel

from finance_tracker.models.documents import Document


# Record fields below shadow `date`; annotate with this alias instead
CalendarDate = date


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Today's calendar date in UTC (deadline checks use this, not local time)."""
    return utc_now().date()


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionCategory(str, Enum):
    """Supported transaction categories."""
    FOOD = "Food"
    RENT = "Rent"
    SALARY = "Salary"
    ENTERTAINMENT = "Entertainment"
    OTHER = "Other"


class TransactionType(str, Enum):
    """
    Direction of money.

    The stored amount carries the same information as its sign:
    income is positive, expense is negative.
    """
    INCOME = "Income"
    EXPENSE = "Expense"

    @property
    def sign(self) -> int:
        return 1 if self is TransactionType.INCOME else -1


class SubscriptionFrequency(str, Enum):
    """How often a subscription is billed."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


# =============================================================================
# BASE RECORD
# =============================================================================

class StoredRecord(BaseModel):
    """
    Base class for records that live in the document store.

    `id` is assigned by the store and is never written into the document body.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: Optional[str] = Field(
        default=None,
        description="Store-assigned document id"
    )

    def to_document_data(self) -> dict:
        """Serialize to the stored (camelCase, JSON-compatible) field set."""
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})

    @classmethod
    def from_document(cls, document: Document):
        """Parse a stored document. Raises pydantic.ValidationError if malformed."""
        return cls.model_validate({**document.data, "id": document.id})


# =============================================================================
# RECORDS
# =============================================================================

class Transaction(StoredRecord):
    """
    A single income or expense entry.

    Created once by the ledger and never updated afterwards.
    """

    date: CalendarDate = Field(
        ...,
        description="Calendar date of the transaction"
    )
    category: TransactionCategory
    amount: Decimal = Field(
        ...,
        description="Signed amount: negative for expenses, positive for income"
    )
    type: TransactionType
    notes: str = Field(
        default="",
        max_length=1000,
        description="Free-text notes"
    )
    image_url: str = Field(
        default="",
        description="URL of an attached receipt image"
    )
    uid: str = Field(
        ...,
        min_length=1,
        description="Owner user id"
    )
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_sign(self) -> 'Transaction':
        """Amount must be non-zero and its sign must agree with the type."""
        if self.amount == 0:
            raise ValueError("Amount must not be zero")
        if (self.amount > 0) != (self.type is TransactionType.INCOME):
            raise ValueError(
                f"Amount sign does not match transaction type {self.type.value}"
            )
        return self

    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)

    @property
    def is_expense(self) -> bool:
        return self.amount < 0


class Goal(StoredRecord):
    """
    A savings goal.

    currentAmount is not clamped: it may exceed the target, and
    allocating a negative net balance can push it below zero.
    """

    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(default=Decimal("0"))
    deadline: CalendarDate
    uid: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def progress(self) -> float:
        """Percentage of the target reached, capped to [0, 100]."""
        if self.target_amount <= 0:
            return 0.0
        percentage = self.current_amount / self.target_amount * 100
        return float(max(Decimal("0"), min(Decimal("100"), percentage)))


class Subscription(StoredRecord):
    """A recurring subscription. Edits overwrite every mutable field."""

    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    frequency: SubscriptionFrequency
    uid: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utc_now)


class ContactMessage(StoredRecord):
    """
    A message from the contact form.

    Written by any visitor, read only by the notifier.
    """

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    message: str = Field(..., min_length=1)
    uid: str = Field(
        default="anonymous",
        description="Sender's user id, or 'anonymous'"
    )
    created_at: datetime = Field(default_factory=utc_now)


class UserProfile(BaseModel):
    """The signed-in user, as exposed to the rest of the app."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    uid: str = Field(..., min_length=1)
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class UploadedImage(BaseModel):
    """An image file as received from a form, before it is stored."""

    filename: str = Field(..., min_length=1)
    content_type: str
    data: bytes = Field(..., repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.data)
