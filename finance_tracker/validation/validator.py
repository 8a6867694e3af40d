"""
Form Validation

Every form value arrives as raw text (or an enum member) from the UI.
The validator turns it into typed input or raises ValidationError with
every issue it found.

CHECKS:
- Required fields are present (after trimming)
- Amounts parse to positive, finite decimals
- Dates are strictly YYYY-MM-DD
- Enum fields are members of their closed set (unknown values rejected)
- Goal deadlines are not in the past
- Contact emails match a basic syntactic pattern

IMPORTANT: Validation NEVER silently fixes values.
It reports them so the form can be corrected with its state preserved.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field

from finance_tracker.models.records import (
    SubscriptionFrequency,
    TransactionCategory,
    TransactionType,
    utc_today,
)


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MAX_NAME_LENGTH = 200
MAX_NOTES_LENGTH = 1000

E = TypeVar("E", bound=Enum)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
    )


class ValidationError(Exception):
    """
    User input failed a precondition.

    str(error) is the first issue's message, for inline display.
    """

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__(issues[0].message if issues else "Invalid input")

    @property
    def message(self) -> str:
        return str(self)

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]

    def to_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]


# =============================================================================
# VALIDATED INPUTS
# =============================================================================

class TransactionInput(BaseModel):
    date: date
    category: TransactionCategory
    amount: Decimal = Field(..., gt=0, description="Unsigned magnitude as entered")
    type: TransactionType
    notes: str = ""

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.type.sign


class GoalInput(BaseModel):
    name: str
    target_amount: Decimal = Field(..., gt=0)
    deadline: date


class SubscriptionInput(BaseModel):
    name: str
    amount: Decimal = Field(..., gt=0)
    frequency: SubscriptionFrequency


class ContactInput(BaseModel):
    name: str
    email: str
    message: str


# =============================================================================
# VALIDATOR
# =============================================================================

FormValue = Union[str, Enum, None]


def _text(value: FormValue) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value).strip()


class FormValidator:
    """
    Validates the app's forms.

    `today` defaults to the UTC date and is injectable for tests.
    """

    def __init__(self, today: Callable[[], date] = utc_today):
        self._today = today

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _parse_amount(
        text: str,
        field: str,
        message: str,
        issues: list[ValidationIssue],
    ) -> Optional[Decimal]:
        try:
            amount = Decimal(text)
        except InvalidOperation:
            amount = None

        if amount is None or not amount.is_finite() or amount <= 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=message,
            ))
            return None
        return amount

    @staticmethod
    def _parse_date(
        text: str,
        field: str,
        issues: list[ValidationIssue],
    ) -> Optional[date]:
        parsed = None
        if ISO_DATE_PATTERN.match(text):
            try:
                parsed = date.fromisoformat(text)
            except ValueError:
                parsed = None

        if parsed is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message=f"{field.capitalize()} must be a valid date in YYYY-MM-DD format",
            ))
        return parsed

    @staticmethod
    def _parse_enum(
        value: FormValue,
        enum_type: Type[E],
        field: str,
        issues: list[ValidationIssue],
    ) -> Optional[E]:
        try:
            return enum_type(_text(value))
        except ValueError:
            allowed = ", ".join(member.value for member in enum_type)
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{field.capitalize()} must be one of: {allowed}",
            ))
            return None

    @staticmethod
    def _check_length(
        text: str,
        limit: int,
        field: str,
        issues: list[ValidationIssue],
    ) -> None:
        if len(text) > limit:
            issues.append(ValidationIssue(
                field=field,
                issue_type="too_long",
                message=f"{field.capitalize()} must be at most {limit} characters",
            ))

    @staticmethod
    def _require(
        values: dict[str, str],
        message: str,
    ) -> None:
        missing = [name for name, text in values.items() if not text]
        if missing:
            raise ValidationError([
                ValidationIssue(field=name, issue_type="missing", message=message)
                for name in missing
            ])

    # -- forms ---------------------------------------------------------------

    def transaction(
        self,
        date_text: FormValue,
        category: FormValue,
        amount_text: FormValue,
        type_: FormValue,
        notes: FormValue = "",
    ) -> TransactionInput:
        """Validate the add-transaction form."""
        date_value = _text(date_text)
        amount_value = _text(amount_text)
        self._require(
            {
                "date": date_value,
                "amount": amount_value,
                "category": _text(category),
            },
            "Date, amount, and category are required",
        )

        issues: list[ValidationIssue] = []
        parsed_date = self._parse_date(date_value, "date", issues)
        amount = self._parse_amount(
            amount_value, "amount", "Amount must be a positive number", issues
        )
        parsed_category = self._parse_enum(category, TransactionCategory, "category", issues)
        parsed_type = self._parse_enum(type_, TransactionType, "type", issues)
        notes_value = _text(notes)
        self._check_length(notes_value, MAX_NOTES_LENGTH, "notes", issues)

        if issues:
            raise ValidationError(issues)

        return TransactionInput(
            date=parsed_date,
            category=parsed_category,
            amount=amount,
            type=parsed_type,
            notes=notes_value,
        )

    def goal(
        self,
        name: FormValue,
        target_text: FormValue,
        deadline_text: FormValue,
    ) -> GoalInput:
        """Validate the add-goal form."""
        name_value = _text(name)
        target_value = _text(target_text)
        deadline_value = _text(deadline_text)
        self._require(
            {
                "name": name_value,
                "target": target_value,
                "deadline": deadline_value,
            },
            "All fields are required",
        )

        issues: list[ValidationIssue] = []
        self._check_length(name_value, MAX_NAME_LENGTH, "name", issues)
        target = self._parse_amount(
            target_value, "target", "Target amount must be positive", issues
        )
        deadline = self._parse_date(deadline_value, "deadline", issues)
        if deadline is not None and deadline < self._today():
            issues.append(ValidationIssue(
                field="deadline",
                issue_type="past_date",
                message="Deadline cannot be in the past",
            ))

        if issues:
            raise ValidationError(issues)

        return GoalInput(name=name_value, target_amount=target, deadline=deadline)

    def subscription(
        self,
        name: FormValue,
        amount_text: FormValue,
        frequency: FormValue,
    ) -> SubscriptionInput:
        """Validate the subscription form (create and edit)."""
        name_value = _text(name)
        amount_value = _text(amount_text)
        self._require(
            {"name": name_value, "amount": amount_value},
            "Name and amount are required",
        )

        issues: list[ValidationIssue] = []
        self._check_length(name_value, MAX_NAME_LENGTH, "name", issues)
        amount = self._parse_amount(
            amount_value, "amount", "Amount must be a positive number", issues
        )
        parsed_frequency = self._parse_enum(
            frequency, SubscriptionFrequency, "frequency", issues
        )

        if issues:
            raise ValidationError(issues)

        return SubscriptionInput(
            name=name_value,
            amount=amount,
            frequency=parsed_frequency,
        )

    def contact(
        self,
        name: FormValue,
        email: FormValue,
        message: FormValue,
    ) -> ContactInput:
        """Validate the contact form."""
        values = {
            "name": _text(name),
            "email": _text(email),
            "message": _text(message),
        }
        self._require(values, "All fields are required.")

        if not EMAIL_PATTERN.match(values["email"]):
            raise ValidationError([ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message="Please enter a valid email address.",
            )])

        return ContactInput(**values)


def is_valid_email(email: str) -> bool:
    """Basic syntactic check used by the contact and sign-up forms."""
    return bool(EMAIL_PATTERN.match(email.strip()))
