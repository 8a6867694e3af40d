"""Form validation package."""

from finance_tracker.validation.validator import (
    EMAIL_PATTERN,
    ContactInput,
    FormValidator,
    GoalInput,
    SubscriptionInput,
    TransactionInput,
    ValidationError,
    ValidationIssue,
    is_valid_email,
)

__all__ = [
    "EMAIL_PATTERN",
    "ContactInput",
    "FormValidator",
    "GoalInput",
    "SubscriptionInput",
    "TransactionInput",
    "ValidationError",
    "ValidationIssue",
    "is_valid_email",
]
