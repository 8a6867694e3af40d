"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.documents import (
    AUDIT_EVENTS,
    CONTACT_MESSAGES,
    GOALS,
    SUBSCRIPTIONS,
    TRANSACTIONS,
    USERS,
    CollectionQuery,
    Document,
    FieldFilter,
    QuerySnapshot,
    build_snapshot,
)
from finance_tracker.models.records import (
    ContactMessage,
    Goal,
    StoredRecord,
    Subscription,
    SubscriptionFrequency,
    Transaction,
    TransactionCategory,
    TransactionType,
    UploadedImage,
    UserProfile,
)
from finance_tracker.models.summary import (
    BalancePoint,
    BudgetStatus,
    DashboardSummary,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Store models
    "AUDIT_EVENTS",
    "CONTACT_MESSAGES",
    "GOALS",
    "SUBSCRIPTIONS",
    "TRANSACTIONS",
    "USERS",
    "CollectionQuery",
    "Document",
    "FieldFilter",
    "QuerySnapshot",
    "build_snapshot",
    # Records
    "ContactMessage",
    "Goal",
    "StoredRecord",
    "Subscription",
    "SubscriptionFrequency",
    "Transaction",
    "TransactionCategory",
    "TransactionType",
    "UploadedImage",
    "UserProfile",
    # Dashboard
    "BalancePoint",
    "BudgetStatus",
    "DashboardSummary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
