"""Per-user record managers: transactions, goals and subscriptions."""

from finance_tracker.tracking.common import get_owned, owned_by, parse_records
from finance_tracker.tracking.goals import GoalTracker, net_balance, progress
from finance_tracker.tracking.ledger import TransactionLedger
from finance_tracker.tracking.subscriptions import SubscriptionManager

__all__ = [
    "GoalTracker",
    "SubscriptionManager",
    "TransactionLedger",
    "get_owned",
    "net_balance",
    "owned_by",
    "parse_records",
    "progress",
]
