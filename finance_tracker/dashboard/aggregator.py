"""
Dashboard Aggregation

DESIGN DECISION: The dashboard is a pure derivation.
Nothing here is stored. Every figure is recomputed from the signed-in
user's current transaction set whenever that set changes.

INVARIANT: balance == total_income - total_expenses (0 for no transactions)

Budgets are per-session only. They live in the BudgetBook held by the
UI session and are discarded on reload.
"""

from decimal import Decimal, InvalidOperation
from typing import AsyncIterator, Iterable, Optional, Union

import structlog

from finance_tracker.models.documents import TRANSACTIONS, CollectionQuery
from finance_tracker.models.records import Transaction
from finance_tracker.models.summary import BalancePoint, BudgetStatus, DashboardSummary
from finance_tracker.services.auth import SessionContext
from finance_tracker.services.storage import DocumentStoreInterface
from finance_tracker.tracking.common import owned_by, parse_records
from finance_tracker.validation import ValidationError, ValidationIssue


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def total_income(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions if t.amount > 0), ZERO)


def total_expenses(transactions: Iterable[Transaction]) -> Decimal:
    """Absolute value of the sum of all expenses."""
    return abs(sum((t.amount for t in transactions if t.amount < 0), ZERO))


def balance(transactions: Iterable[Transaction]) -> Decimal:
    transactions = list(transactions)
    return total_income(transactions) - total_expenses(transactions)


def expenses_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.amount < 0:
            key = t.category.value
            totals[key] = totals.get(key, ZERO) + abs(t.amount)
    return totals


def balance_history(transactions: Iterable[Transaction]) -> list[BalancePoint]:
    """Running balance after each transaction, oldest date first."""
    running = ZERO
    points = []
    for t in sorted(transactions, key=lambda t: t.date):
        running += t.amount
        points.append(BalancePoint(date=t.date, balance=running))
    return points


def summarize(transactions: Iterable[Transaction]) -> DashboardSummary:
    transactions = list(transactions)
    income = total_income(transactions)
    expenses = total_expenses(transactions)
    return DashboardSummary(
        transaction_count=len(transactions),
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        expenses_by_category=expenses_by_category(transactions),
        balance_history=balance_history(transactions),
    )


class BudgetBook:
    """
    Session-only budgets keyed by category.

    Never persisted. A zero or cleared budget means "no budget".
    """

    def __init__(self):
        self._budgets: dict[str, Decimal] = {}

    def set_budget(self, category: str, amount: Union[Decimal, str, int, float, None]) -> None:
        """Set a category budget. Empty input clears it."""
        text = "" if amount is None else str(amount).strip()
        if not text:
            self._budgets.pop(category, None)
            return

        try:
            value = Decimal(text)
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite() or value < 0:
            raise ValidationError([ValidationIssue(
                field="budget",
                issue_type="invalid_value",
                message="Budget must be a non-negative number",
            )])

        if value == 0:
            self._budgets.pop(category, None)
        else:
            self._budgets[category] = value

    def budget_for(self, category: str) -> Optional[Decimal]:
        return self._budgets.get(category)

    @property
    def budgets(self) -> dict[str, Decimal]:
        return dict(self._budgets)

    def clear(self) -> None:
        self._budgets.clear()

    def statuses(self, summary: DashboardSummary) -> list[BudgetStatus]:
        """Spend against budget for every category that has expenses."""
        return [
            BudgetStatus(
                category=category,
                spent=spent,
                budget=self._budgets.get(category),
            )
            for category, spent in sorted(summary.expenses_by_category.items())
        ]

    def over_budget(self, summary: DashboardSummary) -> list[BudgetStatus]:
        return [s for s in self.statuses(summary) if s.over_budget]


class DashboardAggregator:
    """Loads or watches the signed-in user's dashboard summary."""

    def __init__(self, store: DocumentStoreInterface):
        self._store = store

    @staticmethod
    def query_for(uid: str) -> CollectionQuery:
        return owned_by(TRANSACTIONS, uid, order_by="date")

    async def load(self, session: SessionContext) -> DashboardSummary:
        user = session.require_user("You must be logged in to view the dashboard")
        documents = await self._store.run_query(self.query_for(user.uid))
        return summarize(parse_records(Transaction, documents))

    async def watch(self, session: SessionContext) -> AsyncIterator[DashboardSummary]:
        """
        Yield a fresh summary for every change to the user's transactions.

        The underlying live query is cancelled when the consumer stops
        iterating (break, or aclose()).
        """
        user = session.require_user("You must be logged in to view the dashboard")
        async with self._store.subscribe(self.query_for(user.uid)) as live:
            async for snapshot in live:
                summary = summarize(parse_records(Transaction, snapshot.documents))
                logger.debug(
                    "dashboard_recomputed",
                    uid=user.uid,
                    transaction_count=summary.transaction_count,
                )
                yield summary
