"""Dashboard aggregation package."""

from finance_tracker.dashboard.aggregator import (
    BudgetBook,
    DashboardAggregator,
    balance,
    balance_history,
    expenses_by_category,
    summarize,
    total_expenses,
    total_income,
)

__all__ = [
    "BudgetBook",
    "DashboardAggregator",
    "balance",
    "balance_history",
    "expenses_by_category",
    "summarize",
    "total_expenses",
    "total_income",
]
