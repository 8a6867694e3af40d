"""
Dashboard Models

Derived, never stored. Recomputed from the user's transaction set
every time it changes.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class BalancePoint(BaseModel):
    """Running balance after one transaction (for the balance line chart)."""

    date: date
    balance: Decimal


class DashboardSummary(BaseModel):
    """
    Totals over a transaction set.

    INVARIANT: balance == total_income - total_expenses
    """

    transaction_count: int = Field(default=0, ge=0)
    total_income: Decimal = Field(default=Decimal("0"), ge=0)
    total_expenses: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Absolute value of all expenses"
    )
    balance: Decimal = Decimal("0")
    expenses_by_category: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Absolute expense amount per category"
    )
    balance_history: list[BalancePoint] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.transaction_count == 0


class BudgetStatus(BaseModel):
    """Spend against a session budget for one category."""

    category: str
    spent: Decimal
    budget: Optional[Decimal] = None

    @property
    def over_budget(self) -> bool:
        """Only a set, non-zero budget can be exceeded."""
        return bool(self.budget) and self.spent > self.budget

    @property
    def remaining(self) -> Optional[Decimal]:
        if self.budget is None:
            return None
        return self.budget - self.spent
