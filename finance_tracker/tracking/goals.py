"""
Goal Tracker

Savings goals with a target, a deadline and a current amount.

The current amount moves two ways:
- allocate_net_balance adds the user's whole net balance to it
- update_progress sets it to an explicit value

allocate_net_balance is NOT idempotent. Each call adds the same net
balance again, so pressing "allocate" twice with no new transactions
doubles the contribution. The current amount is never clamped; only
the displayed progress is.

Every change is checked against the goal's owner; another user's goal
behaves as if it did not exist.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional, Union

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.models.audit import AuditEventBuilder, AuditEventType
from finance_tracker.models.documents import GOALS, TRANSACTIONS, CollectionQuery
from finance_tracker.models.records import Goal, Transaction, utc_today
from finance_tracker.services.auth import SessionContext
from finance_tracker.services.storage import (
    DocumentStoreInterface,
    LiveQuery,
    NotFoundError,
)
from finance_tracker.tracking.common import get_owned, owned_by, parse_records
from finance_tracker.validation import FormValidator, ValidationError, ValidationIssue


logger = structlog.get_logger(__name__)


def net_balance(transactions: Iterable[Transaction]) -> Decimal:
    """Sum of signed amounts (income minus expenses)."""
    return sum((t.amount for t in transactions), Decimal("0"))


def progress(goal: Goal) -> float:
    """Percentage of the target reached, in [0, 100]."""
    return goal.progress


class GoalTracker:
    """Creates, updates and lists a user's savings goals."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FormValidator] = None,
        today: Callable[[], date] = utc_today,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._validator = validator or FormValidator(today=today)

    @staticmethod
    def query_for(uid: str) -> CollectionQuery:
        return owned_by(GOALS, uid)

    async def _get_goal(self, goal_id: str, uid: str) -> Goal:
        document = await get_owned(self._store, GOALS, goal_id, uid)
        if document is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        return Goal.from_document(document)

    async def _audit(
        self,
        event_type: AuditEventType,
        goal_id: str,
        uid: Optional[str],
        details: Optional[dict] = None,
        correlation_id=None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.goal_changed(event_type, goal_id, uid, details),
                correlation_id=correlation_id,
            )

    async def add_goal(
        self,
        session: SessionContext,
        name: str,
        target_text: str,
        deadline_text: str,
    ) -> Goal:
        """
        Create a goal with currentAmount 0.

        Raises:
            AuthError: Not signed in
            ValidationError: Missing field, target <= 0, or deadline in the past
        """
        user = session.require_user("You must be logged in to add a goal")

        try:
            entry = self._validator.goal(name, target_text, deadline_text)
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed("goal", e.to_dicts(), user.uid)
            raise

        goal = Goal(
            name=entry.name,
            target_amount=entry.target_amount,
            deadline=entry.deadline,
            uid=user.uid,
        )
        goal_id = await self._store.add_document(GOALS, goal.to_document_data())
        goal = goal.model_copy(update={"id": goal_id})

        logger.info("goal_created", goal_id=goal_id, uid=user.uid)
        await self._audit(
            AuditEventType.GOAL_CREATED,
            goal_id,
            user.uid,
            {"target_amount": str(goal.target_amount)},
        )
        return goal

    async def allocate_net_balance(self, session: SessionContext, goal_id: str) -> Goal:
        """
        Add the user's current net balance to a goal.

        Reads the goal and the user's transactions fresh from the store.
        A negative net balance lowers the goal's current amount.

        Raises:
            AuthError: Not signed in
            NotFoundError: The goal does not exist or belongs to another user
        """
        user = session.require_user("You must be logged in to update a goal")
        correlation_id = create_correlation_id()

        goal = await self._get_goal(goal_id, user.uid)
        documents = await self._store.run_query(
            owned_by(TRANSACTIONS, user.uid, order_by="date")
        )
        delta = net_balance(parse_records(Transaction, documents))
        new_amount = goal.current_amount + delta

        document = await self._store.update_document(
            GOALS, goal_id, {"currentAmount": str(new_amount)}
        )
        updated = Goal.from_document(document)

        logger.info(
            "net_balance_allocated",
            goal_id=goal_id,
            uid=user.uid,
            delta=str(delta),
            current_amount=str(updated.current_amount),
        )
        await self._audit(
            AuditEventType.GOAL_PROGRESS_UPDATED,
            goal_id,
            user.uid,
            {"delta": str(delta), "current_amount": str(updated.current_amount)},
            correlation_id,
        )
        return updated

    async def update_progress(
        self,
        session: SessionContext,
        goal_id: str,
        amount: Union[Decimal, str, int],
    ) -> Goal:
        """
        Set a goal's current amount.

        Raises:
            AuthError: Not signed in
            ValidationError: amount is not a finite number
            NotFoundError: The goal does not exist or belongs to another user
        """
        user = session.require_user("You must be logged in to update a goal")
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite():
            raise ValidationError([ValidationIssue(
                field="currentAmount",
                issue_type="invalid_value",
                message="Amount must be a number",
            )])

        await self._get_goal(goal_id, user.uid)
        document = await self._store.update_document(
            GOALS, goal_id, {"currentAmount": str(value)}
        )
        updated = Goal.from_document(document)

        await self._audit(
            AuditEventType.GOAL_PROGRESS_UPDATED,
            goal_id,
            updated.uid,
            {"current_amount": str(value)},
        )
        return updated

    async def delete_goal(self, session: SessionContext, goal_id: str) -> bool:
        """
        Delete one of the user's goals. No confirmation, no undo.

        Returns False if the goal does not exist or belongs to another user.
        """
        user = session.require_user("You must be logged in to delete a goal")
        if await get_owned(self._store, GOALS, goal_id, user.uid) is None:
            return False

        deleted = await self._store.delete_document(GOALS, goal_id)
        if deleted:
            logger.info("goal_deleted", goal_id=goal_id, uid=user.uid)
            await self._audit(AuditEventType.GOAL_DELETED, goal_id, user.uid)
        return deleted

    async def list_goals(self, session: SessionContext) -> list[Goal]:
        user = session.require_user("You must be logged in to view goals")
        documents = await self._store.run_query(self.query_for(user.uid))
        return parse_records(Goal, documents)

    def watch_goals(self, session: SessionContext) -> LiveQuery:
        user = session.require_user("You must be logged in to view goals")
        return self._store.subscribe(self.query_for(user.uid))
