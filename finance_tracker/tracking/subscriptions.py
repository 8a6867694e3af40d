"""
Subscription Manager

Recurring costs (streaming, software, gym...). One form both creates
and edits: with an editing id the stored document is overwritten in
full, including uid and createdAt. A user can only edit or delete
their own subscriptions.
"""

from typing import Optional

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.documents import SUBSCRIPTIONS, CollectionQuery
from finance_tracker.models.records import Subscription
from finance_tracker.services.auth import SessionContext
from finance_tracker.services.storage import DocumentStoreInterface, LiveQuery, NotFoundError
from finance_tracker.tracking.common import get_owned, owned_by, parse_records
from finance_tracker.validation import FormValidator, ValidationError


logger = structlog.get_logger(__name__)


class SubscriptionManager:
    """Creates, edits, deletes and lists a user's subscriptions."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FormValidator] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._validator = validator or FormValidator()

    @staticmethod
    def query_for(uid: str) -> CollectionQuery:
        return owned_by(SUBSCRIPTIONS, uid)

    async def upsert_subscription(
        self,
        session: SessionContext,
        name: str,
        amount_text: str,
        frequency,
        editing_id: Optional[str] = None,
    ) -> Subscription:
        """
        Create a subscription, or overwrite the one being edited.

        Raises:
            AuthError: Not signed in
            ValidationError: Missing name/amount, amount <= 0, bad frequency
            NotFoundError: editing_id does not exist or belongs to another user
        """
        user = session.require_user("You must be logged in to manage subscriptions")

        try:
            entry = self._validator.subscription(name, amount_text, frequency)
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    "subscription", e.to_dicts(), user.uid
                )
            raise

        subscription = Subscription(
            name=entry.name,
            amount=entry.amount,
            frequency=entry.frequency,
            uid=user.uid,
        )
        data = subscription.to_document_data()

        if editing_id:
            if await get_owned(self._store, SUBSCRIPTIONS, editing_id, user.uid) is None:
                raise NotFoundError(f"Subscription not found: {editing_id}")
            await self._store.set_document(SUBSCRIPTIONS, editing_id, data)
            subscription_id = editing_id
        else:
            subscription_id = await self._store.add_document(SUBSCRIPTIONS, data)

        logger.info(
            "subscription_saved",
            subscription_id=subscription_id,
            uid=user.uid,
            edited=bool(editing_id),
        )
        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.subscription_changed(
                subscription_id,
                user.uid,
                details={"amount": str(entry.amount), "edited": bool(editing_id)},
            ))
        return subscription.model_copy(update={"id": subscription_id})

    async def delete_subscription(self, session: SessionContext, subscription_id: str) -> bool:
        """
        Delete one of the user's subscriptions. No confirmation, no undo.

        Returns False if it does not exist or belongs to another user.
        """
        user = session.require_user("You must be logged in to manage subscriptions")
        if await get_owned(self._store, SUBSCRIPTIONS, subscription_id, user.uid) is None:
            return False

        deleted = await self._store.delete_document(SUBSCRIPTIONS, subscription_id)
        if deleted:
            logger.info("subscription_deleted", subscription_id=subscription_id, uid=user.uid)
            if self._audit_logger:
                await self._audit_logger.log(
                    AuditEventBuilder.subscription_changed(subscription_id, user.uid, deleted=True)
                )
        return deleted

    async def list_subscriptions(self, session: SessionContext) -> list[Subscription]:
        user = session.require_user("You must be logged in to view subscriptions")
        documents = await self._store.run_query(self.query_for(user.uid))
        return parse_records(Subscription, documents)

    def watch_subscriptions(self, session: SessionContext) -> LiveQuery:
        user = session.require_user("You must be logged in to view subscriptions")
        return self._store.subscribe(self.query_for(user.uid))
