"""Tests for the subscription manager."""

from decimal import Decimal

import pytest

from finance_tracker.models import SUBSCRIPTIONS, CollectionQuery, SubscriptionFrequency
from finance_tracker.services.auth import AuthError, SessionContext
from finance_tracker.services.storage import NotFoundError
from finance_tracker.validation import ValidationError


ALL_SUBSCRIPTIONS = CollectionQuery(collection=SUBSCRIPTIONS)


class TestUpsertSubscription:
    """Create and edit through one operation."""

    async def test_create(self, subscriptions, store, session):
        subscription = await subscriptions.upsert_subscription(
            session, "Netflix", "15.99", "monthly"
        )
        document = await store.get_document(SUBSCRIPTIONS, subscription.id)
        assert document.data["amount"] == "15.99"
        assert document.data["frequency"] == "monthly"
        assert document.data["uid"] == "user-1"

    async def test_edit_overwrites_single_document(self, subscriptions, store, session):
        """Netflix 15.99 edited to 17.99 leaves one document with 17.99."""
        created = await subscriptions.upsert_subscription(
            session, "Netflix", "15.99", SubscriptionFrequency.MONTHLY
        )
        edited = await subscriptions.upsert_subscription(
            session, "Netflix", "17.99", "monthly", editing_id=created.id
        )
        assert edited.id == created.id

        documents = await store.run_query(ALL_SUBSCRIPTIONS)
        assert len(documents) == 1
        assert documents[0].data["amount"] == "17.99"

    async def test_edit_missing_raises(self, subscriptions, session):
        with pytest.raises(NotFoundError):
            await subscriptions.upsert_subscription(
                session, "Netflix", "17.99", "monthly", editing_id="missing"
            )

    async def test_validation(self, subscriptions, store, session):
        with pytest.raises(ValidationError, match="Name and amount are required"):
            await subscriptions.upsert_subscription(session, "", "15.99", "monthly")
        with pytest.raises(ValidationError, match="Amount must be a positive number"):
            await subscriptions.upsert_subscription(session, "Netflix", "0", "monthly")
        assert await store.run_query(ALL_SUBSCRIPTIONS) == []

    async def test_requires_sign_in(self, subscriptions):
        with pytest.raises(AuthError):
            await subscriptions.upsert_subscription(
                SessionContext(), "Netflix", "15.99", "monthly"
            )


class TestListAndDelete:

    async def test_list_own_only(self, subscriptions, session, other_user):
        await subscriptions.upsert_subscription(session, "Netflix", "15.99", "monthly")
        await subscriptions.upsert_subscription(
            SessionContext(other_user), "Gym", "300", "yearly"
        )
        listed = await subscriptions.list_subscriptions(session)
        assert [(s.name, s.amount) for s in listed] == [("Netflix", Decimal("15.99"))]

    async def test_edit_foreign_subscription(self, subscriptions, store, session, other_user):
        owner = SessionContext(other_user)
        theirs = await subscriptions.upsert_subscription(owner, "Gym", "300", "yearly")

        with pytest.raises(NotFoundError):
            await subscriptions.upsert_subscription(
                session, "Hijacked", "1", "monthly", editing_id=theirs.id
            )
        document = await store.get_document(SUBSCRIPTIONS, theirs.id)
        assert document.data["name"] == "Gym"
        assert document.data["uid"] == "user-2"

    async def test_delete_foreign_subscription(self, subscriptions, session, other_user):
        owner = SessionContext(other_user)
        theirs = await subscriptions.upsert_subscription(owner, "Gym", "300", "yearly")
        assert await subscriptions.delete_subscription(session, theirs.id) is False
        assert [s.name for s in await subscriptions.list_subscriptions(owner)] == ["Gym"]


    async def test_delete(self, subscriptions, session):
        subscription = await subscriptions.upsert_subscription(
            session, "Netflix", "15.99", "monthly"
        )
        assert await subscriptions.delete_subscription(session, subscription.id) is True
        assert await subscriptions.delete_subscription(session, subscription.id) is False

    async def test_watch(self, subscriptions, store, session):
        live = subscriptions.watch_subscriptions(session)
        assert (await live.__anext__()).size == 0
        await subscriptions.upsert_subscription(session, "Netflix", "15.99", "monthly")
        assert (await live.__anext__()).size == 1
        live.cancel()
        assert store.active_live_queries == 0
