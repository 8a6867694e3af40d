"""End-to-end flows through the wired components (local mode)."""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.orchestrator import create_app_components
from finance_tracker.services.auth import SessionContext
from finance_tracker.services.image import InMemoryObjectStorage
from finance_tracker.services.storage import InMemoryDocumentStore


@pytest.fixture
def components(mailer):
    return create_app_components(
        use_storage=False,
        mailer=mailer,
        today=lambda: date(2024, 1, 15),
    )


class TestCreateAppComponents:

    def test_local_mode_uses_in_memory_collaborators(self, components):
        assert components.local_mode
        assert isinstance(components.store, InMemoryDocumentStore)
        assert isinstance(components.object_storage, InMemoryObjectStorage)

    async def test_user_journey(self, components, mailer):
        """Sign up, record money, fund a goal, contact the owner."""
        session = SessionContext()
        await components.auth.sign_up(session, "alice@example.com", "secret1", "Alice")

        await components.ledger.submit_transaction(
            session, "2024-01-10", "Salary", "1000", "Income"
        )
        await components.ledger.submit_transaction(
            session, "2024-01-11", "Food", "25.50", "Expense"
        )
        summary = await components.dashboard.load(session)
        assert summary.balance == Decimal("974.50")

        goal = await components.goals.add_goal(session, "Vacation", "2000", "2024-06-30")
        goal = await components.goals.allocate_net_balance(session, goal.id)
        assert goal.progress == pytest.approx(48.725)

        message = await components.contact_form.submit(
            session, "Alice", "alice@example.com", "Thanks!"
        )
        stored = await components.store.get_document("contactMessages", message.id)
        assert await components.contact_notifier.handle_created(stored) is True
        assert len(mailer.sent) == 1
