"""Tests for the document stores and live queries."""

import asyncio
import re

import pytest

from finance_tracker.models import CollectionQuery
from finance_tracker.services.storage import (
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
)
from finance_tracker.services.storage.google_sheets import DOCUMENT_COLUMNS


GOALS_QUERY = CollectionQuery(collection="goals").where("uid", "u1")


class TestInMemoryDocumentStore:
    """CRUD behaviour of the in-memory store."""

    async def test_add_and_get(self, store):
        doc_id = await store.add_document("goals", {"uid": "u1", "name": "Car"})
        document = await store.get_document("goals", doc_id)
        assert document.data == {"uid": "u1", "name": "Car"}

    async def test_get_missing_returns_none(self, store):
        assert await store.get_document("goals", "missing") is None

    async def test_stored_data_is_copied(self, store):
        """Mutating the caller's dict does not change the stored document."""
        data = {"uid": "u1", "tags": ["a"]}
        doc_id = await store.add_document("goals", data)
        data["tags"].append("b")
        assert (await store.get_document("goals", doc_id)).data["tags"] == ["a"]

    async def test_set_overwrites_every_field(self, store):
        doc_id = await store.add_document("goals", {"uid": "u1", "name": "Car", "x": 1})
        await store.set_document("goals", doc_id, {"uid": "u1", "name": "Bike"})
        assert (await store.get_document("goals", doc_id)).data == {"uid": "u1", "name": "Bike"}

    async def test_set_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            await store.set_document("goals", "missing", {})

    async def test_update_merges_fields(self, store):
        doc_id = await store.add_document("goals", {"uid": "u1", "name": "Car"})
        document = await store.update_document("goals", doc_id, {"name": "Bike"})
        assert document.data == {"uid": "u1", "name": "Bike"}

    async def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            await store.update_document("goals", "missing", {"name": "x"})

    async def test_delete(self, store):
        doc_id = await store.add_document("goals", {"uid": "u1"})
        assert await store.delete_document("goals", doc_id) is True
        assert await store.delete_document("goals", doc_id) is False

    async def test_run_query_filters(self, store):
        await store.add_document("goals", {"uid": "u1", "name": "Car"})
        await store.add_document("goals", {"uid": "u2", "name": "Boat"})
        result = await store.run_query(GOALS_QUERY)
        assert [d.data["name"] for d in result] == ["Car"]


class TestLiveQueries:
    """Live query delivery and cancellation."""

    async def test_initial_snapshot_then_changes(self, store):
        await store.add_document("goals", {"uid": "u1", "name": "Car"})
        live = store.subscribe(GOALS_QUERY)

        initial = await live.__anext__()
        assert initial.is_initial
        assert initial.size == 1

        doc_id = await store.add_document("goals", {"uid": "u1", "name": "Bike"})
        update = await live.__anext__()
        assert not update.is_initial
        assert [d.id for d in update.added] == [doc_id]
        live.cancel()

    async def test_unrelated_writes_are_not_pushed(self, store):
        """A write outside the query's result set produces no snapshot."""
        live = store.subscribe(GOALS_QUERY)
        await live.__anext__()
        await store.add_document("goals", {"uid": "u2", "name": "Boat"})
        await store.add_document("goals", {"uid": "u1", "name": "Car"})
        update = await live.__anext__()
        assert [d.data["name"] for d in update.added] == ["Car"]
        live.cancel()

    async def test_cancel_ends_iteration(self, store):
        live = store.subscribe(GOALS_QUERY)
        live.cancel()
        live.cancel()
        snapshots = [snapshot async for snapshot in live]
        assert len(snapshots) == 1
        assert not live.active
        assert store.active_live_queries == 0

    async def test_context_manager_cancels(self, store):
        async with store.subscribe(GOALS_QUERY) as live:
            assert store.active_live_queries == 1
            await live.__anext__()
        assert store.active_live_queries == 0

    async def test_no_push_after_cancel(self, store):
        live = store.subscribe(GOALS_QUERY)
        live.cancel()
        await store.add_document("goals", {"uid": "u1"})
        assert live.latest.is_initial


class FakeWorksheet:
    """Rows of a worksheet, 1-indexed like the Sheets API."""

    def __init__(self):
        self.rows: list[list[str]] = [list(DOCUMENT_COLUMNS)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(v) for v in row])

    def update(self, range_name, values, value_input_option=None):
        row_number = int(re.match(r"A(\d+):", range_name).group(1))
        self.rows[row_number - 1] = [str(v) for v in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.sheets: dict[str, FakeWorksheet] = {}

    def get_collection_sheet(self, collection):
        return self.sheets.setdefault(collection, FakeWorksheet())


@pytest.fixture
def sheets_store():
    return GoogleSheetsDocumentStore(FakeSheetsClient(), poll_interval_seconds=0.01)


class TestGoogleSheetsDocumentStore:
    """Sheets store against an in-process worksheet."""

    async def test_row_layout(self, sheets_store):
        doc_id = await sheets_store.add_document(
            "goals", {"uid": "u1", "createdAt": "2024-01-15T00:00:00+00:00", "name": "Car"}
        )
        row = sheets_store._client.sheets["goals"].rows[1]
        assert row[:3] == [doc_id, "u1", "2024-01-15T00:00:00+00:00"]
        assert '"name": "Car"' in row[3]

    async def test_crud(self, sheets_store):
        doc_id = await sheets_store.add_document("goals", {"uid": "u1", "name": "Car"})
        await sheets_store.update_document("goals", doc_id, {"currentAmount": "10"})
        document = await sheets_store.get_document("goals", doc_id)
        assert document.data == {"uid": "u1", "name": "Car", "currentAmount": "10"}

        await sheets_store.set_document("goals", doc_id, {"uid": "u1", "name": "Bike"})
        assert (await sheets_store.get_document("goals", doc_id)).data["name"] == "Bike"

        assert await sheets_store.delete_document("goals", doc_id) is True
        assert await sheets_store.get_document("goals", doc_id) is None

    async def test_set_missing_raises(self, sheets_store):
        with pytest.raises(NotFoundError):
            await sheets_store.set_document("goals", "missing", {})

    async def test_malformed_rows_skipped(self, sheets_store):
        await sheets_store.add_document("goals", {"uid": "u1", "name": "Car"})
        sheets_store._client.sheets["goals"].rows.append(["bad", "u1", "", "{not json"])
        result = await sheets_store.run_query(GOALS_QUERY)
        assert [d.data["name"] for d in result] == ["Car"]

    async def test_live_query_polls(self, sheets_store):
        live = sheets_store.subscribe(GOALS_QUERY)
        initial = await asyncio.wait_for(live.__anext__(), timeout=1)
        assert initial.is_initial and initial.size == 0

        await sheets_store.add_document("goals", {"uid": "u1", "name": "Car"})
        update = await asyncio.wait_for(live.__anext__(), timeout=1)
        assert [d.data["name"] for d in update.added] == ["Car"]

        live.cancel()
        await asyncio.sleep(0)
        assert not sheets_store._pollers
