"""
Live Queries

A live query is a standing query whose result set is pushed to the
consumer whenever it changes, until the consumer cancels it.

Usage:
    async with store.subscribe(query) as live:
        async for snapshot in live:
            render(snapshot.documents)

Cancelling is the only way to stop a live query. Every consumer owns
its live queries and must cancel them on teardown.
"""

import asyncio
from typing import Callable, Optional

import structlog

from finance_tracker.models.documents import (
    CollectionQuery,
    Document,
    QuerySnapshot,
    build_snapshot,
)


logger = structlog.get_logger(__name__)


class LiveQuery:
    """Async iterator of QuerySnapshots for one query."""

    def __init__(
        self,
        query: CollectionQuery,
        on_cancel: Optional[Callable[["LiveQuery"], None]] = None,
    ):
        self.query = query
        self._on_cancel = on_cancel
        self._queue: asyncio.Queue[Optional[QuerySnapshot]] = asyncio.Queue()
        self._previous: Optional[list[Document]] = None
        self._latest: Optional[QuerySnapshot] = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def latest(self) -> Optional[QuerySnapshot]:
        """Most recent snapshot delivered, for synchronous consumers."""
        return self._latest

    def push(self, documents: list[Document]) -> Optional[QuerySnapshot]:
        """
        Deliver the current result set.

        Called by the store. Returns the snapshot that was queued, or None
        if nothing changed since the last one or the query is cancelled.
        """
        if self._cancelled:
            return None

        snapshot = build_snapshot(self.query, self._previous, documents)
        if not snapshot.is_initial and not snapshot.has_changes:
            return None

        self._previous = list(documents)
        self._latest = snapshot
        self._queue.put_nowait(snapshot)
        return snapshot

    def cancel(self) -> None:
        """Stop the live query. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        self._queue.put_nowait(None)
        if self._on_cancel is not None:
            self._on_cancel(self)
        logger.debug("live_query_cancelled", collection=self.query.collection)

    def __aiter__(self) -> "LiveQuery":
        return self

    async def __anext__(self) -> QuerySnapshot:
        snapshot = await self._queue.get()
        if snapshot is None:
            raise StopAsyncIteration
        return snapshot

    async def __aenter__(self) -> "LiveQuery":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cancel()
