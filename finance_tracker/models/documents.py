"""
Document Store Models

The store holds schema-less documents (an opaque id plus a JSON-compatible
data dict) grouped into named collections. These models describe:
1. A stored document
2. An equality-filtered, optionally ordered query over one collection
3. A snapshot of a query's result set, with the changes since the last one

DESIGN DECISION: Queries only support field equality and a single sort key.
That is everything the application asks of its store, and it keeps the
spreadsheet backend honest (it filters in Python).
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# Collection names are part of the stored data contract
TRANSACTIONS = "transactions"
GOALS = "goals"
SUBSCRIPTIONS = "subscriptions"
CONTACT_MESSAGES = "contactMessages"
USERS = "users"
AUDIT_EVENTS = "auditEvents"


class Document(BaseModel):
    """A single stored document."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque document id"
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Document fields"
    )

    def get(self, field: str, default: Any = None) -> Any:
        return self.data.get(field, default)


class FieldFilter(BaseModel):
    """Equality filter on one document field."""

    model_config = ConfigDict(frozen=True)

    field: str
    value: Any


class CollectionQuery(BaseModel):
    """
    A query against one collection.

    Usage:
        query = CollectionQuery(collection="transactions").where("uid", uid)
        query = query.order("date", descending=True)
    """

    model_config = ConfigDict(frozen=True)

    collection: str = Field(
        ...,
        min_length=1,
        description="Collection name"
    )
    filters: tuple[FieldFilter, ...] = Field(
        default=(),
        description="All filters must match"
    )
    order_by: Optional[str] = Field(
        default=None,
        description="Field to sort by"
    )
    descending: bool = False

    def where(self, field: str, value: Any) -> "CollectionQuery":
        """Return a copy with an extra equality filter."""
        return self.model_copy(
            update={"filters": self.filters + (FieldFilter(field=field, value=value),)}
        )

    def order(self, field: str, descending: bool = False) -> "CollectionQuery":
        """Return a copy sorted by the given field."""
        return self.model_copy(update={"order_by": field, "descending": descending})

    def matches(self, document: Document) -> bool:
        return all(document.get(f.field) == f.value for f in self.filters)

    def apply(self, documents: list[Document]) -> list[Document]:
        """Filter and sort documents the way the store would."""
        result = [doc for doc in documents if self.matches(doc)]
        if self.order_by:
            field = self.order_by
            # Missing values sort first (ascending), like an empty string
            result.sort(
                key=lambda doc: (doc.get(field) is not None, str(doc.get(field) or "")),
                reverse=self.descending,
            )
        return result


class QuerySnapshot(BaseModel):
    """
    The result set of a live query at one point in time.

    `added`, `modified` and `removed` are relative to the previous
    snapshot delivered for the same query. In the initial snapshot
    every document counts as added.
    """

    model_config = ConfigDict(frozen=True)

    query: CollectionQuery
    documents: list[Document] = Field(default_factory=list)
    added: list[Document] = Field(default_factory=list)
    modified: list[Document] = Field(default_factory=list)
    removed: list[Document] = Field(default_factory=list)
    is_initial: bool = False

    @property
    def size(self) -> int:
        return len(self.documents)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)


def build_snapshot(
    query: CollectionQuery,
    previous: Optional[list[Document]],
    current: list[Document],
) -> QuerySnapshot:
    """
    Compare two result sets of the same query.

    Pass previous=None for the first snapshot of a subscription.
    """
    if previous is None:
        return QuerySnapshot(
            query=query,
            documents=current,
            added=list(current),
            is_initial=True,
        )

    before = {doc.id: doc for doc in previous}
    after = {doc.id: doc for doc in current}

    added = [doc for doc in current if doc.id not in before]
    modified = [
        doc for doc in current
        if doc.id in before and before[doc.id].data != doc.data
    ]
    removed = [doc for doc in previous if doc.id not in after]

    return QuerySnapshot(
        query=query,
        documents=current,
        added=added,
        modified=modified,
        removed=removed,
    )
