"""Document store interface — local SQLite emulation or hosted Firestore."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, runtime_checkable

from gistpad.exceptions import DocumentStoreError

Disposer = Callable[[], None]
SnapshotCallback = Callable[[list[dict]], None]
ErrorCallback = Callable[[DocumentStoreError], None]


@dataclass(frozen=True)
class FieldFilter:
    field: str
    value: Any


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    """Collection-scoped equality filters plus an ordering.

    Filters are ANDed together unless ``match_any`` is set, in which case a
    document matches when any single filter matches.
    """

    collection: str
    filters: tuple[FieldFilter, ...] = ()
    match_any: bool = False
    order_by: tuple[OrderBy, ...] = ()
    limit: int | None = None

    def where(self, field: str, value: Any) -> Query:
        return replace(self, filters=self.filters + (FieldFilter(field, value),))

    def order(self, field: str, descending: bool = False) -> Query:
        return replace(self, order_by=self.order_by + (OrderBy(field, descending),))

    def any_of(self) -> Query:
        return replace(self, match_any=True)

    def take(self, limit: int) -> Query:
        return replace(self, limit=limit)


@runtime_checkable
class DocumentStore(Protocol):
    """Interface for collection-scoped document persistence."""

    async def create(self, collection: str, data: dict) -> str: ...

    async def get(self, collection: str, doc_id: str) -> dict | None: ...

    async def run_query(self, query: Query) -> list[dict]: ...

    def subscribe(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Disposer: ...

    async def close(self) -> None: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """RFC 3339 UTC with microseconds; lexical order equals time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
