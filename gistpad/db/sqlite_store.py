"""Local document store: JSON documents in SQLite with in-process snapshots."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import aiosqlite

from gistpad.db.store import (
    Disposer,
    ErrorCallback,
    Query,
    SnapshotCallback,
    format_timestamp,
)
from gistpad.exceptions import DocumentStoreError

logger = logging.getLogger(__name__)


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, bool):
        return int(value)
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _row_to_doc(row: aiosqlite.Row) -> dict:
    doc = json.loads(row["data"])
    doc["id"] = row["id"]
    return doc


@dataclass(eq=False)
class _Listener:
    query: Query
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback | None = None
    active: bool = True
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SQLiteDocumentStore:
    """Development backend sharing the application's aiosqlite connection.

    Every successful write re-runs the queries of live subscriptions on the
    written collection and pushes full snapshots, in write order.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._listeners: dict[int, _Listener] = {}
        self._next_key = 0
        self._pending: set[asyncio.Task] = set()

    async def create(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        body = {k: v for k, v in data.items() if k != "id"}
        try:
            await self._db.execute(
                "INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)",
                (collection, doc_id, json.dumps(body, default=_json_default)),
            )
            await self._db.commit()
        except aiosqlite.Error as e:
            raise DocumentStoreError("store/unavailable", f"Write to {collection} failed: {e}") from e

        logger.debug("Created %s/%s", collection, doc_id)
        await self._notify(collection)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> dict | None:
        try:
            async with self._db.execute(
                "SELECT id, data FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise DocumentStoreError("store/unavailable", f"Read from {collection} failed: {e}") from e
        return _row_to_doc(row) if row else None

    async def run_query(self, query: Query) -> list[dict]:
        sql = "SELECT id, data FROM documents WHERE collection = ?"
        params: list = [query.collection]

        if query.filters:
            clauses = []
            for f in query.filters:
                if f.value is None:
                    clauses.append("json_extract(data, ?) IS NULL")
                    params.append(f"$.{f.field}")
                else:
                    clauses.append("json_extract(data, ?) = ?")
                    params.extend([f"$.{f.field}", _encode(f.value)])
            joiner = " OR " if query.match_any else " AND "
            sql += f" AND ({joiner.join(clauses)})"

        order = []
        for o in query.order_by:
            order.append(f"json_extract(data, ?) {'DESC' if o.descending else 'ASC'}")
            params.append(f"$.{o.field}")
        order.append("rowid ASC")
        sql += " ORDER BY " + ", ".join(order)

        if query.limit is not None:
            sql += " LIMIT ?"
            params.append(query.limit)

        try:
            async with self._db.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DocumentStoreError("store/unavailable", f"Query on {query.collection} failed: {e}") from e
        return [_row_to_doc(r) for r in rows]

    def subscribe(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Disposer:
        key = self._next_key
        self._next_key += 1
        listener = _Listener(query, on_snapshot, on_error)
        self._listeners[key] = listener
        self._schedule(listener)

        def dispose() -> None:
            listener.active = False
            self._listeners.pop(key, None)

        return dispose

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def wait_idle(self) -> None:
        """Wait until every scheduled snapshot delivery has run."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        for listener in self._listeners.values():
            listener.active = False
        self._listeners.clear()
        await self.wait_idle()

    def _schedule(self, listener: _Listener) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(listener))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify(self, collection: str) -> None:
        for listener in list(self._listeners.values()):
            if listener.query.collection == collection:
                await self._deliver(listener)

    async def _deliver(self, listener: _Listener) -> None:
        async with listener.lock:
            if not listener.active:
                return
            try:
                docs = await self.run_query(listener.query)
            except DocumentStoreError as e:
                logger.error("Snapshot query on %s failed: %s", listener.query.collection, e)
                if listener.active and listener.on_error:
                    listener.on_error(e)
                return
            # Disposed while the query was in flight
            if not listener.active:
                return
            try:
                listener.on_snapshot(docs)
            except Exception:
                logger.exception("Snapshot listener on %s failed", listener.query.collection)
