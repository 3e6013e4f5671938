"""Live comment thread: an always-current projection of one gist's comments.

In the default "client" filter mode the thread subscribes to every comment
on the platform ordered by ``createdAt`` and keeps only those of its gist.
Filtering keeps relative order, so the projection is ascending without a
re-sort. Traffic grows with the total number of comments, not with the size
of this thread. The "server" mode pushes the ``gistId`` predicate into the
subscription instead.
"""

from __future__ import annotations

import logging
from typing import Callable

from gistpad.config import settings
from gistpad.db.queries.comments import comments_query, to_comments
from gistpad.db.store import Disposer, DocumentStore
from gistpad.exceptions import DocumentStoreError
from gistpad.models.comment import Comment

logger = logging.getLogger(__name__)

FILTER_MODES = {"client", "server"}

ChangeCallback = Callable[[list[Comment]], None]
ErrorCallback = Callable[[DocumentStoreError], None]


class CommentThreadSync:
    """Keeps ``comments`` equal to the latest snapshot for ``gist_id``.

    Usage:
        thread = CommentThreadSync(store, "gist-id", on_change=render)
        thread.start()
        ...
        thread.stop()
    """

    def __init__(
        self,
        store: DocumentStore,
        gist_id: str,
        on_change: ChangeCallback | None = None,
        on_error: ErrorCallback | None = None,
        filter_mode: str | None = None,
    ):
        filter_mode = filter_mode or settings.comment_filter_mode
        if filter_mode not in FILTER_MODES:
            raise ValueError(f"filter_mode must be one of: {', '.join(sorted(FILTER_MODES))}")
        self._store = store
        self._gist_id = gist_id
        self._on_change = on_change
        self._on_error = on_error
        self._filter_mode = filter_mode
        self._disposer: Disposer | None = None
        self._generation = 0
        self.comments: list[Comment] = []
        self.error: DocumentStoreError | None = None
        self.snapshots_applied = 0

    @property
    def gist_id(self) -> str:
        return self._gist_id

    @property
    def filter_mode(self) -> str:
        return self._filter_mode

    @property
    def active(self) -> bool:
        return self._disposer is not None

    def start(self) -> None:
        if self._disposer is not None:
            return
        query = comments_query(self._gist_id if self._filter_mode == "server" else None)
        generation = self._generation
        self._disposer = self._store.subscribe(
            query,
            lambda docs: self._apply_snapshot(generation, docs),
            lambda error: self._apply_error(generation, error),
        )
        logger.debug("Comment thread for gist %s subscribed (%s filter)", self._gist_id, self._filter_mode)

    def stop(self) -> None:
        """Detach the subscription; later deliveries are ignored."""
        if self._disposer is not None:
            self._generation += 1
            self._disposer()
            self._disposer = None
            logger.debug("Comment thread for gist %s unsubscribed", self._gist_id)

    def switch(self, gist_id: str) -> None:
        """Follow a different gist: drop the old subscription and projection."""
        if gist_id == self._gist_id:
            return
        was_active = self.active
        self.stop()
        self._gist_id = gist_id
        self.comments = []
        self.error = None
        if was_active:
            self.start()

    def _apply_snapshot(self, generation: int, docs: list[dict]) -> None:
        # Stale delivery from a stopped subscription
        if generation != self._generation or self._disposer is None:
            return
        matching = [d for d in docs if d.get("gistId") == self._gist_id]
        self.comments = to_comments(matching)
        self.error = None
        self.snapshots_applied += 1
        if self._on_change:
            self._on_change(self.comments)

    def _apply_error(self, generation: int, error: DocumentStoreError) -> None:
        if generation != self._generation or self._disposer is None:
            return
        logger.warning("Comment thread for gist %s failed: %s", self._gist_id, error)
        self.error = error
        if self._on_error:
            self._on_error(error)
