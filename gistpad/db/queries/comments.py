from __future__ import annotations

import logging

from pydantic import ValidationError

from gistpad.db.collections import COLLECTION_COMMENTS
from gistpad.db.store import DocumentStore, Query, utc_now
from gistpad.models.comment import Comment
from gistpad.models.identity import Identity
from gistpad.utils.validators import CommentForm

logger = logging.getLogger(__name__)


def comments_query(gist_id: str | None = None) -> Query:
    """All comments oldest first, or only those of ``gist_id`` when given."""
    query = Query(COLLECTION_COMMENTS)
    if gist_id is not None:
        query = query.where("gistId", gist_id)
    return query.order("createdAt")


def to_comments(docs: list[dict]) -> list[Comment]:
    """Malformed documents are logged and left out, keeping the input order."""
    comments = []
    for doc in docs:
        try:
            comments.append(Comment.model_validate(doc))
        except ValidationError as e:
            logger.warning("Skipping malformed comment %s: %s", doc.get("id"), e)
    return comments


async def add_comment(store: DocumentStore, gist_id: str, author: Identity, content: str) -> str:
    form = CommentForm.model_validate({"content": content})
    comment_id = await store.create(
        COLLECTION_COMMENTS,
        {
            "content": form.content,
            "authorId": author.uid,
            "authorEmail": author.email,
            "gistId": gist_id,
            "createdAt": utc_now(),
        },
    )
    logger.debug("Added comment %s to gist %s", comment_id, gist_id)
    return comment_id


async def list_comments(store: DocumentStore, gist_id: str) -> list[Comment]:
    return to_comments(await store.run_query(comments_query(gist_id)))
