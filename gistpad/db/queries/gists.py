from __future__ import annotations

import logging

from pydantic import ValidationError

from gistpad.db.collections import COLLECTION_GISTS
from gistpad.db.store import DocumentStore, Query, utc_now
from gistpad.exceptions import DocumentStoreError, NotFoundError
from gistpad.models.gist import Gist
from gistpad.utils.validators import GistForm

logger = logging.getLogger(__name__)


async def create_gist(store: DocumentStore, data: GistForm | dict, author_uid: str) -> str:
    """Validate and write a new gist. Returns the store-assigned id."""
    if not author_uid:
        raise ValueError("author_uid is required")
    form = data if isinstance(data, GistForm) else GistForm.model_validate(data)

    gist_id = await store.create(
        COLLECTION_GISTS,
        {
            "filename": form.filename,
            "code": form.code,
            "description": form.description or "",
            "status": form.status,
            "userId": author_uid,
            "createdAt": utc_now(),
        },
    )
    logger.info("Created gist %s (%s) for %s", gist_id, form.filename, author_uid)
    return gist_id


def to_gist(doc: dict) -> Gist:
    try:
        return Gist.model_validate(doc)
    except ValidationError as e:
        raise DocumentStoreError("store/invalid-document", f"Malformed gist {doc.get('id')}: {e}") from e


async def list_gists_by_user(store: DocumentStore, uid: str) -> list[Gist]:
    """Newest first. An empty list means the user has no gists.

    Malformed documents are logged and left out.
    """
    query = Query(COLLECTION_GISTS).where("userId", uid).order("createdAt", descending=True)
    gists = []
    for doc in await store.run_query(query):
        try:
            gists.append(to_gist(doc))
        except DocumentStoreError as e:
            logger.warning("Skipping gist: %s", e)
    return gists


async def get_gist(store: DocumentStore, gist_id: str) -> Gist:
    doc = await store.get(COLLECTION_GISTS, gist_id)
    if doc is None:
        raise NotFoundError(f"Gist not found: {gist_id}")
    return to_gist(doc)
