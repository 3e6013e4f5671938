"""User profile reads and writes.

Email and username uniqueness are checked with separate reads before the
profile write. The store enforces neither, so two concurrent registrations
can both pass the checks and both write.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from gistpad.db.collections import COLLECTION_USERS
from gistpad.db.store import DocumentStore, Query, utc_now
from gistpad.exceptions import DocumentStoreError, UniquenessError
from gistpad.models.identity import Identity
from gistpad.models.user import UserProfile

logger = logging.getLogger(__name__)


async def _first(store: DocumentStore, query: Query) -> UserProfile | None:
    docs = await store.run_query(query.take(1))
    if not docs:
        return None
    try:
        return UserProfile.model_validate(docs[0])
    except ValidationError as e:
        raise DocumentStoreError("store/invalid-document", f"Malformed user profile {docs[0].get('id')}: {e}") from e


async def find_by_email(store: DocumentStore, email: str) -> UserProfile | None:
    return await _first(store, Query(COLLECTION_USERS).where("email", email))


async def find_by_username(store: DocumentStore, username: str) -> UserProfile | None:
    return await _first(store, Query(COLLECTION_USERS).where("username", username))


async def find_by_email_or_username(store: DocumentStore, value: str) -> UserProfile | None:
    query = Query(COLLECTION_USERS).where("email", value).where("username", value).any_of()
    return await _first(store, query)


async def get_by_uid(store: DocumentStore, uid: str) -> UserProfile | None:
    return await _first(store, Query(COLLECTION_USERS).where("uid", uid))


async def ensure_available(store: DocumentStore, email: str | None, username: str) -> None:
    """Raise UniquenessError when the email or the username is already registered."""
    if email and await find_by_email(store, email):
        raise UniquenessError("email", email)
    if await find_by_username(store, username):
        raise UniquenessError("username", username)


async def create_user_profile(store: DocumentStore, identity: Identity, username: str) -> str:
    await ensure_available(store, identity.email, username)
    profile_id = await store.create(
        COLLECTION_USERS,
        {
            "uid": identity.uid,
            "email": identity.email,
            "username": username,
            "createdAt": utc_now(),
        },
    )
    logger.info("Created profile %s for %s (%s)", profile_id, identity.uid, username)
    return profile_id
