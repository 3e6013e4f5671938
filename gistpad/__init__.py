"""Gistpad — client core for sharing and discussing code snippets."""

from gistpad.auth.session_store import SessionStore
from gistpad.auth.guards import AnonymousOnlyGuard, AuthenticatedOnlyGuard
from gistpad.exceptions import (
    DocumentStoreError,
    GistpadError,
    IdentityError,
    NotFoundError,
    UniquenessError,
)
from gistpad.models.identity import Identity, Session

__all__ = [
    "SessionStore",
    "AnonymousOnlyGuard",
    "AuthenticatedOnlyGuard",
    "Identity",
    "Session",
    "GistpadError",
    "IdentityError",
    "DocumentStoreError",
    "NotFoundError",
    "UniquenessError",
]
