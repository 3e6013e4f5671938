"""Gistpad exceptions.

Identity provider failures carry ``auth/...`` codes and document store
failures carry ``store/...`` codes, so controllers can map both families to
user-facing messages without inspecting backend payloads.
"""

from __future__ import annotations


class GistpadError(Exception):
    """Base exception for Gistpad."""

    def __init__(self, message: str, code: str = "unknown"):
        super().__init__(message)
        self.code = code


class IdentityError(GistpadError):
    """Sign-in, sign-up or sign-out failed at the identity provider."""

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or f"Identity provider error: {code}", code=code)


class DocumentStoreError(GistpadError):
    """A read, write or subscription failed at the document store."""

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or f"Document store error: {code}", code=code)


class NotFoundError(DocumentStoreError):
    """Document does not exist."""

    def __init__(self, message: str = "Document not found"):
        super().__init__("store/not-found", message)


class UniquenessError(GistpadError):
    """A pre-write uniqueness check found an existing value."""

    def __init__(self, field: str, value: str):
        super().__init__(f"{field} already in use: {value}", code=f"unique/{field}")
        self.field = field
        self.value = value
