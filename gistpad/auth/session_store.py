"""Process-wide authentication state fed by the identity provider's status stream."""

from __future__ import annotations

import logging
from typing import Callable

from gistpad.auth.provider import Disposer, IdentityProvider
from gistpad.models.identity import RESOLVING, Identity, Session

logger = logging.getLogger(__name__)

SessionCallback = Callable[[Session], None]


class SessionStore:
    """Single source of truth for who is signed in.

    Construct one per application and pass it to whatever needs it. The store
    holds exactly one subscription to the provider's status stream between
    ``start()`` and ``close()``. Only provider events and ``login``/``logout``
    write to it; everything else reads ``session`` or subscribes.

    ``is_resolving`` turns false on the first provider event and never turns
    back. If that event never arrives the session stays resolving.
    """

    def __init__(self, provider: IdentityProvider):
        self._provider = provider
        self._session = RESOLVING
        self._listeners: dict[int, SessionCallback] = {}
        self._next_key = 0
        self._provider_disposer: Disposer | None = None
        self._closed = False

    @property
    def session(self) -> Session:
        return self._session

    @property
    def is_resolving(self) -> bool:
        return self._session.is_resolving

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def identity(self) -> Identity | None:
        return self._session.identity

    def start(self) -> None:
        """Attach to the provider's status stream (idempotent)."""
        if self._provider_disposer is not None or self._closed:
            return
        self._provider_disposer = self._provider.on_auth_state_changed(self._on_provider_event)
        logger.debug("Session store attached to identity provider")

    def close(self) -> None:
        self._closed = True
        if self._provider_disposer is not None:
            self._provider_disposer()
            self._provider_disposer = None
        self._listeners.clear()

    def subscribe(self, callback: SessionCallback) -> Disposer:
        """Register ``callback`` for every status change; returns its disposer."""
        key = self._next_key
        self._next_key += 1
        self._listeners[key] = callback

        def dispose() -> None:
            self._listeners.pop(key, None)

        return dispose

    def login(self, identity: Identity) -> None:
        """Mark the session authenticated right after a successful credential exchange."""
        self._set(Session(identity=identity, is_authenticated=True, is_resolving=self._session.is_resolving))

    def logout(self) -> None:
        """Clear the session as soon as sign-out is initiated."""
        self._set(Session(identity=None, is_authenticated=False, is_resolving=self._session.is_resolving))

    def _on_provider_event(self, identity: Identity | None) -> None:
        if self._closed:
            return
        self._set(Session(identity=identity, is_authenticated=identity is not None, is_resolving=False))

    def _set(self, session: Session) -> None:
        # Once resolved, never resolving again
        if not self._session.is_resolving and session.is_resolving:
            session = Session(identity=session.identity, is_authenticated=session.is_authenticated, is_resolving=False)
        if session == self._session:
            return
        self._session = session
        logger.debug(
            "Session changed: authenticated=%s resolving=%s uid=%s",
            session.is_authenticated,
            session.is_resolving,
            session.uid,
        )
        for callback in list(self._listeners.values()):
            try:
                callback(session)
            except Exception:
                logger.exception("Session listener failed")
