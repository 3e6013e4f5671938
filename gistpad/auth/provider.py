"""Identity provider interface — local emulation or Firebase Authentication."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol, runtime_checkable

from gistpad.exceptions import IdentityError
from gistpad.models.identity import Identity

logger = logging.getLogger(__name__)

AuthStateCallback = Callable[[Identity | None], None]
Disposer = Callable[[], None]


@runtime_checkable
class IdentityProvider(Protocol):
    """Interface for identity verification and the live sign-in status stream."""

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Disposer: ...

    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def sign_up(self, email: str, password: str) -> Identity: ...

    async def sign_in_with_google(self, id_token: str) -> Identity: ...

    async def sign_out(self) -> None: ...

    async def get_id_token(self) -> str | None: ...

    async def close(self) -> None: ...


class AuthStateEmitter:
    """Status stream shared by the provider implementations.

    The first listener triggers a one-off restore of any persisted sign-in.
    Its outcome is the first status event; every later sign-in or sign-out is
    pushed to all listeners in registration order. Listeners that register
    after the first event receive the current status on the next loop turn.
    If the restore cannot reach the backend, no event is emitted at all.
    """

    def __init__(self) -> None:
        self._listeners: dict[int, AuthStateCallback] = {}
        self._next_key = 0
        self._current: Identity | None = None
        self._resolved = False
        self._restore_task: asyncio.Task | None = None

    @property
    def current_identity(self) -> Identity | None:
        return self._current

    @property
    def resolved(self) -> bool:
        return self._resolved

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Disposer:
        key = self._next_key
        self._next_key += 1
        self._listeners[key] = callback

        loop = asyncio.get_running_loop()
        if self._resolved:
            loop.call_soon(self._replay, key)
        elif self._restore_task is None:
            self._restore_task = loop.create_task(self._run_restore())

        def dispose() -> None:
            self._listeners.pop(key, None)

        return dispose

    async def wait_resolved(self) -> None:
        """Wait for the persisted-session restore to finish (tests, startup)."""
        if self._restore_task is not None:
            await asyncio.gather(self._restore_task, return_exceptions=True)

    async def close(self) -> None:
        self._listeners.clear()
        if self._restore_task is not None and not self._restore_task.done():
            self._restore_task.cancel()
            await asyncio.gather(self._restore_task, return_exceptions=True)

    async def _restore(self) -> Identity | None:
        raise NotImplementedError

    async def _run_restore(self) -> None:
        try:
            identity = await self._restore()
        except IdentityError as e:
            logger.error("Could not restore sign-in state: %s", e)
            return
        # A sign-in or sign-out finished first and already resolved the stream
        if self._resolved:
            return
        logger.info("Restored sign-in state: %s", identity.uid if identity else "anonymous")
        self._emit(identity)

    def _emit(self, identity: Identity | None) -> None:
        self._current = identity
        self._resolved = True
        for callback in list(self._listeners.values()):
            self._call(callback, identity)

    def _replay(self, key: int) -> None:
        callback = self._listeners.get(key)
        if callback is not None:
            self._call(callback, self._current)

    @staticmethod
    def _call(callback: AuthStateCallback, identity: Identity | None) -> None:
        try:
            callback(identity)
        except Exception:
            logger.exception("Auth state listener failed")
