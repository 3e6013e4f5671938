"""Shared test fixtures for Gistpad."""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio

from gistpad.auth.local_provider import LocalIdentityProvider
from gistpad.auth.provider import AuthStateEmitter
from gistpad.auth.rate_limiter import SignInRateLimiter
from gistpad.auth.session_store import SessionStore
from gistpad.db.database import connect
from gistpad.db.sqlite_store import SQLiteDocumentStore
from gistpad.exceptions import IdentityError
from gistpad.models.identity import Identity

ALICE = Identity(uid="uid-alice", email="alice@example.com")
BOB = Identity(uid="uid-bob", email="bob@example.com")


# ---------------------------------------------------------------------------
# Fake identity provider
# ---------------------------------------------------------------------------

class FakeIdentityProvider(AuthStateEmitter):
    """Provider whose status stream is driven by the test.

    ``restore_result`` is emitted as the first event once ``release()`` is
    called; until then the session stays resolving.
    """

    def __init__(self, accounts: dict[str, tuple[str, Identity]] | None = None):
        super().__init__()
        self.accounts = dict(accounts or {})
        self.restore_result: Identity | None = None
        self.calls: list[tuple] = []
        self.fail_with: IdentityError | None = None
        self._release = asyncio.Event()
        self.subscriptions = 0

    def on_auth_state_changed(self, callback):
        self.subscriptions += 1
        return super().on_auth_state_changed(callback)

    def release(self, identity: Identity | None = None) -> None:
        self.restore_result = identity
        self._release.set()

    def emit(self, identity: Identity | None) -> None:
        self._emit(identity)

    async def _restore(self) -> Identity | None:
        await self._release.wait()
        return self.restore_result

    async def sign_in(self, email: str, password: str) -> Identity:
        self.calls.append(("sign_in", email))
        if self.fail_with:
            raise self.fail_with
        if email not in self.accounts:
            raise IdentityError("auth/user-not-found")
        expected, identity = self.accounts[email]
        if password != expected:
            raise IdentityError("auth/wrong-password")
        self._emit(identity)
        return identity

    async def sign_up(self, email: str, password: str) -> Identity:
        self.calls.append(("sign_up", email))
        if self.fail_with:
            raise self.fail_with
        if email in self.accounts:
            raise IdentityError("auth/email-already-in-use")
        identity = Identity(uid=f"uid-{len(self.accounts) + 1}", email=email)
        self.accounts[email] = (password, identity)
        self._emit(identity)
        return identity

    async def sign_in_with_google(self, id_token: str) -> Identity:
        self.calls.append(("google", id_token))
        if self.fail_with:
            raise self.fail_with
        identity = Identity(uid=f"google-{id_token}", email=f"{id_token}@gmail.com")
        self._emit(identity)
        return identity

    async def sign_out(self) -> None:
        self.calls.append(("sign_out",))
        if self.fail_with:
            raise self.fail_with
        self._emit(None)

    async def get_id_token(self) -> str | None:
        return None


# ---------------------------------------------------------------------------
# Database / store fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db():
    """In-memory SQLite database with the migrations applied."""
    conn = await connect(":memory:")
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store(db):
    s = SQLiteDocumentStore(db)
    yield s
    await s.close()


@pytest_asyncio.fixture
async def local_provider(db):
    provider = LocalIdentityProvider(db, limiter=SignInRateLimiter(limit=3), bcrypt_rounds=4)
    yield provider
    await provider.close()


@pytest_asyncio.fixture
async def fake_provider():
    provider = FakeIdentityProvider({"alice@example.com": ("secret1", ALICE)})
    yield provider
    await provider.close()


@pytest_asyncio.fixture
async def session_store(fake_provider):
    s = SessionStore(fake_provider)
    s.start()
    yield s
    s.close()


@pytest_asyncio.fixture
async def resolved_session(session_store, fake_provider):
    """Session store resolved to signed-out."""
    fake_provider.release(None)
    await fake_provider.wait_resolved()
    return session_store


@pytest_asyncio.fixture
async def signed_in_session(session_store, fake_provider):
    """Session store resolved to ALICE."""
    fake_provider.release(ALICE)
    await fake_provider.wait_resolved()
    return session_store


@pytest.fixture
def events():
    """Collects callback arguments."""
    return []
