"""Gistpad — application wiring: backend selection, session and navigation."""

from __future__ import annotations

import logging

import aiosqlite

from gistpad.auth.credentials import CredentialStore
from gistpad.auth.firebase_provider import FirebaseIdentityProvider
from gistpad.auth.local_provider import LocalIdentityProvider
from gistpad.auth.provider import IdentityProvider
from gistpad.auth.rate_limiter import SignInRateLimiter
from gistpad.auth.session_store import SessionStore
from gistpad.config import Settings, settings
from gistpad.db.database import close_db, init_db
from gistpad.db.firestore_store import FirestoreDocumentStore
from gistpad.db.sqlite_store import SQLiteDocumentStore
from gistpad.db.store import DocumentStore
from gistpad.ui.context import AppContext
from gistpad.ui.router import Navigator

logger = logging.getLogger(__name__)

BACKENDS = {"local", "firebase"}


def configure_logging(config: Settings | None = None) -> None:
    config = config or settings
    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))


def get_identity_provider(config: Settings, db: aiosqlite.Connection | None = None) -> IdentityProvider:
    """Factory: returns the identity provider for the configured backend."""
    if config.backend == "firebase":
        return FirebaseIdentityProvider(
            api_key=config.firebase_api_key,
            credentials=CredentialStore(config.credentials_path, config.app_secret_key),
            identity_url=config.identity_toolkit_url,
            token_url=config.secure_token_url,
            timeout=config.http_timeout,
            retry_count=config.retry_count,
        )
    if db is None:
        raise ValueError("The local backend needs a database connection")
    return LocalIdentityProvider(db, limiter=SignInRateLimiter(config.sign_in_attempts_per_minute))


def get_document_store(
    config: Settings,
    provider: IdentityProvider,
    db: aiosqlite.Connection | None = None,
) -> DocumentStore:
    """Factory: returns the document store for the configured backend."""
    if config.backend == "firebase":
        return FirestoreDocumentStore(
            config.firebase_project_id,
            token_provider=provider.get_id_token,
            base_url=config.firestore_url,
            api_key=config.firebase_api_key,
            timeout=config.http_timeout,
            retry_count=config.retry_count,
            poll_seconds=config.snapshot_poll_seconds,
        )
    if db is None:
        raise ValueError("The local backend needs a database connection")
    return SQLiteDocumentStore(db)


class GistpadApp:
    """A running client: one provider, one store, one session, one navigator.

    Usage:
        async with await create_app() as app:
            app.navigator.navigate("/gists")
            await app.navigator.settled()
            print(app.navigator.render())
    """

    def __init__(self, ctx: AppContext, navigator: Navigator, owns_db: bool = False):
        self.ctx = ctx
        self.navigator = navigator
        self._owns_db = owns_db
        self._closed = False

    @property
    def session_store(self) -> SessionStore:
        return self.ctx.session_store

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.navigator.close()
        self.ctx.session_store.close()
        await self.ctx.store.close()
        await self.ctx.provider.close()
        if self._owns_db:
            await close_db()
        logger.info("Gistpad stopped")

    async def __aenter__(self) -> GistpadApp:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()


async def create_app(config: Settings | None = None, start_path: str | None = "/") -> GistpadApp:
    config = config or settings
    if config.backend not in BACKENDS:
        raise ValueError(f"backend must be one of: {', '.join(sorted(BACKENDS))}")
    logger.info("Starting Gistpad (backend=%s)", config.backend)

    db = await init_db(config.database_path) if config.backend == "local" else None
    provider = get_identity_provider(config, db)
    store = get_document_store(config, provider, db)

    session_store = SessionStore(provider)
    session_store.start()
    ctx = AppContext(session_store=session_store, provider=provider, store=store, settings=config)
    navigator = Navigator(ctx)
    if start_path is not None:
        navigator.navigate(start_path)
    return GistpadApp(ctx, navigator, owns_db=db is not None)
