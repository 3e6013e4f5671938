"""Login, registration, Google sign-in and logout flows."""

from __future__ import annotations

import logging
import re

from gistpad.auth.provider import IdentityProvider
from gistpad.auth.session_store import SessionStore
from gistpad.db.queries import users as user_queries
from gistpad.db.store import DocumentStore
from gistpad.exceptions import IdentityError
from gistpad.services.error_messages import (
    INVALID_CREDENTIALS,
    LOGIN_MESSAGES,
    REGISTRATION_MESSAGES,
    SOCIAL_MESSAGES,
)
from gistpad.services.forms import FormController, FormError
from gistpad.utils.validators import GoogleSignInForm, LoginForm, RegistrationForm

logger = logging.getLogger(__name__)

MAX_USERNAME_ATTEMPTS = 20


class LoginController(FormController):
    """Sign in with an email address or a username.

    The profile lookup resolves a username to the email the provider knows.
    """

    schema = LoginForm
    messages = LOGIN_MESSAGES

    def __init__(self, session_store: SessionStore, provider: IdentityProvider, store: DocumentStore, **kwargs):
        super().__init__(**kwargs)
        self._session = session_store
        self._provider = provider
        self._store = store

    async def perform(self, form: LoginForm) -> None:
        profile = await user_queries.find_by_email_or_username(self._store, form.email_or_username)
        if profile is None or not profile.email:
            raise FormError(INVALID_CREDENTIALS)
        identity = await self._provider.sign_in(profile.email, form.password)
        self._session.login(identity)


class RegistrationController(FormController):
    schema = RegistrationForm
    messages = REGISTRATION_MESSAGES

    def __init__(self, session_store: SessionStore, provider: IdentityProvider, store: DocumentStore, **kwargs):
        super().__init__(**kwargs)
        self._session = session_store
        self._provider = provider
        self._store = store

    async def perform(self, form: RegistrationForm) -> None:
        # Checked before sign-up so a taken name never leaves an orphan account
        await user_queries.ensure_available(self._store, form.email, form.username)
        identity = await self._provider.sign_up(form.email, form.password)
        await user_queries.create_user_profile(self._store, identity, form.username)
        self._session.login(identity)


class GoogleSignInController(FormController):
    """Google sign-in; the first sign-in for a uid also creates its profile."""

    schema = GoogleSignInForm
    messages = SOCIAL_MESSAGES

    def __init__(self, session_store: SessionStore, provider: IdentityProvider, store: DocumentStore, **kwargs):
        super().__init__(**kwargs)
        self._session = session_store
        self._provider = provider
        self._store = store

    async def perform(self, form: GoogleSignInForm) -> None:
        identity = await self._provider.sign_in_with_google(form.id_token)
        if await user_queries.get_by_uid(self._store, identity.uid) is None:
            username = await available_username(self._store, identity.email or identity.uid)
            await user_queries.create_user_profile(self._store, identity, username)
        self._session.login(identity)


async def available_username(store: DocumentStore, seed: str) -> str:
    """Derive a free username from an email address (or any seed string)."""
    base = re.sub(r"[^a-zA-Z0-9_-]", "", seed.split("@")[0])
    if len(base) < 3:
        base = f"user{base}"
    for n in range(MAX_USERNAME_ATTEMPTS):
        candidate = base if n == 0 else f"{base}{n}"
        if await user_queries.find_by_username(store, candidate) is None:
            return candidate
    raise FormError("Could not pick a username. Please try again.")


class LogoutController:
    """Clears the session immediately, then asks the provider to sign out."""

    def __init__(self, session_store: SessionStore, provider: IdentityProvider):
        self._session = session_store
        self._provider = provider
        self.is_loading = False

    async def sign_out(self) -> None:
        if self.is_loading:
            return
        self.is_loading = True
        self._session.logout()
        try:
            await self._provider.sign_out()
        except IdentityError as e:
            logger.warning("Sign-out failed at the identity provider: %s", e)
        finally:
            self.is_loading = False
