"""Identity provider emulation backed by SQLite and bcrypt."""

from __future__ import annotations

import logging
import re
import uuid

import aiosqlite
import bcrypt

from gistpad.auth.provider import AuthStateEmitter
from gistpad.auth.rate_limiter import SignInRateLimiter
from gistpad.exceptions import IdentityError
from gistpad.models.identity import Identity

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def _identity(row: aiosqlite.Row) -> Identity:
    return Identity(uid=row["uid"], email=row["email"], display_name=row["display_name"])


class LocalIdentityProvider(AuthStateEmitter):
    """Development identity provider.

    Accounts live in the ``accounts`` table; the signed-in uid is persisted in
    ``auth_state`` so a restarted process resolves to the same session.
    """

    def __init__(
        self,
        db: aiosqlite.Connection,
        limiter: SignInRateLimiter | None = None,
        bcrypt_rounds: int = 12,
    ):
        super().__init__()
        self._db = db
        self._limiter = limiter or SignInRateLimiter()
        self._bcrypt_rounds = bcrypt_rounds

    async def sign_up(self, email: str, password: str) -> Identity:
        email = email.strip().lower()
        if not EMAIL_RE.match(email):
            raise IdentityError("auth/invalid-email")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise IdentityError("auth/weak-password", f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
        if await self._get_account(email):
            raise IdentityError("auth/email-already-in-use")

        uid = uuid.uuid4().hex[:28]
        password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt(self._bcrypt_rounds)).decode()
        await self._db.execute(
            "INSERT INTO accounts (uid, email, password_hash, last_login_at) VALUES (?, ?, ?, datetime('now'))",
            (uid, email, password_hash),
        )
        await self._db.commit()
        logger.info("Created account %s", uid)

        identity = Identity(uid=uid, email=email)
        await self._persist(uid)
        self._emit(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> Identity:
        email = email.strip().lower()
        if not self._limiter.allow(email):
            raise IdentityError(
                "auth/too-many-requests",
                f"Too many failed attempts. Retry after {self._limiter.retry_after(email)}s",
            )

        row = await self._get_account(email)
        if row is None:
            self._limiter.record_failure(email)
            raise IdentityError("auth/user-not-found")
        if row["disabled"]:
            raise IdentityError("auth/user-disabled")
        if not bcrypt.checkpw(password.encode(), row["password_hash"].encode()):
            self._limiter.record_failure(email)
            raise IdentityError("auth/wrong-password")

        self._limiter.reset(email)
        await self._db.execute(
            "UPDATE accounts SET last_login_at = datetime('now') WHERE uid = ?", (row["uid"],)
        )
        await self._db.commit()

        identity = _identity(row)
        await self._persist(identity.uid)
        self._emit(identity)
        return identity

    async def sign_in_with_google(self, id_token: str) -> Identity:
        raise IdentityError("auth/operation-not-allowed", "Google sign-in requires the Firebase backend")

    async def sign_out(self) -> None:
        await self._db.execute("DELETE FROM auth_state")
        await self._db.commit()
        self._emit(None)

    async def get_id_token(self) -> str | None:
        return None

    async def set_disabled(self, uid: str, disabled: bool = True) -> None:
        await self._db.execute(
            "UPDATE accounts SET disabled = ? WHERE uid = ?", (1 if disabled else 0, uid)
        )
        await self._db.commit()

    async def _restore(self) -> Identity | None:
        async with self._db.execute(
            """SELECT a.* FROM auth_state s
               JOIN accounts a ON a.uid = s.uid
               WHERE s.id = 1 AND a.disabled = 0"""
        ) as cursor:
            row = await cursor.fetchone()
        return _identity(row) if row else None

    async def _get_account(self, email: str) -> aiosqlite.Row | None:
        async with self._db.execute("SELECT * FROM accounts WHERE email = ?", (email,)) as cursor:
            return await cursor.fetchone()

    async def _persist(self, uid: str) -> None:
        await self._db.execute(
            """INSERT INTO auth_state (id, uid, updated_at) VALUES (1, ?, datetime('now'))
               ON CONFLICT(id) DO UPDATE SET uid=excluded.uid, updated_at=excluded.updated_at""",
            (uid,),
        )
        await self._db.commit()
