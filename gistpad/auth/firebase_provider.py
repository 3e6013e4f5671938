"""Firebase Authentication over the Identity Toolkit and Secure Token REST APIs."""

from __future__ import annotations

import asyncio
import logging
import random
import time

import httpx

from gistpad.auth.credentials import CredentialStore
from gistpad.auth.provider import AuthStateEmitter
from gistpad.config import settings
from gistpad.exceptions import IdentityError
from gistpad.models.identity import Identity

logger = logging.getLogger(__name__)

# REST error message -> stable client error code
_ERROR_CODES = {
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "USER_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "INVALID_IDP_RESPONSE": "auth/invalid-credential",
    "USER_DISABLED": "auth/user-disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "INVALID_EMAIL": "auth/invalid-email",
    "WEAK_PASSWORD": "auth/weak-password",
    "OPERATION_NOT_ALLOWED": "auth/operation-not-allowed",
    "TOKEN_EXPIRED": "auth/user-token-expired",
    "INVALID_REFRESH_TOKEN": "auth/invalid-user-token",
    "INVALID_ID_TOKEN": "auth/invalid-user-token",
}

# Refresh this many seconds before the ID token actually expires
TOKEN_EXPIRY_MARGIN = 60


def error_from_response(resp: httpx.Response) -> IdentityError:
    try:
        message = resp.json().get("error", {}).get("message", "")
    except ValueError:
        message = ""
    # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
    key = message.split(":")[0].strip().split(" ")[0] if message else ""
    code = _ERROR_CODES.get(key, "auth/internal-error")
    return IdentityError(code, message or f"Identity provider error: {resp.status_code}")


class FirebaseIdentityProvider(AuthStateEmitter):
    """Email/password and Google sign-in against Firebase Authentication.

    The refresh token is persisted through a ``CredentialStore`` so the next
    process start can restore the session; the first status event is the
    outcome of that restore.
    """

    def __init__(
        self,
        api_key: str | None = None,
        credentials: CredentialStore | None = None,
        identity_url: str | None = None,
        token_url: str | None = None,
        timeout: float | None = None,
        retry_count: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__()
        self._api_key = api_key or settings.firebase_api_key
        self._credentials = credentials or CredentialStore()
        self._identity_url = (identity_url or settings.identity_toolkit_url).rstrip("/")
        self._token_url = (token_url or settings.secure_token_url).rstrip("/")
        self._retry_count = retry_count or settings.retry_count
        self._http = httpx.AsyncClient(timeout=timeout or settings.http_timeout, transport=transport)

        self._id_token: str | None = None
        self._refresh_token: str | None = None
        self._expires_at = 0.0

    async def sign_in(self, email: str, password: str) -> Identity:
        data = await self._post(
            f"{self._identity_url}/accounts:signInWithPassword",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        return self._accept(data)

    async def sign_up(self, email: str, password: str) -> Identity:
        data = await self._post(
            f"{self._identity_url}/accounts:signUp",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        return self._accept(data)

    async def sign_in_with_google(self, id_token: str) -> Identity:
        data = await self._post(
            f"{self._identity_url}/accounts:signInWithIdp",
            json={
                "postBody": f"id_token={id_token}&providerId=google.com",
                "requestUri": "http://localhost",
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
        )
        return self._accept(data)

    async def sign_out(self) -> None:
        # The REST API has no sign-out call; dropping the tokens is the sign-out
        self._id_token = None
        self._refresh_token = None
        self._expires_at = 0.0
        self._credentials.clear()
        self._emit(None)

    async def get_id_token(self) -> str | None:
        if self._refresh_token is None:
            return None
        if self._id_token is None or time.time() >= self._expires_at - TOKEN_EXPIRY_MARGIN:
            await self._refresh(self._refresh_token)
        return self._id_token

    async def close(self) -> None:
        await super().close()
        await self._http.aclose()

    async def _restore(self) -> Identity | None:
        saved = self._credentials.load()
        if not saved:
            return None
        try:
            await self._refresh(saved["refresh_token"], retry=True)
        except IdentityError as e:
            if e.code == "auth/network-request-failed":
                raise
            logger.info("Persisted session rejected (%s); starting signed out", e.code)
            self._credentials.clear()
            return None
        return Identity(uid=saved["uid"], email=saved.get("email"), display_name=saved.get("display_name"))

    async def _refresh(self, refresh_token: str, retry: bool = False) -> None:
        data = await self._post(
            f"{self._token_url}/token",
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            retry=retry,
        )
        self._id_token = data["id_token"]
        self._refresh_token = data.get("refresh_token", refresh_token)
        self._expires_at = time.time() + int(data.get("expires_in", 3600))

    def _accept(self, data: dict) -> Identity:
        identity = Identity.from_api_response(data)
        self._id_token = data.get("idToken")
        self._refresh_token = data.get("refreshToken")
        self._expires_at = time.time() + int(data.get("expiresIn", 3600))
        if self._refresh_token:
            self._credentials.save(
                {
                    "uid": identity.uid,
                    "email": identity.email,
                    "display_name": identity.display_name,
                    "refresh_token": self._refresh_token,
                }
            )
        self._emit(identity)
        return identity

    async def _post(
        self, url: str, json: dict | None = None, data: dict | None = None, retry: bool = False
    ) -> dict:
        attempts = self._retry_count if retry else 1
        for attempt in range(attempts):
            try:
                resp = await self._http.post(url, params={"key": self._api_key}, json=json, data=data)
                break
            except httpx.TransportError as e:
                if attempt == attempts - 1:
                    raise IdentityError(
                        "auth/network-request-failed", "Failed to connect to the identity provider"
                    ) from e
                # Exponential backoff with jitter: 0.5s, 1s, 2s base
                delay = (0.5 * (2 ** attempt)) + random.uniform(0, 0.25)
                logger.debug("Retry %d/%d after %.2fs", attempt + 1, attempts, delay)
                await asyncio.sleep(delay)

        if resp.status_code >= 400:
            raise error_from_response(resp)
        return resp.json()
