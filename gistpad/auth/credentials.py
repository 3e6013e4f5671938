"""Encrypted on-disk persistence for the signed-in user's refresh token."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

from gistpad.config import settings

logger = logging.getLogger(__name__)


def _fernet_for(secret_key: str) -> Fernet:
    # Fernet keys are 32 url-safe base64 bytes; derive one from the app secret
    key_bytes = hashlib.sha256(secret_key.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(key_bytes))


class CredentialStore:
    """Keeps ``{"uid", "email", "display_name", "refresh_token"}`` between runs."""

    def __init__(self, path: str | None = None, secret_key: str | None = None):
        self._path = Path(path or settings.credentials_path)
        self._fernet = _fernet_for(secret_key or settings.app_secret_key)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict | None:
        if not self._path.exists():
            return None
        try:
            plaintext = self._fernet.decrypt(self._path.read_bytes())
            data = json.loads(plaintext)
        except (InvalidToken, ValueError):
            logger.warning("Discarding unreadable credentials at %s", self._path)
            self.clear()
            return None
        if not isinstance(data, dict) or not data.get("refresh_token") or not data.get("uid"):
            self.clear()
            return None
        return data

    def save(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(self._fernet.encrypt(json.dumps(data).encode()))

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
