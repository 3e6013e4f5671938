from __future__ import annotations

from dataclasses import dataclass, field

from gistpad.auth.provider import IdentityProvider
from gistpad.auth.session_store import SessionStore
from gistpad.config import Settings, settings
from gistpad.db.store import DocumentStore
from gistpad.services.auth_forms import LogoutController


@dataclass
class AppContext:
    """Everything a page needs, passed down from the application."""

    session_store: SessionStore
    provider: IdentityProvider
    store: DocumentStore
    settings: Settings = field(default_factory=lambda: settings)
    logout: LogoutController | None = None

    def __post_init__(self) -> None:
        if self.logout is None:
            self.logout = LogoutController(self.session_store, self.provider)
