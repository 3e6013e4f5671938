"""Identity and session value types."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """An authenticated principal issued by the identity provider."""

    uid: str
    email: str | None = None
    display_name: str | None = None

    @classmethod
    def from_api_response(cls, data: dict) -> Identity:
        return cls(
            uid=data.get("localId") or data.get("user_id") or data["uid"],
            email=data.get("email"),
            display_name=data.get("displayName") or data.get("display_name"),
        )


@dataclass(frozen=True)
class Session:
    """Process-wide authentication status.

    ``is_resolving`` is the only flag consumers may gate on while the first
    provider status event is outstanding; ``identity`` may hold an optimistic
    value during that window.
    """

    identity: Identity | None = None
    is_authenticated: bool = False
    is_resolving: bool = True

    @property
    def uid(self) -> str | None:
        return self.identity.uid if self.identity else None


RESOLVING = Session()
