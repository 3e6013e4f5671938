"""Route guards: map session state to Loading, Redirect or Render."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Union

from gistpad.auth.provider import Disposer
from gistpad.auth.session_store import SessionStore
from gistpad.models.identity import Session

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
LANDING_PATH = "/"


@dataclass(frozen=True)
class Loading:
    """Neutral placeholder; no navigation decision yet."""


@dataclass(frozen=True)
class Redirect:
    target: str


@dataclass(frozen=True)
class Render:
    children: Any = None


GuardDecision = Union[Loading, Redirect, Render]


class RouteGuard(Protocol):
    def decide(self, session: Session, children: Any = None) -> GuardDecision: ...


class AuthenticatedOnlyGuard:
    """Render only for a signed-in user; anonymous visitors go to the login page."""

    def __init__(self, redirect_to: str = LOGIN_PATH):
        self.redirect_to = redirect_to

    def decide(self, session: Session, children: Any = None) -> GuardDecision:
        if session.is_resolving:
            return Loading()
        if session.is_authenticated:
            return Render(children)
        return Redirect(self.redirect_to)


class AnonymousOnlyGuard:
    """Render only for anonymous visitors; signed-in users go to the landing page."""

    def __init__(self, redirect_to: str = LANDING_PATH):
        self.redirect_to = redirect_to

    def decide(self, session: Session, children: Any = None) -> GuardDecision:
        if session.is_resolving:
            return Loading()
        if session.is_authenticated:
            return Redirect(self.redirect_to)
        return Render(children)


class GuardOutlet:
    """A guard mounted against a session store.

    Holds one session subscription while mounted and reports a fresh decision
    to ``on_decision`` whenever the session changes. After ``unmount()`` no
    further decisions are reported.
    """

    def __init__(
        self,
        guard: RouteGuard,
        session_store: SessionStore,
        on_decision: Callable[[GuardDecision], None],
        children: Any = None,
    ):
        self._guard = guard
        self._store = session_store
        self._on_decision = on_decision
        self._children = children
        self._disposer: Disposer | None = None
        self.decision: GuardDecision = Loading()

    @property
    def mounted(self) -> bool:
        return self._disposer is not None

    def mount(self) -> GuardDecision:
        if self._disposer is None:
            self._disposer = self._store.subscribe(self._on_session)
        self.decision = self._guard.decide(self._store.session, self._children)
        return self.decision

    def unmount(self) -> None:
        if self._disposer is not None:
            self._disposer()
            self._disposer = None

    def _on_session(self, session: Session) -> None:
        if self._disposer is None:
            return
        decision = self._guard.decide(session, self._children)
        if decision == self.decision:
            return
        self.decision = decision
        self._on_decision(decision)
