"""Route table and navigation.

Every route is wrapped in a guard. The navigator mounts a ``GuardOutlet`` for
the current route and keeps its page mounted exactly while the guard's
decision is ``Render``. Redirect decisions, whether made on entry or later
when the session changes, are followed like a navigation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from gistpad.auth.guards import (
    LANDING_PATH,
    AnonymousOnlyGuard,
    AuthenticatedOnlyGuard,
    GuardDecision,
    GuardOutlet,
    Loading,
    Redirect,
    Render,
    RouteGuard,
)
from gistpad.ui.context import AppContext
from gistpad.ui.pages import (
    CreateGistPage,
    GistDetailPage,
    GistsPage,
    HomePage,
    LoginPage,
    Page,
    RegisterPage,
)
from gistpad.ui.render import render_template

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 10

_PARAM_RE = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class Route:
    pattern: str
    page: type[Page]
    guard: RouteGuard
    regex: re.Pattern = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        source = _PARAM_RE.sub(r"(?P<\1>[^/]+)", re.escape(self.pattern).replace(r"\{", "{").replace(r"\}", "}"))
        object.__setattr__(self, "regex", re.compile(f"^{source}/?$"))

    def match(self, path: str) -> dict[str, str] | None:
        m = self.regex.match(path)
        return m.groupdict() if m else None


ROUTES: tuple[Route, ...] = (
    Route("/login", LoginPage, AnonymousOnlyGuard()),
    Route("/register", RegisterPage, AnonymousOnlyGuard()),
    Route("/", HomePage, AuthenticatedOnlyGuard()),
    Route("/create", CreateGistPage, AuthenticatedOnlyGuard()),
    Route("/gists", GistsPage, AuthenticatedOnlyGuard()),
    Route("/gist/{id}", GistDetailPage, AuthenticatedOnlyGuard()),
)


def resolve(path: str, routes: tuple[Route, ...] = ROUTES) -> tuple[Route, dict[str, str]] | None:
    path = path.split("?", 1)[0].split("#", 1)[0] or "/"
    for route in routes:
        params = route.match(path)
        if params is not None:
            return route, params
    return None


class Navigator:
    """Current location plus the guard outlet and page mounted for it.

    Usage:
        navigator = Navigator(ctx)
        navigator.navigate("/gists")
        html = navigator.render()
    """

    def __init__(
        self,
        ctx: AppContext,
        routes: tuple[Route, ...] = ROUTES,
        on_render: Callable[[], None] | None = None,
    ):
        self.ctx = ctx
        self.routes = routes
        self.on_render = on_render
        self.location: str | None = None
        self.route: Route | None = None
        self.params: dict[str, str] = {}
        self.outlet: GuardOutlet | None = None
        self.page: Page | None = None
        self.history: list[str] = []

    @property
    def decision(self) -> GuardDecision:
        return self.outlet.decision if self.outlet else Loading()

    def navigate(self, path: str) -> GuardDecision:
        """Go to ``path``, following redirects until something renders or waits."""
        for _ in range(MAX_REDIRECTS):
            match = resolve(path, self.routes)
            if match is None:
                logger.info("No route for %s, redirecting to %s", path, LANDING_PATH)
                path = LANDING_PATH
                continue
            decision = self._enter(path, *match)
            if isinstance(decision, Redirect):
                logger.debug("Guard redirected %s to %s", path, decision.target)
                path = decision.target
                continue
            self._notify()
            return decision
        raise RuntimeError(f"Too many redirects while navigating to {path}")

    def render(self) -> str:
        if self.page is not None and isinstance(self.decision, Render):
            return self.page.render()
        return render_template("loading.html", title="Loading", session=self.ctx.session_store.session)

    async def settled(self) -> None:
        if self.page is not None:
            await self.page.settled()

    def close(self) -> None:
        self._leave()
        self.location = None

    def _enter(self, path: str, route: Route, params: dict[str, str]) -> GuardDecision:
        if route is self.route and self.outlet is not None:
            self.location = path
            self.history.append(path)
            self.params = params
            if self.page is not None:
                self.page.update_params(params)
            return self.outlet.decision

        self._leave()
        self.location = path
        self.history.append(path)
        self.route = route
        self.params = params
        self.outlet = GuardOutlet(route.guard, self.ctx.session_store, self._on_decision, children=route.page)
        decision = self.outlet.mount()
        self._apply(decision)
        return decision

    def _leave(self) -> None:
        if self.page is not None:
            self.page.unmount()
            self.page = None
        if self.outlet is not None:
            self.outlet.unmount()
            self.outlet = None
        self.route = None

    def _apply(self, decision: GuardDecision) -> None:
        if isinstance(decision, Render):
            if self.page is None:
                self.page = decision.children(self.ctx, self.params, on_change=self._notify)
                self.page.mount()
        elif self.page is not None:
            self.page.unmount()
            self.page = None

    def _on_decision(self, decision: GuardDecision) -> None:
        if isinstance(decision, Redirect):
            self.navigate(decision.target)
            return
        self._apply(decision)
        self._notify()

    def _notify(self) -> None:
        if self.on_render:
            self.on_render()
