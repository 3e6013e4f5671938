"""Tests for route guards and the guard outlet."""

from __future__ import annotations

import pytest

from gistpad.auth.guards import (
    AnonymousOnlyGuard,
    AuthenticatedOnlyGuard,
    GuardOutlet,
    Loading,
    Redirect,
    Render,
)
from gistpad.models.identity import RESOLVING, Identity, Session
from conftest import ALICE

SIGNED_OUT = Session(identity=None, is_authenticated=False, is_resolving=False)
SIGNED_IN = Session(identity=ALICE, is_authenticated=True, is_resolving=False)
# Optimistic login before the first provider event
OPTIMISTIC = Session(identity=ALICE, is_authenticated=True, is_resolving=True)


class TestAuthenticatedOnlyGuard:
    def test_loading_while_resolving(self):
        guard = AuthenticatedOnlyGuard()
        assert guard.decide(RESOLVING, "page") == Loading()
        assert guard.decide(OPTIMISTIC, "page") == Loading()

    def test_render_when_signed_in(self):
        assert AuthenticatedOnlyGuard().decide(SIGNED_IN, "page") == Render("page")

    def test_redirect_to_login(self):
        assert AuthenticatedOnlyGuard().decide(SIGNED_OUT, "page") == Redirect("/login")

    def test_custom_target(self):
        assert AuthenticatedOnlyGuard("/welcome").decide(SIGNED_OUT) == Redirect("/welcome")


class TestAnonymousOnlyGuard:
    def test_loading_while_resolving(self):
        assert AnonymousOnlyGuard().decide(RESOLVING, "page") == Loading()

    def test_redirect_when_signed_in(self):
        assert AnonymousOnlyGuard().decide(SIGNED_IN, "page") == Redirect("/")

    def test_render_when_anonymous(self):
        assert AnonymousOnlyGuard().decide(SIGNED_OUT, "page") == Render("page")


class TestGuardOutlet:
    @pytest.mark.asyncio
    async def test_never_renders_before_resolution(self, session_store, fake_provider, events):
        outlet = GuardOutlet(AuthenticatedOnlyGuard(), session_store, events.append, children="page")
        assert outlet.mount() == Loading()

        session_store.login(ALICE)
        assert outlet.decision == Loading()
        assert events == []

        fake_provider.emit(ALICE)
        assert events == [Render("page")]

    @pytest.mark.asyncio
    async def test_reports_redirect_on_sign_out(self, signed_in_session, fake_provider, events):
        outlet = GuardOutlet(AuthenticatedOnlyGuard(), signed_in_session, events.append, children="page")
        assert outlet.mount() == Render("page")
        fake_provider.emit(None)
        assert events == [Redirect("/login")]

    @pytest.mark.asyncio
    async def test_unchanged_decision_not_reported(self, signed_in_session, fake_provider, events):
        outlet = GuardOutlet(AuthenticatedOnlyGuard(), signed_in_session, events.append)
        outlet.mount()
        fake_provider.emit(Identity(uid="other", email="o@example.com"))
        assert events == []

    @pytest.mark.asyncio
    async def test_unmount_drops_subscription(self, resolved_session, fake_provider, events):
        outlet = GuardOutlet(AnonymousOnlyGuard(), resolved_session, events.append)
        outlet.mount()
        assert outlet.mounted is True
        outlet.unmount()
        assert outlet.mounted is False

        fake_provider.emit(ALICE)
        assert events == []
        assert resolved_session._listeners == {}
