"""Tests for the session store."""

from __future__ import annotations

import asyncio

import pytest

from gistpad.auth.session_store import SessionStore
from gistpad.models.identity import Identity, Session
from conftest import ALICE, BOB


class TestResolution:
    @pytest.mark.asyncio
    async def test_starts_resolving(self, session_store):
        assert session_store.is_resolving is True
        assert session_store.is_authenticated is False
        assert session_store.identity is None

    @pytest.mark.asyncio
    async def test_first_event_resolves(self, session_store, fake_provider, events):
        session_store.subscribe(events.append)
        fake_provider.release(ALICE)
        await fake_provider.wait_resolved()

        assert session_store.is_resolving is False
        assert session_store.is_authenticated is True
        assert session_store.identity == ALICE
        assert events == [Session(identity=ALICE, is_authenticated=True, is_resolving=False)]

    @pytest.mark.asyncio
    async def test_first_event_signed_out(self, session_store, fake_provider):
        fake_provider.release(None)
        await fake_provider.wait_resolved()
        assert session_store.is_resolving is False
        assert session_store.is_authenticated is False

    @pytest.mark.asyncio
    async def test_never_resolving_again(self, session_store, fake_provider, events):
        session_store.subscribe(events.append)
        fake_provider.release(None)
        await fake_provider.wait_resolved()

        for identity in (ALICE, None, BOB, None, ALICE):
            fake_provider.emit(identity)
            assert session_store.is_resolving is False
        session_store.login(BOB)
        session_store.logout()

        assert all(not s.is_resolving for s in events)

    @pytest.mark.asyncio
    async def test_stays_resolving_without_an_answer(self, session_store):
        # Provider never answers: loading, not an error
        await asyncio.sleep(0.01)
        assert session_store.is_resolving is True
        assert session_store.is_authenticated is False

    @pytest.mark.asyncio
    async def test_one_provider_subscription(self, fake_provider):
        store = SessionStore(fake_provider)
        store.start()
        store.start()
        store.subscribe(lambda s: None)
        store.subscribe(lambda s: None)
        assert fake_provider.subscriptions == 1
        store.close()


class TestLoginLogout:
    @pytest.mark.asyncio
    async def test_login_then_same_event_notifies_once(self, resolved_session, fake_provider, events):
        resolved_session.subscribe(events.append)

        resolved_session.login(ALICE)
        fake_provider.emit(ALICE)

        assert events == [Session(identity=ALICE, is_authenticated=True, is_resolving=False)]
        assert resolved_session.is_authenticated is True

    @pytest.mark.asyncio
    async def test_login_event_no_unauthenticated_flicker(self, resolved_session, fake_provider, events):
        resolved_session.subscribe(events.append)
        resolved_session.login(ALICE)
        fake_provider.emit(ALICE)
        fake_provider.emit(ALICE)
        assert [s.is_authenticated for s in events] == [True]

    @pytest.mark.asyncio
    async def test_login_while_resolving_keeps_resolving(self, session_store, fake_provider):
        session_store.login(ALICE)
        assert session_store.is_resolving is True
        assert session_store.identity == ALICE

        fake_provider.emit(ALICE)
        assert session_store.is_resolving is False
        assert session_store.is_authenticated is True

    @pytest.mark.asyncio
    async def test_logout_clears_immediately(self, signed_in_session, events):
        signed_in_session.subscribe(events.append)
        signed_in_session.logout()
        assert signed_in_session.is_authenticated is False
        assert signed_in_session.identity is None
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_provider_switches_user(self, signed_in_session, fake_provider):
        fake_provider.emit(BOB)
        assert signed_in_session.identity == BOB


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_disposer_stops_notifications(self, resolved_session, fake_provider, events):
        dispose = resolved_session.subscribe(events.append)
        dispose()
        fake_provider.emit(ALICE)
        assert events == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self, resolved_session, fake_provider, events):
        def broken(_session):
            raise RuntimeError("boom")

        resolved_session.subscribe(broken)
        resolved_session.subscribe(events.append)
        fake_provider.emit(ALICE)
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_close_detaches_from_provider(self, fake_provider, events):
        store = SessionStore(fake_provider)
        store.start()
        store.subscribe(events.append)
        store.close()
        fake_provider.release(Identity(uid="late"))
        await fake_provider.wait_resolved()
        assert events == []
        assert store.is_resolving is True
