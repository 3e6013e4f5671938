"""Tests for the Firestore REST document store and its value codec."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest

from gistpad.db.firestore_codec import (
    build_structured_query,
    decode_document,
    decode_value,
    encode_fields,
    parse_timestamp,
)
from gistpad.db.firestore_store import FirestoreDocumentStore, error_from_response
from gistpad.db.store import Query
from gistpad.exceptions import DocumentStoreError, IdentityError, NotFoundError

ROOT = "projects/demo/databases/(default)/documents"


def _doc(collection: str, doc_id: str, fields: dict, update_time: str = "2025-01-01T00:00:00Z") -> dict:
    return {"name": f"{ROOT}/{collection}/{doc_id}", "fields": encode_fields(fields), "updateTime": update_time}


def _store(handler, **kwargs) -> FirestoreDocumentStore:
    return FirestoreDocumentStore(
        "demo",
        base_url="https://firestore.test/v1",
        retry_count=3,
        poll_seconds=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestCodec:
    def test_encode_fields(self):
        when = datetime(2025, 3, 5, 14, 30, tzinfo=timezone.utc)
        fields = encode_fields({"id": "skip", "n": 3, "ok": True, "s": "x", "t": when, "none": None})
        assert fields == {
            "n": {"integerValue": "3"},
            "ok": {"booleanValue": True},
            "s": {"stringValue": "x"},
            "t": {"timestampValue": "2025-03-05T14:30:00.000000Z"},
            "none": {"nullValue": None},
        }

    def test_decode_nested(self):
        value = {"mapValue": {"fields": {"tags": {"arrayValue": {"values": [{"stringValue": "a"}]}}}}}
        assert decode_value(value) == {"tags": ["a"]}

    def test_decode_document_sets_id(self):
        doc = decode_document(_doc("gists", "abc", {"filename": "a.py"}))
        assert doc == {"filename": "a.py", "id": "abc"}

    def test_parse_nanosecond_timestamp(self):
        parsed = parse_timestamp("2025-03-05T14:30:00.123456789Z")
        assert parsed == datetime(2025, 3, 5, 14, 30, 0, 123456, tzinfo=timezone.utc)

    def test_single_filter_query(self):
        structured = build_structured_query(Query("gists").where("userId", "u1").order("createdAt", descending=True))
        assert structured == {
            "from": [{"collectionId": "gists"}],
            "where": {"fieldFilter": {"field": {"fieldPath": "userId"}, "op": "EQUAL", "value": {"stringValue": "u1"}}},
            "orderBy": [{"field": {"fieldPath": "createdAt"}, "direction": "DESCENDING"}],
        }

    def test_or_query(self):
        structured = build_structured_query(Query("users").where("email", "x").where("username", "x").any_of().take(1))
        assert structured["where"]["compositeFilter"]["op"] == "OR"
        assert len(structured["where"]["compositeFilter"]["filters"]) == 2
        assert structured["limit"] == 1


class TestErrors:
    def test_not_found(self):
        assert isinstance(error_from_response(httpx.Response(404, json={})), NotFoundError)

    def test_run_query_wrapped_error(self):
        resp = httpx.Response(403, json=[{"error": {"status": "PERMISSION_DENIED", "message": "nope"}}])
        err = error_from_response(resp)
        assert err.code == "store/permission-denied"
        assert str(err) == "nope"

    def test_unknown_server_error(self):
        assert error_from_response(httpx.Response(503, text="down")).code == "store/unavailable"


class TestRequests:
    @pytest.mark.asyncio
    async def test_create_posts_fields(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"name": f"{ROOT}/gists/new-id"})

        async with _store(handler, token_provider=_token("tok")) as store:
            doc_id = await store.create("gists", {"filename": "a.py"})

        assert doc_id == "new-id"
        assert seen[0].method == "POST"
        assert seen[0].url.path.endswith("/documents/gists")
        assert seen[0].headers["Authorization"] == "Bearer tok"
        assert json.loads(seen[0].content) == {"fields": {"filename": {"stringValue": "a.py"}}}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self):
        async with _store(lambda r: httpx.Response(404, json={"error": {"status": "NOT_FOUND"}})) as store:
            assert await store.get("gists", "nope") is None

    @pytest.mark.asyncio
    async def test_run_query_skips_read_time_entries(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["structuredQuery"]["from"] == [{"collectionId": "gists"}]
            return httpx.Response(200, json=[{"readTime": "x"}, {"document": _doc("gists", "g1", {"n": 1})}])

        async with _store(handler) as store:
            assert await store.run_query(Query("gists")) == [{"n": 1, "id": "g1"}]

    @pytest.mark.asyncio
    @patch("gistpad.db.firestore_store.asyncio.sleep")
    async def test_reads_retry_on_transport_error(self, mock_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("down")
            return httpx.Response(200, json=_doc("gists", "g1", {"n": 1}))

        async with _store(handler) as store:
            assert (await store.get("gists", "g1"))["n"] == 1
        assert len(calls) == 3
        assert mock_sleep.call_count == 2

    @pytest.mark.asyncio
    async def test_writes_are_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("down")

        async with _store(handler) as store:
            with pytest.raises(DocumentStoreError) as exc_info:
                await store.create("gists", {"n": 1})
        assert exc_info.value.code == "store/unavailable"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_get_malformed_document(self):
        bad = {"name": f"{ROOT}/gists/g1", "fields": {"n": {"geoPointValue": {}}}}
        async with _store(lambda r: httpx.Response(200, json=bad)) as store:
            with pytest.raises(DocumentStoreError) as exc_info:
                await store.get("gists", "g1")
        assert exc_info.value.code == "store/invalid-document"

    @pytest.mark.asyncio
    async def test_token_failure_is_unauthenticated(self):
        async def failing_token():
            raise IdentityError("auth/invalid-user-token")

        async with _store(lambda r: httpx.Response(200, json={}), token_provider=failing_token) as store:
            with pytest.raises(DocumentStoreError) as exc_info:
                await store.get("gists", "g1")
        assert exc_info.value.code == "store/unauthenticated"


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_emits_only_on_change(self):
        responses = [
            [{"document": _doc("comments", "c1", {"n": 1})}],
            [{"document": _doc("comments", "c1", {"n": 1})}],
            [{"document": _doc("comments", "c1", {"n": 1})}, {"document": _doc("comments", "c2", {"n": 2})}],
        ]

        def handler(request):
            return httpx.Response(200, json=responses.pop(0) if len(responses) > 1 else responses[0])

        snapshots = []
        async with _store(handler) as store:
            dispose = store.subscribe(Query("comments"), snapshots.append)
            for _ in range(10):
                await asyncio.sleep(0.01)
                if len(snapshots) == 2:
                    break
            dispose()

        assert [[d["id"] for d in s] for s in snapshots] == [["c1"], ["c1", "c2"]]

    @pytest.mark.asyncio
    async def test_error_stops_listener(self):
        errors = []
        snapshots = []
        resp = httpx.Response(403, json=[{"error": {"status": "PERMISSION_DENIED"}}])
        async with _store(lambda r: resp) as store:
            store.subscribe(Query("comments"), snapshots.append, errors.append)
            for _ in range(10):
                await asyncio.sleep(0.01)
                if errors:
                    break
        assert snapshots == []
        assert [e.code for e in errors] == ["store/permission-denied"]

    @pytest.mark.asyncio
    async def test_malformed_document_reported_to_listener(self):
        bad = {"name": f"{ROOT}/comments/c1", "fields": {"n": {"geoPointValue": {}}}}
        errors = []
        snapshots = []
        async with _store(lambda r: httpx.Response(200, json=[{"document": bad}])) as store:
            store.subscribe(Query("comments"), snapshots.append, errors.append)
            for _ in range(10):
                await asyncio.sleep(0.01)
                if errors:
                    break
        assert snapshots == []
        assert [e.code for e in errors] == ["store/invalid-document"]

    @pytest.mark.asyncio
    async def test_dispose_stops_deliveries(self):
        snapshots = []
        async with _store(lambda r: httpx.Response(200, json=[])) as store:
            dispose = store.subscribe(Query("comments"), snapshots.append)
            dispose()
            await asyncio.sleep(0.02)
        assert snapshots == []


def _token(value: str):
    async def provider():
        return value

    return provider
