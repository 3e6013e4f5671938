"""Hosted document store over the Firestore REST API."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from gistpad.config import settings
from gistpad.db.firestore_codec import build_structured_query, decode_document, encode_fields
from gistpad.db.store import Disposer, ErrorCallback, Query, SnapshotCallback
from gistpad.exceptions import DocumentStoreError, IdentityError, NotFoundError

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable["str | None"]]

# google.rpc status -> store error code
_STATUS_CODES = {
    "PERMISSION_DENIED": "store/permission-denied",
    "UNAUTHENTICATED": "store/unauthenticated",
    "UNAVAILABLE": "store/unavailable",
    "DEADLINE_EXCEEDED": "store/deadline-exceeded",
    "NOT_FOUND": "store/not-found",
    "INVALID_ARGUMENT": "store/invalid-argument",
    "FAILED_PRECONDITION": "store/failed-precondition",
    "RESOURCE_EXHAUSTED": "store/resource-exhausted",
    "ALREADY_EXISTS": "store/already-exists",
    "ABORTED": "store/aborted",
}


def _decode(doc: dict) -> dict:
    try:
        return decode_document(doc)
    except (KeyError, ValueError) as e:
        raise DocumentStoreError("store/invalid-document", f"Malformed document {doc.get('name')}: {e}") from e


def error_from_response(resp: httpx.Response) -> DocumentStoreError:
    try:
        body = resp.json()
    except ValueError:
        body = {}
    # runQuery wraps errors in a one-element array
    if isinstance(body, list):
        body = body[0] if body else {}
    error = body.get("error", {}) if isinstance(body, dict) else {}
    status = error.get("status", "")
    message = error.get("message") or f"Firestore error: {resp.status_code}"

    if resp.status_code == 404 or status == "NOT_FOUND":
        return NotFoundError(message)
    code = _STATUS_CODES.get(status)
    if code is None:
        code = "store/unavailable" if resp.status_code >= 500 else "store/unknown"
    return DocumentStoreError(code, message)


@dataclass(eq=False)
class _Poller:
    query: Query
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback | None = None
    active: bool = True
    task: asyncio.Task | None = None


class FirestoreDocumentStore:
    """Firestore client for the three gist collections.

    Live subscriptions poll ``runQuery`` and push a full snapshot whenever the
    set of documents or any update time changes.

    Usage:
        store = FirestoreDocumentStore(project_id="my-project", token_provider=provider.get_id_token)
        gist = await store.get("gists", "abc123")
    """

    def __init__(
        self,
        project_id: str,
        token_provider: TokenProvider | None = None,
        base_url: str | None = None,
        api_key: str = "",
        timeout: float | None = None,
        retry_count: int | None = None,
        poll_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._root = f"projects/{project_id}/databases/(default)/documents"
        self._token_provider = token_provider
        self._api_key = api_key
        self._retry_count = retry_count or settings.retry_count
        self._poll_seconds = poll_seconds if poll_seconds is not None else settings.snapshot_poll_seconds
        self._pollers: set[_Poller] = set()
        self._http = httpx.AsyncClient(
            base_url=(base_url or settings.firestore_url).rstrip("/"),
            timeout=timeout or settings.http_timeout,
            transport=transport,
        )

    async def create(self, collection: str, data: dict) -> str:
        resp = await self._request(
            "POST", f"/{self._root}/{collection}", json={"fields": encode_fields(data)}, idempotent=False
        )
        doc_id = resp.json()["name"].rsplit("/", 1)[-1]
        logger.debug("Created %s/%s", collection, doc_id)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> dict | None:
        try:
            resp = await self._request("GET", f"/{self._root}/{collection}/{doc_id}")
        except NotFoundError:
            return None
        return _decode(resp.json())

    async def run_query(self, query: Query) -> list[dict]:
        return [_decode(d) for d in await self._run_query_raw(query)]

    def subscribe(
        self,
        query: Query,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Disposer:
        poller = _Poller(query, on_snapshot, on_error)
        poller.task = asyncio.get_running_loop().create_task(self._poll(poller))
        self._pollers.add(poller)

        def dispose() -> None:
            poller.active = False
            self._pollers.discard(poller)
            if poller.task and not poller.task.done():
                poller.task.cancel()

        return dispose

    async def close(self) -> None:
        for poller in list(self._pollers):
            poller.active = False
            if poller.task:
                poller.task.cancel()
        self._pollers.clear()
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _run_query_raw(self, query: Query) -> list[dict]:
        resp = await self._request(
            "POST", f"/{self._root}:runQuery", json={"structuredQuery": build_structured_query(query)}
        )
        # Entries without a "document" key only carry readTime
        return [r["document"] for r in resp.json() if "document" in r]

    async def _poll(self, poller: _Poller) -> None:
        last: tuple | None = None
        while poller.active:
            try:
                docs = await self._run_query_raw(poller.query)
                snapshot = [_decode(d) for d in docs]
            except DocumentStoreError as e:
                logger.error("Snapshot listener on %s stopped: %s", poller.query.collection, e)
                if poller.active and poller.on_error:
                    poller.on_error(e)
                return

            fingerprint = tuple((d["name"], d.get("updateTime")) for d in docs)
            if poller.active and fingerprint != last:
                last = fingerprint
                try:
                    poller.on_snapshot(snapshot)
                except Exception:
                    logger.exception("Snapshot listener on %s failed", poller.query.collection)
            await asyncio.sleep(self._poll_seconds)

    async def _headers(self) -> dict:
        try:
            token = await self._token_provider() if self._token_provider else None
        except IdentityError as e:
            raise DocumentStoreError("store/unauthenticated", f"Could not obtain an ID token: {e}") from e
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(
        self, method: str, path: str, json: dict | None = None, idempotent: bool = True
    ) -> httpx.Response:
        params = {"key": self._api_key} if self._api_key else None
        headers = await self._headers()
        attempts = self._retry_count if idempotent else 1

        for attempt in range(attempts):
            try:
                resp = await self._http.request(method, path, json=json, params=params, headers=headers)
                break
            except httpx.TimeoutException as e:
                if attempt == attempts - 1:
                    raise DocumentStoreError("store/deadline-exceeded", "Request to Firestore timed out") from e
            except httpx.TransportError as e:
                if attempt == attempts - 1:
                    raise DocumentStoreError("store/unavailable", "Failed to connect to Firestore") from e
            # Exponential backoff with jitter: 0.5s, 1s, 2s base
            delay = (0.5 * (2 ** attempt)) + random.uniform(0, 0.25)
            logger.debug("Retry %d/%d after %.2fs", attempt + 1, attempts, delay)
            await asyncio.sleep(delay)

        if resp.status_code >= 400:
            raise error_from_response(resp)
        return resp
