"""In-memory CapabilityProvider for view-model tests.

Records every call, fails on demand, and lets tests push raw change payloads
(or have mutations echo back through the feed like the real backend does).
"""

import asyncio
from datetime import datetime, timedelta, timezone

from app.core.domain_types import Identity, OwnerId, SubscriptionHandle
from app.core.errors import BackendError

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

ADA = Identity(id=OwnerId("ada"), email="ada@example.com", display_name="Ada")
GRACE = Identity(id=OwnerId("grace"), email="grace@example.com", display_name="Grace")


def row(bid: str, owner: str = "ada", minutes: int = 0, title: str | None = None) -> dict:
    return {
        "id": bid,
        "user_id": owner,
        "title": title or bid,
        "url": f"https://{bid}.example.com",
        "created_at": (T0 + timedelta(minutes=minutes)).isoformat(),
    }


def insert_payload(new: dict) -> dict:
    return {"eventType": "INSERT", "new": new, "old": {}}


def update_payload(new: dict) -> dict:
    return {"eventType": "UPDATE", "new": new, "old": {}}


def delete_payload(bid: str) -> dict:
    return {"eventType": "DELETE", "new": {}, "old": {"id": bid}}


class FakeProvider:
    """Controllable stand-in for the hosted backend."""

    def __init__(self, identity: Identity | None = None, rows: list[dict] | None = None):
        self.identity = identity
        self.rows: list[dict] = list(rows or [])
        self.calls: list[tuple] = []
        self.failures: dict[str, BackendError] = {}
        self.echo = False
        self.list_gate: asyncio.Event | None = None
        self.delete_gate: asyncio.Event | None = None
        self.list_started = asyncio.Event()
        self.subscribers: dict[SubscriptionHandle, tuple] = {}
        self.identity_listeners: dict[SubscriptionHandle, object] = {}
        self._counter = 0

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def fail(self, operation: str, message: str) -> None:
        self.failures[operation] = BackendError(message)

    def _handle(self, prefix: str) -> SubscriptionHandle:
        self._counter += 1
        return SubscriptionHandle(f"{prefix}-{self._counter}")

    def _maybe_fail(self, operation: str) -> None:
        error = self.failures.get(operation)
        if error is not None:
            raise error

    # ─── Identity ────────────────────────────────────────────────

    async def get_current_identity(self):
        self.calls.append(("get_current_identity",))
        self._maybe_fail("get_current_identity")
        return self.identity

    async def sign_in(self, email, display_name=None, avatar_url=None):
        identity = Identity(
            id=OwnerId(email.split("@")[0]), email=email,
            display_name=display_name, avatar_url=avatar_url,
        )
        self.set_identity(identity)
        return identity

    async def sign_out(self):
        self.set_identity(None)

    def set_identity(self, identity: Identity | None) -> None:
        self.identity = identity
        for callback in list(self.identity_listeners.values()):
            callback(identity)

    def on_identity_change(self, callback):
        handle = self._handle("identity")
        self.identity_listeners[handle] = callback
        return handle

    def release_identity_listener(self, handle):
        self.identity_listeners.pop(handle, None)

    # ─── Records ─────────────────────────────────────────────────

    async def list_owned(self, owner_id):
        self.calls.append(("list_owned", owner_id))
        self.list_started.set()
        if self.list_gate is not None:
            await self.list_gate.wait()
        self._maybe_fail("list_owned")
        return [r for r in self.rows if r["user_id"] == owner_id]

    async def insert(self, owner_id, title, url):
        self.calls.append(("insert", owner_id, title, url))
        self._maybe_fail("insert")
        self._counter += 1
        new = {**row(f"new-{self._counter}", owner_id, minutes=60), "title": title, "url": url}
        self.rows.insert(0, new)
        if self.echo:
            self.emit(owner_id, insert_payload(new))

    async def delete_by_id(self, bookmark_id):
        self.calls.append(("delete_by_id", bookmark_id))
        if self.delete_gate is not None:
            await self.delete_gate.wait()
        self._maybe_fail("delete_by_id")
        owner = next(r["user_id"] for r in self.rows if r["id"] == bookmark_id)
        self.rows = [r for r in self.rows if r["id"] != bookmark_id]
        if self.echo:
            self.emit(owner, delete_payload(bookmark_id))

    async def update(self, bookmark_id, title):
        self.calls.append(("update", bookmark_id, title))
        self._maybe_fail("update")
        for r in self.rows:
            if r["id"] == bookmark_id:
                r["title"] = title
                if self.echo:
                    self.emit(r["user_id"], update_payload(dict(r)))

    # ─── Change feed ─────────────────────────────────────────────

    def subscribe(self, owner_id, on_event):
        self.calls.append(("subscribe", owner_id))
        self._maybe_fail("subscribe")
        handle = self._handle("bookmarks")
        self.subscribers[handle] = (owner_id, on_event)
        return handle

    def unsubscribe(self, handle):
        self.calls.append(("unsubscribe", handle))
        self.subscribers.pop(handle, None)

    def emit(self, owner_id, payload: dict) -> None:
        for owner, callback in list(self.subscribers.values()):
            if owner == owner_id:
                callback(payload)
