"""Live View Helpers: SSE framing and the per-connection view-model loop.

Invariants:
    - Every connection owns one SyncViewModel session, released when the generator ends
    - The first frame is always a snapshot; an unauthenticated snapshot is followed by done
    - Frames coalesce: a slow client skips intermediate views and gets the newest one
    - Idle connections get a keep-alive comment every keepalive_seconds, after the
      identity is re-resolved
    - The view model is registered in live_sessions for the lifetime of the stream

Design Decisions:
    - LatestView mailbox over asyncio.Queue: presentation only ever needs the newest
      snapshot, so memory stays bounded no matter how fast the feed is
    - Extracted from bookmark_stream.py so it can be driven without an HTTP client
"""

import asyncio
import json
from collections.abc import AsyncIterator
from datetime import datetime

from app.api import live_sessions
from app.core.capability_protocols import CapabilityProvider
from app.core.domain_types import SyncView
from app.schemas.auth import IdentityResponse
from app.schemas.bookmark import BookmarkResponse
from app.services.sync_view_model import SyncViewModel

KEEPALIVE_LINE = ": keep-alive\n\n"


class LatestView:
    """Single-slot mailbox holding the newest SyncView."""

    def __init__(self):
        self._view: SyncView | None = None
        self._ready = asyncio.Event()

    def put(self, view: SyncView) -> None:
        self._view = view
        self._ready.set()

    async def get(self, timeout: float | None = None) -> SyncView | None:
        """Newest view, or None when nothing arrived within timeout."""
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except asyncio.TimeoutError:
            return None
        self._ready.clear()
        return self._view


def snapshot_event(view: SyncView, now: datetime | None = None) -> dict:
    return {
        "type": "snapshot",
        "data": {
            "identity": (
                IdentityResponse.from_domain(view.identity).model_dump()
                if view.identity else None
            ),
            "loading": view.loading,
            "error": view.error,
            "bookmarks": [
                BookmarkResponse.from_domain(
                    b, deleting=b.id in view.deleting, now=now,
                ).model_dump(mode="json")
                for b in view.bookmarks
            ],
        },
    }


def done_event(reason: str) -> dict:
    return {"type": "done", "data": {"reason": reason}}


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


async def live_view_events(
    provider: CapabilityProvider,
    keepalive_seconds: float,
    session_key: str | None = None,
) -> AsyncIterator[str]:
    """Open a view-model session and yield SSE lines until the identity goes away.

    While open, the view model is registered under session_key so mutation routes
    act through it. Each idle keep-alive tick re-resolves the identity, so an
    expired or revoked token ends the stream.
    """
    mailbox = LatestView()
    view_model = SyncViewModel(provider, on_change=mailbox.put)
    async with view_model.open_session():
        live_sessions.register(session_key, view_model)
        try:
            mailbox.put(view_model.view())
            while True:
                view = await mailbox.get(keepalive_seconds)
                if view is None:
                    await view_model.revalidate_identity()
                    yield KEEPALIVE_LINE
                    continue
                yield sse_line(snapshot_event(view))
                if not view.authenticated:
                    yield sse_line(done_event("unauthenticated"))
                    return
        finally:
            live_sessions.unregister(session_key, view_model)
