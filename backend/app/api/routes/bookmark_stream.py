"""Bookmark Live View: SSE stream of the caller's synchronized bookmark snapshot.

Invariants:
    - One SyncViewModel session per connection; its feed subscription is released on
      disconnect, sign-out, or server shutdown
    - Registered before bookmarks.router so /stream is never read as a bookmark id

Design Decisions:
    - StreamingResponse for SSE: event_generator yields formatted SSE lines
"""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.api.dependencies import get_provider
from app.api.routes.bookmark_stream_helpers import live_view_events
from app.config import get_settings
from app.infrastructure.sql_provider import SqlCapabilityProvider

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bookmarks", tags=["bookmarks"])

# SSE headers prevent proxy/browser buffering of streamed events.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


@router.get("/stream")
async def stream_bookmarks(
    provider: SqlCapabilityProvider = Depends(get_provider),
):
    """SSE stream: snapshot frames after every reconciliation."""
    settings = get_settings()

    async def event_generator():
        try:
            async for line in live_view_events(
                provider, settings.stream_keepalive_seconds,
                session_key=provider.token,
            ):
                yield line
        except asyncio.CancelledError:
            logger.info("Client disconnected from live view")
            return

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )
