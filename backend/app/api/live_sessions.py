"""Live Sessions: registry of open live-view models, keyed by access token.

Invariants:
    - A view model is registered only while its SSE stream is open
    - Mutation routes act through the caller's newest live view model, so remove()
      raises the "deleting" flag the stream renders and repeat deletes collapse
    - Without an open stream, intents run on a short-lived view model session that is
      torn down before the response returns

Design Decisions:
    - _live_sessions as module-level dict: in-memory per-session state, single worker
      (same constraint as the in-process change feed)
    - A list per token: one user may hold several tabs open; the newest stream wins
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from app.core.capability_protocols import CapabilityProvider
from app.services.sync_view_model import SyncViewModel

logger = logging.getLogger(__name__)

_live_sessions: dict[str, list[SyncViewModel]] = {}


def register(token: str | None, view_model: SyncViewModel) -> None:
    if token:
        _live_sessions.setdefault(token, []).append(view_model)


def unregister(token: str | None, view_model: SyncViewModel) -> None:
    sessions = _live_sessions.get(token) if token else None
    if not sessions:
        return
    if view_model in sessions:
        sessions.remove(view_model)
    if not sessions:
        del _live_sessions[token]


def live_session(token: str | None) -> SyncViewModel | None:
    sessions = _live_sessions.get(token) if token else None
    return sessions[-1] if sessions else None


@asynccontextmanager
async def intent_session(
    provider: CapabilityProvider, token: str | None,
) -> AsyncIterator[SyncViewModel]:
    """The caller's live view model, or a short-lived one when no stream is open."""
    live = live_session(token)
    if live is not None:
        yield live
        return
    logger.debug("No live session; running intent on a short-lived view model")
    async with SyncViewModel(provider).open_session() as view_model:
        yield view_model
