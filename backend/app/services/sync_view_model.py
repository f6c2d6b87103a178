"""Synchronization View Model: live, owner-scoped bookmark snapshot for one session.

Invariants:
    - Snapshot is built from one bulk read, then kept current by change-feed events
    - The feed subscription is opened only after the bulk read resolves
    - At most one feed subscription is active; it is released on identity change and teardown
    - Results and events captured under an older generation are discarded (stale guard)
    - Mutation intents never touch the snapshot; only feed events do
    - remove() marks the id "deleting" until the DELETE event arrives or the call fails
    - No error is fatal: backend failures are recorded as a transient error, view stays usable

Design Decisions:
    - open_session() as async context manager: subscription and identity listener are
      released exactly once, however the session ends (ADR: structured lifetime)
    - Identity listener is synchronous: it resets state immediately (bumping the generation)
      and schedules the reload as a task, so late results of the old identity are stale
    - Successful delete waits for the feed echo instead of removing locally: a single
      removal code path, no vanish-then-reappear on failure
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager, suppress

from app.core.bookmark_input import build_draft
from app.core.capability_protocols import CapabilityProvider
from app.core.domain_types import (
    Bookmark, BookmarkId, ChangeEvent, Identity, SubscriptionHandle, SyncView,
)
from app.core.errors import (
    BackendError, ErrorContext, ResourceNotFoundError, UnauthenticatedError,
)
from app.core.sync_state import SyncState
from app.services.bookmark_store import BookmarkStore

logger = logging.getLogger(__name__)

ViewCallback = Callable[[SyncView], None]


class SyncViewModel:
    """Owns the in-memory snapshot for the lifetime of an open session."""

    def __init__(
        self,
        provider: CapabilityProvider,
        on_change: ViewCallback | None = None,
    ):
        self.provider = provider
        self.store = BookmarkStore(provider)
        self.state = SyncState()
        self._on_change = on_change
        self._subscription: SubscriptionHandle | None = None
        self._identity_listener: SubscriptionHandle | None = None
        self._reload_task: asyncio.Task | None = None
        self._closed = False

    # ─── Read side ───────────────────────────────────────────────

    def view(self) -> SyncView:
        return self.state.to_view()

    @property
    def snapshot(self) -> tuple[Bookmark, ...]:
        return tuple(self.state.bookmarks)

    def is_deleting(self, bookmark_id: BookmarkId) -> bool:
        return bookmark_id in self.state.deleting

    # ─── Lifecycle ───────────────────────────────────────────────

    @asynccontextmanager
    async def open_session(self) -> AsyncIterator["SyncViewModel"]:
        """Listen for identity changes, initialize, and always tear down on exit."""
        self._identity_listener = self.provider.on_identity_change(
            self._handle_identity_change,
        )
        try:
            await self.start()
            yield self
        finally:
            await self.close()

    async def start(self) -> None:
        """Resolve identity, bulk-load, then subscribe."""
        generation = self.state.generation
        try:
            identity = await self.provider.get_current_identity()
        except BackendError as e:
            if not self.state.is_current(generation):
                return
            logger.warning("Identity lookup failed: %s", e.message,
                extra={"error_code": e.code})
            self._reset(None)
            self.state.last_error = e.message
            self._notify()
            return
        if not self.state.is_current(generation):
            return
        generation = self._reset(identity)
        self._notify()
        await self._populate(identity, generation)

    async def close(self) -> None:
        """Release subscription and identity listener; safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.state.reset_for_identity(None)
        self._release_subscription()
        if self._identity_listener is not None:
            self.provider.release_identity_listener(self._identity_listener)
            self._identity_listener = None
        await self._cancel_reload()
        logger.info("Sync session closed", extra={"generation": self.state.generation})

    # ─── Intents ─────────────────────────────────────────────────

    async def add(self, url: str, title: str | None = None) -> None:
        """Validate and insert; the row appears when the INSERT event arrives."""
        draft = build_draft(url, title)
        identity = self.state.identity
        if identity is None:
            raise UnauthenticatedError(
                "You must be logged in to add bookmarks",
            )
        generation = self.state.generation
        try:
            await self.store.insert(identity, draft)
        except BackendError as e:
            self._record_error(e, generation)
            raise

    async def remove(self, bookmark_id: BookmarkId) -> None:
        """Delete by id; the entry stays, flagged deleting, until the DELETE event."""
        if not self.state.contains(bookmark_id):
            raise ResourceNotFoundError(
                "Bookmark", bookmark_id, ErrorContext(bookmark_id=bookmark_id),
            )
        if bookmark_id in self.state.deleting:
            logger.debug("Delete already in flight", extra={"bookmark_id": bookmark_id})
            return

        generation = self.state.generation
        self.state.mark_deleting(bookmark_id)
        self._notify()
        try:
            await self.store.delete(bookmark_id)
        except BackendError as e:
            if self.state.is_current(generation):
                self.state.clear_deleting(bookmark_id)
            self._record_error(e, generation)
            raise

    async def revalidate_identity(self) -> None:
        """Re-resolve identity; expiry or revocation surfaces as an identity change."""
        if self._closed:
            return
        generation = self.state.generation
        try:
            identity = await self.provider.get_current_identity()
        except BackendError as e:
            logger.warning("Identity revalidation failed: %s", e.message,
                extra={"error_code": e.code})
            return
        if self.state.is_current(generation):
            self._handle_identity_change(identity)

    def dismiss_error(self) -> None:
        if self.state.last_error is not None:
            self.state.last_error = None
            self._notify()

    # ─── Internals ───────────────────────────────────────────────

    def _reset(self, identity: Identity | None) -> int:
        self._release_subscription()
        return self.state.reset_for_identity(identity)

    async def _populate(self, identity: Identity | None, generation: int) -> None:
        """Bulk read then subscribe, abandoning work once the generation moves on."""
        if identity is None:
            logger.info("No identity; session is unauthenticated")
            return

        try:
            bookmarks = await self.store.list_owned(identity)
        except BackendError as e:
            if not self.state.is_current(generation):
                return
            logger.warning("Initial bookmark fetch failed: %s", e.message,
                extra={"owner_id": identity.id, "error_code": e.code})
            self.state.last_error = e.message
            bookmarks = []

        if not self.state.is_current(generation):
            logger.info("Discarding stale bulk result",
                extra={"owner_id": identity.id, "generation": generation})
            return
        self.state.replace_all(bookmarks)

        def on_event(event: ChangeEvent) -> None:
            self._handle_event(event, generation)

        try:
            self._subscription = self.store.subscribe(identity, on_event)
        except BackendError as e:
            logger.warning("Change feed subscription failed: %s", e.message,
                extra={"owner_id": identity.id, "error_code": e.code})
            self.state.last_error = e.message
        self._notify()

    def _handle_event(self, event: ChangeEvent, generation: int) -> None:
        if self._closed or not self.state.is_current(generation):
            logger.debug("Ignoring event from released subscription",
                extra={"event_kind": event.kind.value, "bookmark_id": event.bookmark_id})
            return
        self.state.apply(event)
        logger.debug("Applied change event",
            extra={"event_kind": event.kind.value, "bookmark_id": event.bookmark_id})
        self._notify()

    def _handle_identity_change(self, identity: Identity | None) -> None:
        if self._closed:
            return
        current = self.state.identity
        if current is not None and identity is not None and current.id == identity.id:
            # Same principal (e.g. token refresh): keep snapshot and subscription.
            if identity != current:
                self.state.identity = identity
                self._notify()
            return
        if current is None and identity is None:
            return

        logger.info("Identity changed; rebuilding session",
            extra={"owner_id": identity.id if identity else None})
        self._cancel_reload_nowait()
        generation = self._reset(identity)
        self._notify()
        if identity is not None:
            self._reload_task = asyncio.create_task(
                self._populate(identity, generation),
            )

    def _release_subscription(self) -> None:
        if self._subscription is not None:
            self.store.unsubscribe(self._subscription)
            self._subscription = None

    def _cancel_reload_nowait(self) -> None:
        if self._reload_task is not None and not self._reload_task.done():
            self._reload_task.cancel()

    async def _cancel_reload(self) -> None:
        task, self._reload_task = self._reload_task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    def _record_error(self, error: BackendError, generation: int) -> None:
        logger.warning("Bookmark mutation failed: %s", error.message,
            extra={"error_code": error.code})
        if self.state.is_current(generation):
            self.state.last_error = error.message
            self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state.to_view())
