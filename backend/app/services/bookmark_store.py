"""Bookmark Store Adapter: maps bookmark intents onto the capability provider.

Invariants:
    - Stateless: holds only the provider handle
    - Every raw row / change payload is validated before it reaches the view model
    - Malformed change payloads are logged and dropped, never forwarded
    - Provider errors (BackendError) propagate untouched

Design Decisions:
    - Pydantic schemas at the boundary (schemas/bookmark.py): the core only ever sees
      Bookmark and ChangeEvent values
    - A malformed bulk row is a provider fault, surfaced as BackendError; a malformed
      feed event is dropped because the next bulk read will converge anyway
"""

import logging
from collections.abc import Callable

from pydantic import ValidationError as PayloadValidationError

from app.core.capability_protocols import BookmarkBackend, RawChange
from app.core.domain_types import (
    Bookmark, BookmarkDraft, BookmarkId, ChangeEvent, Identity, SubscriptionHandle,
)
from app.core.errors import BackendError, ErrorContext
from app.schemas.bookmark import BookmarkRow, ChangePayload

logger = logging.getLogger(__name__)

ChangeEventCallback = Callable[[ChangeEvent], None]


def parse_change(raw: RawChange) -> ChangeEvent | None:
    """Validate a raw change payload; None when it is malformed."""
    try:
        return ChangePayload.model_validate(raw).to_event()
    except PayloadValidationError as e:
        logger.warning(
            "Dropping malformed change payload: %s", e.errors(include_url=False),
        )
        return None


class BookmarkStore:
    """Thin adapter between view-model intents and the BookmarkBackend contract."""

    def __init__(self, backend: BookmarkBackend):
        self.backend = backend

    async def list_owned(self, identity: Identity) -> list[Bookmark]:
        """Bulk read, newest first, as the provider ordered it."""
        rows = await self.backend.list_owned(identity.id)
        try:
            return [BookmarkRow.model_validate(row).to_domain() for row in rows]
        except PayloadValidationError as e:
            raise BackendError(
                "Provider returned a malformed bookmark row",
                ErrorContext(owner_id=identity.id, debug_info={"errors": e.errors()}),
            ) from e

    async def insert(self, identity: Identity, draft: BookmarkDraft) -> None:
        await self.backend.insert(identity.id, draft.title, draft.url)
        logger.info(
            "Bookmark insert accepted",
            extra={"owner_id": identity.id},
        )

    async def delete(self, bookmark_id: BookmarkId) -> None:
        await self.backend.delete_by_id(bookmark_id)
        logger.info("Bookmark delete accepted", extra={"bookmark_id": bookmark_id})

    async def rename(self, bookmark_id: BookmarkId, title: str) -> None:
        await self.backend.update(bookmark_id, title)

    def subscribe(
        self, identity: Identity, on_event: ChangeEventCallback,
    ) -> SubscriptionHandle:
        """Subscribe to the owner's change feed, forwarding only valid events."""
        def _forward(raw: RawChange) -> None:
            event = parse_change(raw)
            if event is not None:
                on_event(event)

        return self.backend.subscribe(identity.id, _forward)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self.backend.unsubscribe(handle)
