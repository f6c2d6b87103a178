"""Boundary Protocols: contracts between the sync core and the backend provider.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Record operations are scoped to the caller's identity by the provider, not the caller
    - insert/delete/update return nothing; the change feed is the only source of new rows

Design Decisions:
    - Protocol over ABC: structural subtyping, test doubles need no inheritance
    - Async for IO (identity lookup, record operations), sync for registry operations
      (subscribe, unsubscribe, listeners): registering a callback never suspends
    - Rows and change payloads typed as raw dicts: the provider speaks its own wire shape,
      the BookmarkStore adapter validates it before core sees it
"""

from collections.abc import Callable
from typing import Any, Protocol

from app.core.domain_types import BookmarkId, Identity, OwnerId, SubscriptionHandle

RawRow = dict[str, Any]
RawChange = dict[str, Any]
RawChangeCallback = Callable[[RawChange], None]
IdentityCallback = Callable[[Identity | None], None]


class IdentityProvider(Protocol):
    """Contract for identity operations, implemented by shell."""
    async def get_current_identity(self) -> Identity | None: ...
    def on_identity_change(self, callback: IdentityCallback) -> SubscriptionHandle: ...
    def release_identity_listener(self, handle: SubscriptionHandle) -> None: ...
    async def sign_in(
        self,
        email: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> Identity: ...
    async def sign_out(self) -> None: ...


class BookmarkBackend(Protocol):
    """Contract for owner-scoped bookmark records and their change feed."""
    async def list_owned(self, owner_id: OwnerId) -> list[RawRow]: ...
    async def insert(self, owner_id: OwnerId, title: str, url: str) -> None: ...
    async def delete_by_id(self, bookmark_id: BookmarkId) -> None: ...
    async def update(self, bookmark_id: BookmarkId, title: str) -> None: ...
    def subscribe(
        self, owner_id: OwnerId, on_event: RawChangeCallback,
    ) -> SubscriptionHandle: ...
    def unsubscribe(self, handle: SubscriptionHandle) -> None: ...


class CapabilityProvider(IdentityProvider, BookmarkBackend, Protocol):
    """Everything the view model needs from the hosted backend, as one handle."""
