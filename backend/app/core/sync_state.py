"""Sync State: in-memory session state owned by the Synchronization View Model.

Invariants:
    - bookmarks is newest-first and unique by id
    - deleting only ever contains ids present in bookmarks
    - generation increases on every identity change and on teardown; async results
      captured under an older generation are stale and must be discarded
    - An absent identity always means an empty snapshot and loading == False

Design Decisions:
    - Dataclass with plain mutation methods: pure, deterministic, testable without mocks
    - to_view() returns an immutable SyncView so presentation can never mutate state
"""

from dataclasses import dataclass, field

from app.core.domain_types import (
    Bookmark, BookmarkId, ChangeEvent, ChangeKind, Identity, SyncView,
)
from app.core.reconcile import apply_event, dedupe_by_id


@dataclass
class SyncState:
    """Per-session view state: pure dataclass, no IO."""

    identity: Identity | None = None
    bookmarks: list[Bookmark] = field(default_factory=list)
    deleting: set[BookmarkId] = field(default_factory=set)
    loading: bool = False
    last_error: str | None = None
    generation: int = 0

    @property
    def bookmark_ids(self) -> set[BookmarkId]:
        return {b.id for b in self.bookmarks}

    def contains(self, bookmark_id: BookmarkId) -> bool:
        return any(b.id == bookmark_id for b in self.bookmarks)

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def reset_for_identity(self, identity: Identity | None) -> int:
        """Discard the snapshot for a new identity. Returns the new generation."""
        self.generation += 1
        self.identity = identity
        self.bookmarks = []
        self.deleting = set()
        self.loading = identity is not None
        self.last_error = None
        return self.generation

    def replace_all(self, bookmarks: list[Bookmark]) -> None:
        """Populate from the bulk query result."""
        self.bookmarks = dedupe_by_id(bookmarks)
        self.deleting &= self.bookmark_ids
        self.loading = False

    def apply(self, event: ChangeEvent) -> None:
        self.bookmarks = apply_event(self.bookmarks, event)
        if event.kind == ChangeKind.DELETE:
            self.deleting.discard(event.bookmark_id)

    def mark_deleting(self, bookmark_id: BookmarkId) -> None:
        self.deleting.add(bookmark_id)

    def clear_deleting(self, bookmark_id: BookmarkId) -> None:
        self.deleting.discard(bookmark_id)

    def to_view(self) -> SyncView:
        return SyncView(
            identity=self.identity,
            bookmarks=tuple(self.bookmarks),
            deleting=frozenset(self.deleting),
            loading=self.loading,
            error=self.last_error,
        )
