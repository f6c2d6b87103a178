"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - BookmarkId, OwnerId wrap strings; never compare a bookmark id with an owner id
    - Bookmark and Identity are frozen; a changed row is a new value
    - ChangeEvent carries a Bookmark for INSERT/UPDATE and only an id for DELETE

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: SSE payloads are JSON)
    - ChangeEvent as tagged variant: core never inspects raw provider dicts
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

BookmarkId = NewType("BookmarkId", str)
OwnerId = NewType("OwnerId", str)
SubscriptionHandle = NewType("SubscriptionHandle", str)


# ─── Enums ───────────────────────────────────────────────────────

class ChangeKind(str, Enum):
    """Change-feed event kinds, named as the feed reports them."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class Identity:
    """The signed-in principal all bookmark operations are scoped to."""
    id: OwnerId
    email: str | None = None
    avatar_url: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class Bookmark:
    id: BookmarkId
    owner_id: OwnerId
    title: str
    url: str
    created_at: datetime


@dataclass(frozen=True)
class BookmarkDraft:
    """Validated insert payload: url stripped, title resolved."""
    url: str
    title: str


@dataclass(frozen=True)
class ChangeEvent:
    """One change-feed notification, already validated at the adapter boundary."""
    kind: ChangeKind
    bookmark_id: BookmarkId
    bookmark: Bookmark | None = None

    @classmethod
    def inserted(cls, bookmark: Bookmark) -> "ChangeEvent":
        return cls(ChangeKind.INSERT, bookmark.id, bookmark)

    @classmethod
    def updated(cls, bookmark: Bookmark) -> "ChangeEvent":
        return cls(ChangeKind.UPDATE, bookmark.id, bookmark)

    @classmethod
    def deleted(cls, bookmark_id: BookmarkId) -> "ChangeEvent":
        return cls(ChangeKind.DELETE, bookmark_id)


@dataclass(frozen=True)
class SyncView:
    """Read-only projection of the view model handed to presentation."""
    identity: Identity | None
    bookmarks: tuple[Bookmark, ...]
    deleting: frozenset[BookmarkId]
    loading: bool
    error: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.identity is not None
