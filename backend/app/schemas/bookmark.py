"""Bookmark Schemas: Pydantic models for provider payloads and API boundaries.

Invariants:
    - BookmarkRow and ChangePayload validate every raw dict the provider emits
    - ChangePayload.to_event() is the only way a raw change becomes a ChangeEvent
    - INSERT/UPDATE payloads must carry a full row in `new`; DELETE must carry `old.id`

Design Decisions:
    - Field aliases mirror the hosted change-feed wire shape (eventType/new/old)
    - extra="ignore": providers may add columns without breaking the adapter
    - BookmarkCreate/BookmarkUpdate accept loose strings; URL and title rules live in
      core/bookmark_input.py so the view model and the routes share one validator
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.domain_types import (
    Bookmark, BookmarkId, ChangeEvent, ChangeKind, OwnerId,
)
from app.core.format_bookmark import format_relative_age


class BookmarkRow(BaseModel):
    """One bookmark row as returned by the provider."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    created_at: datetime

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    def to_domain(self) -> Bookmark:
        return Bookmark(
            id=BookmarkId(self.id),
            owner_id=OwnerId(self.user_id),
            title=self.title,
            url=self.url,
            created_at=self.created_at,
        )


class DeletedRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        return str(v) if v is not None else v


class ChangePayload(BaseModel):
    """Raw change-feed notification: {"eventType", "new", "old"}."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    event_type: Literal["INSERT", "UPDATE", "DELETE"] = Field(alias="eventType")
    new: BookmarkRow | None = None
    old: DeletedRow | None = None

    @field_validator("new", "old", mode="before")
    @classmethod
    def empty_as_none(cls, v: Any) -> Any:
        return v or None

    @model_validator(mode="after")
    def check_record_present(self) -> "ChangePayload":
        if self.event_type == "DELETE" and self.old is None:
            raise ValueError("DELETE payload requires old.id")
        if self.event_type != "DELETE" and self.new is None:
            raise ValueError(f"{self.event_type} payload requires new row")
        return self

    def to_event(self) -> ChangeEvent:
        kind = ChangeKind(self.event_type)
        if kind == ChangeKind.DELETE:
            return ChangeEvent.deleted(BookmarkId(self.old.id))
        bookmark = self.new.to_domain()
        if kind == ChangeKind.INSERT:
            return ChangeEvent.inserted(bookmark)
        return ChangeEvent.updated(bookmark)


# ─── API Schemas ────────────────────────────────────────────────

class BookmarkCreate(BaseModel):
    """Add intent from a form: url required, title optional."""
    url: str = Field(max_length=4000)
    title: str | None = Field(None, max_length=4000)


class BookmarkUpdate(BaseModel):
    title: str = Field(max_length=4000)


class BookmarkResponse(BaseModel):
    """Public-facing bookmark, with presentation extras."""
    id: str
    title: str
    url: str
    created_at: datetime
    age: str
    deleting: bool = False

    @classmethod
    def from_domain(
        cls, bookmark: Bookmark, deleting: bool = False,
        now: datetime | None = None,
    ) -> "BookmarkResponse":
        return cls(
            id=bookmark.id,
            title=bookmark.title,
            url=bookmark.url,
            created_at=bookmark.created_at,
            age=format_relative_age(bookmark.created_at, now),
            deleting=deleting,
        )
