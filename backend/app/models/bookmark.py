"""Bookmark ORM: one saved URL owned by exactly one user.

Invariants:
    - user_id is non-nullable; rows are only ever read or written scoped by it
    - created_at is assigned on insert and never updated
    - title is non-empty (resolved before insert)

Design Decisions:
    - Composite index (user_id, created_at): the only read path is "my bookmarks, newest first"
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Bookmark(Base):
    """Bookmark row; serialized for the change feed by to_row()."""
    __tablename__ = "bookmarks"
    __table_args__ = (
        Index("ix_bookmarks_user_id_created_at", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    user: Mapped["User"] = relationship("User", back_populates="bookmarks")

    def to_row(self) -> dict:
        """Wire shape shared by list_owned and change-feed payloads."""
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "title": self.title,
            "url": self.url,
            "created_at": self.created_at.isoformat(),
        }
