"""User ORM: the identity every bookmark and access token belongs to.

Invariants:
    - email is unique and stored lowercased
    - deleting a user cascades to its bookmarks and tokens
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class User(Base):
    """Signed-in principal; one row per email."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    bookmarks: Mapped[list["Bookmark"]] = relationship(
        "Bookmark", back_populates="user",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    tokens: Mapped[list["AuthToken"]] = relationship(
        "AuthToken", back_populates="user",
        cascade="all, delete-orphan", passive_deletes=True,
    )
