"""SQL Capability Provider: the hosted-backend contract on async SQLAlchemy + the change feed.

Invariants:
    - Bound to one access token; identity is whatever that token resolves to right now
    - Every record operation re-resolves the caller and scopes rows by caller id;
      the caller-supplied owner id is checked, never trusted
    - Mutations are published to the change feed only after commit, in commit order
    - Deleting or updating zero rows fails with BackendError("Bookmark not found")
    - subscribe() only accepts the owner id last resolved for this token

Design Decisions:
    - One short-lived AsyncSession per call (db_manager.session()): the provider outlives
      requests (SSE streams), so it never holds a request-scoped session
    - Change payloads use the hosted feed's wire shape {"eventType", "new", "old"}; the
      adapter validates them, this module never builds domain events
    - sign_in trusts the caller-supplied profile: OAuth flow internals are out of scope
"""

import logging
import secrets
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select

from app.core.capability_protocols import IdentityCallback, RawChangeCallback, RawRow
from app.core.domain_types import BookmarkId, Identity, OwnerId, SubscriptionHandle
from app.core.errors import BackendError, ErrorContext
from app.infrastructure.change_feed import ChangeFeedBroker
from app.infrastructure.database import DatabaseSessionManager
from app.models.auth_token import AuthToken
from app.models.bookmark import Bookmark
from app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(days=14)


def _to_identity(user: User) -> Identity:
    return Identity(
        id=OwnerId(str(user.id)),
        email=user.email,
        avatar_url=user.avatar_url,
        display_name=user.display_name,
    )


def _parse_id(bookmark_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(bookmark_id))
    except ValueError:
        raise BackendError(
            "Bookmark not found", ErrorContext(bookmark_id=str(bookmark_id)),
            http_status=404,
        )


class SqlCapabilityProvider:
    """Identity + owner-scoped bookmark records + change feed, for one access token."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        feed: ChangeFeedBroker,
        token: str | None = None,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
    ):
        self.db = db
        self.feed = feed
        self.token = token
        self.token_ttl = token_ttl
        self._caller_id: OwnerId | None = None
        self._listeners: dict[SubscriptionHandle, IdentityCallback] = {}
        self._token_listener: SubscriptionHandle | None = None

    # ─── Identity ────────────────────────────────────────────────

    async def get_current_identity(self) -> Identity | None:
        if not self.token:
            return None
        async with self.db.session() as session:
            user = await self._user_for_token(session)
        self._caller_id = OwnerId(str(user.id)) if user else None
        return _to_identity(user) if user else None

    async def sign_in(
        self,
        email: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> Identity:
        """Upsert the user, issue a fresh token and rebind this provider to it."""
        async with self.db.session() as session:
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(email=email, display_name=display_name, avatar_url=avatar_url)
                session.add(user)
            else:
                user.display_name = display_name or user.display_name
                user.avatar_url = avatar_url or user.avatar_url
            await session.flush()
            token = secrets.token_urlsafe(32)
            session.add(AuthToken(
                token=token, user_id=user.id,
                expires_at=datetime.now(timezone.utc) + self.token_ttl,
            ))
            await session.commit()
            identity = _to_identity(user)

        self._unbind_token_listener()
        self.token = token
        self._caller_id = identity.id
        self._bind_token_listener()
        logger.info("User signed in", extra={"owner_id": identity.id})
        self._fan_out(identity)
        return identity

    async def sign_out(self) -> None:
        """Revoke the token and tell every listener bound to it."""
        token = self.token
        if not token:
            return
        async with self.db.session() as session:
            await session.execute(delete(AuthToken).where(AuthToken.token == token))
            await session.commit()
        logger.info("User signed out", extra={"owner_id": self._caller_id})
        self.feed.publish_identity(token, None)
        self._unbind_token_listener()
        self.token = None
        self._caller_id = None

    def on_identity_change(self, callback: IdentityCallback) -> SubscriptionHandle:
        handle = SubscriptionHandle(f"listener:{uuid.uuid4().hex}")
        self._listeners[handle] = callback
        self._bind_token_listener()
        return handle

    def release_identity_listener(self, handle: SubscriptionHandle) -> None:
        self._listeners.pop(handle, None)
        if not self._listeners:
            self._unbind_token_listener()

    # ─── Records ─────────────────────────────────────────────────

    async def list_owned(self, owner_id: OwnerId) -> list[RawRow]:
        async with self.db.session() as session:
            caller = await self._require_caller(session, owner_id)
            result = await session.execute(
                select(Bookmark)
                .where(Bookmark.user_id == caller.id)
                .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
            )
            return [b.to_row() for b in result.scalars().all()]

    async def insert(self, owner_id: OwnerId, title: str, url: str) -> None:
        async with self.db.session() as session:
            caller = await self._require_caller(session, owner_id)
            bookmark = Bookmark(user_id=caller.id, title=title, url=url)
            session.add(bookmark)
            await session.commit()
            row = bookmark.to_row()
        self._publish(OwnerId(row["user_id"]), "INSERT", new=row)

    async def delete_by_id(self, bookmark_id: BookmarkId) -> None:
        bid = _parse_id(bookmark_id)
        async with self.db.session() as session:
            caller = await self._require_caller(session)
            result = await session.execute(
                delete(Bookmark)
                .where(Bookmark.id == bid)
                .where(Bookmark.user_id == caller.id)
            )
            await session.commit()
            deleted = result.rowcount
            owner = OwnerId(str(caller.id))
        if deleted == 0:
            raise BackendError(
                "Bookmark not found",
                ErrorContext(owner_id=owner, bookmark_id=str(bid)), http_status=404,
            )
        self._publish(owner, "DELETE", old={"id": str(bid)})

    async def update(self, bookmark_id: BookmarkId, title: str) -> None:
        bid = _parse_id(bookmark_id)
        async with self.db.session() as session:
            caller = await self._require_caller(session)
            result = await session.execute(
                select(Bookmark)
                .where(Bookmark.id == bid)
                .where(Bookmark.user_id == caller.id)
            )
            bookmark = result.scalar_one_or_none()
            if bookmark is None:
                raise BackendError(
                    "Bookmark not found", ErrorContext(bookmark_id=str(bid)),
                    http_status=404,
                )
            bookmark.title = title
            await session.commit()
            row = bookmark.to_row()
        self._publish(OwnerId(row["user_id"]), "UPDATE", new=row)

    # ─── Change feed ─────────────────────────────────────────────

    def subscribe(
        self, owner_id: OwnerId, on_event: RawChangeCallback,
    ) -> SubscriptionHandle:
        if self._caller_id is None or self._caller_id != owner_id:
            raise BackendError(
                "Not authorized to subscribe to these bookmarks",
                ErrorContext(owner_id=owner_id), http_status=403,
            )
        return self.feed.subscribe(owner_id, on_event)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self.feed.unsubscribe(handle)

    # ─── Helpers ─────────────────────────────────────────────────

    async def _user_for_token(self, session) -> User | None:
        result = await session.execute(
            select(User)
            .join(AuthToken, AuthToken.user_id == User.id)
            .where(AuthToken.token == self.token)
            .where(AuthToken.expires_at > datetime.now(timezone.utc))
        )
        return result.scalar_one_or_none()

    async def _require_caller(self, session, owner_id: OwnerId | None = None) -> User:
        user = await self._user_for_token(session) if self.token else None
        if user is None:
            raise BackendError("Not authenticated", http_status=401)
        self._caller_id = OwnerId(str(user.id))
        if owner_id is not None and str(owner_id) != self._caller_id:
            raise BackendError(
                "Not authorized to access these bookmarks",
                ErrorContext(owner_id=str(owner_id)), http_status=403,
            )
        return user

    def _publish(self, owner_id: OwnerId, event_type: str, new=None, old=None) -> None:
        delivered = self.feed.publish(
            owner_id, {"eventType": event_type, "new": new or {}, "old": old or {}},
        )
        logger.debug("Published change to %d subscriber(s)", delivered,
            extra={"owner_id": owner_id, "event_kind": event_type})

    def _bind_token_listener(self) -> None:
        if self._token_listener is None and self.token and self._listeners:
            self._token_listener = self.feed.subscribe_identity(self.token, self._on_token_event)

    def _unbind_token_listener(self) -> None:
        if self._token_listener is not None:
            self.feed.unsubscribe_identity(self._token_listener)
            self._token_listener = None

    def _on_token_event(self, identity: Identity | None) -> None:
        if identity is None:
            self._caller_id = None
        self._fan_out(identity)

    def _fan_out(self, identity: Identity | None) -> None:
        listeners: list[Callable] = list(self._listeners.values())
        for callback in listeners:
            callback(identity)
