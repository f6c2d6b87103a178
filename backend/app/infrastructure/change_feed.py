"""Change Feed Broker: in-process pub/sub for row changes and identity changes.

Invariants:
    - Row subscriptions are scoped to one owner id; a subscriber never sees another
      owner's rows
    - Identity subscriptions are scoped to one access token
    - Delivery is synchronous and in publish order (publish is called after commit,
      so order == commit order within this process)
    - A failing subscriber is logged and never breaks the publisher or other subscribers
    - unsubscribe() is idempotent

Design Decisions:
    - Plain dicts keyed by handle, no asyncio.Queue: delivery order is trivially preserved
      and subscribers that need to hop to another task do so themselves
    - Single process only (ADR: one uvicorn worker); a multi-worker deployment would
      replace this with LISTEN/NOTIFY behind the same subscribe/publish surface
"""

import logging
import uuid
from collections.abc import Callable
from typing import Any

from app.core.domain_types import Identity, OwnerId, SubscriptionHandle

logger = logging.getLogger(__name__)

RowCallback = Callable[[dict[str, Any]], None]
IdentityCallback = Callable[[Identity | None], None]


class ChangeFeedBroker:
    """Routes committed bookmark changes to the owner's live subscribers."""

    def __init__(self):
        self._rows: dict[SubscriptionHandle, tuple[OwnerId, RowCallback]] = {}
        self._identities: dict[SubscriptionHandle, tuple[str, IdentityCallback]] = {}

    @property
    def active_subscriptions(self) -> int:
        return len(self._rows)

    @property
    def active_identity_listeners(self) -> int:
        return len(self._identities)

    def subscribe(self, owner_id: OwnerId, callback: RowCallback) -> SubscriptionHandle:
        handle = SubscriptionHandle(f"bookmarks:{uuid.uuid4().hex}")
        self._rows[handle] = (owner_id, callback)
        logger.debug("Feed subscribed", extra={"owner_id": owner_id, "subscription": handle})
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        if self._rows.pop(handle, None) is not None:
            logger.debug("Feed unsubscribed", extra={"subscription": handle})

    def publish(self, owner_id: OwnerId, payload: dict[str, Any]) -> int:
        """Deliver payload to every subscriber of owner_id. Returns delivery count."""
        delivered = 0
        for handle, (owner, callback) in list(self._rows.items()):
            if owner != owner_id or handle not in self._rows:
                continue
            try:
                callback(payload)
                delivered += 1
            except Exception:
                logger.exception("Feed subscriber failed",
                    extra={"owner_id": owner_id, "subscription": handle,
                           "event_kind": payload.get("eventType")})
        return delivered

    def subscribe_identity(
        self, token: str, callback: IdentityCallback,
    ) -> SubscriptionHandle:
        handle = SubscriptionHandle(f"identity:{uuid.uuid4().hex}")
        self._identities[handle] = (token, callback)
        return handle

    def unsubscribe_identity(self, handle: SubscriptionHandle) -> None:
        self._identities.pop(handle, None)

    def publish_identity(self, token: str, identity: Identity | None) -> None:
        for handle, (listener_token, callback) in list(self._identities.items()):
            if listener_token != token or handle not in self._identities:
                continue
            try:
                callback(identity)
            except Exception:
                logger.exception("Identity listener failed", extra={"subscription": handle})


# Singleton (initialized on startup)
change_feed: ChangeFeedBroker | None = None


def init_change_feed() -> ChangeFeedBroker:
    global change_feed
    change_feed = ChangeFeedBroker()
    return change_feed


def get_change_feed() -> ChangeFeedBroker:
    if not change_feed:
        raise RuntimeError("Change feed not initialized")
    return change_feed
