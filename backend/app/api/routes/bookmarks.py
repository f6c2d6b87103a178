"""Bookmark Routes: list, add, rename and delete the caller's bookmarks.

Invariants:
    - Every route is scoped to the token's identity; the provider enforces it again
    - POST validates the URL before checking identity and never touches the backend on
      a local failure
    - POST and DELETE run the add/remove intents on the caller's live view model
      (api/live_sessions.py), so open streams show the "deleting" flag
    - POST answers 202: the created row reaches clients through the change feed
    - PATCH/DELETE answer 204; ids the caller does not own are 404

Design Decisions:
    - List and rename go straight through BookmarkStore: no view-model state involved
"""

import logging

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_provider, require_identity
from app.api.live_sessions import intent_session
from app.core.bookmark_input import build_draft, normalize_title
from app.core.domain_types import BookmarkId, Identity
from app.infrastructure.sql_provider import SqlCapabilityProvider
from app.schemas.bookmark import BookmarkCreate, BookmarkResponse, BookmarkUpdate
from app.services.bookmark_store import BookmarkStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bookmarks", tags=["bookmarks"])


@router.get("")
async def list_bookmarks(
    identity: Identity = Depends(require_identity),
    provider: SqlCapabilityProvider = Depends(get_provider),
):
    """Owned bookmarks, newest first."""
    bookmarks = await BookmarkStore(provider).list_owned(identity)
    return {
        "bookmarks": [
            BookmarkResponse.from_domain(b).model_dump(mode="json")
            for b in bookmarks
        ],
    }


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def add_bookmark(
    body: BookmarkCreate,
    provider: SqlCapabilityProvider = Depends(get_provider),
):
    draft = build_draft(body.url, body.title)
    async with intent_session(provider, provider.token) as view_model:
        await view_model.add(draft.url, draft.title)
    return {"status": "accepted", "title": draft.title, "url": draft.url}


@router.patch("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def rename_bookmark(
    bookmark_id: str,
    body: BookmarkUpdate,
    identity: Identity = Depends(require_identity),
    provider: SqlCapabilityProvider = Depends(get_provider),
):
    title = normalize_title(body.title)
    await BookmarkStore(provider).rename(BookmarkId(bookmark_id), title)


@router.delete("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: str,
    identity: Identity = Depends(require_identity),
    provider: SqlCapabilityProvider = Depends(get_provider),
):
    """Remove intent; an id outside the caller's snapshot is a 404."""
    async with intent_session(provider, provider.token) as view_model:
        await view_model.remove(BookmarkId(bookmark_id))
