"""Reconciliation: merge change-feed events into the newest-first snapshot.

Invariants:
    - Snapshot holds at most one entry per id after every application
    - INSERT of a known id replaces in place (duplicate delivery, race with bulk read)
    - INSERT of a new id lands at index 0
    - UPDATE and DELETE of an unknown id are no-ops
    - Events are applied in arrival order; never reordered by created_at

Design Decisions:
    - Pure functions returning new lists: the view model swaps its list in one assignment
    - Prepend rather than sorted insert: feed rows are by construction the newest
"""

from collections.abc import Iterable

from app.core.domain_types import Bookmark, BookmarkId, ChangeEvent, ChangeKind


def dedupe_by_id(bookmarks: Iterable[Bookmark]) -> list[Bookmark]:
    """Keep the first occurrence of each id, preserving order."""
    seen: set[BookmarkId] = set()
    result = []
    for bookmark in bookmarks:
        if bookmark.id in seen:
            continue
        seen.add(bookmark.id)
        result.append(bookmark)
    return result


def _replace(bookmarks: list[Bookmark], bookmark: Bookmark) -> list[Bookmark] | None:
    """Replace the entry with bookmark.id in place; None when absent."""
    for index, current in enumerate(bookmarks):
        if current.id == bookmark.id:
            return [*bookmarks[:index], bookmark, *bookmarks[index + 1:]]
    return None


def apply_event(bookmarks: list[Bookmark], event: ChangeEvent) -> list[Bookmark]:
    """Apply one change event and return the new snapshot."""
    if event.kind == ChangeKind.DELETE:
        return [b for b in bookmarks if b.id != event.bookmark_id]

    if event.bookmark is None:
        return bookmarks

    replaced = _replace(bookmarks, event.bookmark)
    if replaced is not None:
        return replaced
    if event.kind == ChangeKind.INSERT:
        return [event.bookmark, *bookmarks]
    return bookmarks
