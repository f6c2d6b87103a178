"""Reconciliation — merging change-feed events into the newest-first snapshot.

Tests cover:
    - INSERT of a new id lands at index 0
    - INSERT of a known id replaces in place (idempotent)
    - UPDATE / DELETE of unknown ids are no-ops
    - Arrival order wins over created_at
"""

from datetime import datetime, timedelta, timezone

from app.core.domain_types import Bookmark, BookmarkId, ChangeEvent, OwnerId
from app.core.reconcile import apply_event, dedupe_by_id

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _bookmark(bid: str, title: str | None = None, minutes: int = 0) -> Bookmark:
    return Bookmark(
        id=BookmarkId(bid),
        owner_id=OwnerId("owner-1"),
        title=title or bid,
        url=f"https://{bid}.example.com",
        created_at=T0 + timedelta(minutes=minutes),
    )


def _ids(bookmarks) -> list[str]:
    return [b.id for b in bookmarks]


def _apply_all(bookmarks, events):
    for event in events:
        bookmarks = apply_event(bookmarks, event)
    return bookmarks


def test_insert_of_new_id_is_prepended():
    snapshot = [_bookmark("a", minutes=1)]
    result = apply_event(snapshot, ChangeEvent.inserted(_bookmark("b", minutes=2)))
    assert _ids(result) == ["b", "a"]


def test_insert_is_prepended_even_when_older():
    snapshot = [_bookmark("a", minutes=5)]
    result = apply_event(snapshot, ChangeEvent.inserted(_bookmark("b", minutes=1)))
    assert _ids(result) == ["b", "a"]


def test_duplicate_insert_replaces_in_place():
    snapshot = [_bookmark("b"), _bookmark("a", title="old")]
    result = apply_event(snapshot, ChangeEvent.inserted(_bookmark("a", title="new")))
    assert _ids(result) == ["b", "a"]
    assert result[1].title == "new"


def test_insert_applied_twice_leaves_one_entry():
    event = ChangeEvent.inserted(_bookmark("a"))
    result = _apply_all([], [event, event])
    assert _ids(result) == ["a"]


def test_update_replaces_known_entry_in_place():
    snapshot = [_bookmark("c"), _bookmark("b"), _bookmark("a")]
    result = apply_event(snapshot, ChangeEvent.updated(_bookmark("b", title="Renamed")))
    assert _ids(result) == ["c", "b", "a"]
    assert result[1].title == "Renamed"


def test_update_of_unknown_id_is_noop():
    snapshot = [_bookmark("a")]
    result = apply_event(snapshot, ChangeEvent.updated(_bookmark("zzz")))
    assert result == snapshot


def test_delete_removes_entry():
    snapshot = [_bookmark("b"), _bookmark("a")]
    result = apply_event(snapshot, ChangeEvent.deleted(BookmarkId("b")))
    assert _ids(result) == ["a"]


def test_delete_of_unknown_id_is_noop():
    snapshot = [_bookmark("a")]
    result = apply_event(snapshot, ChangeEvent.deleted(BookmarkId("zzz")))
    assert result == snapshot


def test_apply_event_does_not_mutate_input():
    snapshot = [_bookmark("a")]
    apply_event(snapshot, ChangeEvent.inserted(_bookmark("b")))
    assert _ids(snapshot) == ["a"]


def test_bulk_then_insert_scenario():
    """Bulk [a@T1], then INSERT b@T2 → [b, a]."""
    snapshot = dedupe_by_id([_bookmark("a", minutes=1)])
    result = _apply_all(snapshot, [ChangeEvent.inserted(_bookmark("b", minutes=2))])
    assert _ids(result) == ["b", "a"]


def test_dedupe_keeps_first_occurrence():
    rows = [_bookmark("a", title="first"), _bookmark("b"), _bookmark("a", title="second")]
    result = dedupe_by_id(rows)
    assert _ids(result) == ["a", "b"]
    assert result[0].title == "first"
