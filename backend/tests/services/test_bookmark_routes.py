"""Bookmark Routes — REST surface over the owner-scoped store."""

from app.api.live_sessions import live_session
from app.api.routes.bookmark_stream_helpers import live_view_events
from tests.services.conftest import sign_in


async def _add(client, headers, url, title=None):
    return await client.post(
        "/api/v1/bookmarks", json={"url": url, "title": title}, headers=headers,
    )


async def _list(client, headers) -> list[dict]:
    res = await client.get("/api/v1/bookmarks", headers=headers)
    assert res.status_code == 200
    return res.json()["bookmarks"]


async def test_add_returns_202_with_resolved_title(client, ada):
    res = await _add(client, ada["headers"], "https://example.com")
    assert res.status_code == 202
    assert res.json() == {
        "status": "accepted", "title": "example.com", "url": "https://example.com",
    }


async def test_list_returns_newest_first(client, ada):
    await _add(client, ada["headers"], "https://one.example.com", "One")
    await _add(client, ada["headers"], "https://two.example.com", "Two")

    bookmarks = await _list(client, ada["headers"])

    assert [b["title"] for b in bookmarks] == ["Two", "One"]
    assert bookmarks[0]["age"] == "Just now"
    assert bookmarks[0]["deleting"] is False


async def test_add_invalid_url_returns_400_before_auth(client):
    res = await _add(client, {}, "not a url")
    assert res.status_code == 400
    body = res.json()["error"]
    assert body["code"] == "VALIDATION_ERROR"
    assert body["message"] == "Please enter a valid URL"


async def test_add_without_token_returns_401(client):
    res = await _add(client, {}, "https://example.com")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "UNAUTHENTICATED"


async def test_list_without_token_returns_401(client):
    res = await client.get("/api/v1/bookmarks")
    assert res.status_code == 401


async def test_delete_removes_bookmark(client, ada):
    await _add(client, ada["headers"], "https://example.com")
    bookmark_id = (await _list(client, ada["headers"]))[0]["id"]

    res = await client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=ada["headers"])
    assert res.status_code == 204
    assert await _list(client, ada["headers"]) == []

    again = await client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=ada["headers"])
    assert again.status_code == 404


async def test_bookmarks_are_private_to_owner(client, ada, grace):
    await _add(client, ada["headers"], "https://ada.example.com")
    bookmark_id = (await _list(client, ada["headers"]))[0]["id"]

    assert await _list(client, grace["headers"]) == []
    res = await client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=grace["headers"])
    assert res.status_code == 404
    assert len(await _list(client, ada["headers"])) == 1


async def test_rename_updates_title(client, ada):
    await _add(client, ada["headers"], "https://example.com")
    bookmark_id = (await _list(client, ada["headers"]))[0]["id"]

    res = await client.patch(
        f"/api/v1/bookmarks/{bookmark_id}", json={"title": "  Docs  "},
        headers=ada["headers"],
    )

    assert res.status_code == 204
    assert (await _list(client, ada["headers"]))[0]["title"] == "Docs"


async def test_rename_to_blank_returns_400(client, ada):
    await _add(client, ada["headers"], "https://example.com")
    bookmark_id = (await _list(client, ada["headers"]))[0]["id"]

    res = await client.patch(
        f"/api/v1/bookmarks/{bookmark_id}", json={"title": "  "}, headers=ada["headers"],
    )
    assert res.status_code == 400


async def test_add_is_published_to_owner_feed(client, ada, feed):
    received = []
    feed.subscribe(ada["identity"]["id"], received.append)

    await _add(client, ada["headers"], "https://example.com", "Example")

    assert [p["eventType"] for p in received] == ["INSERT"]
    assert received[0]["new"]["title"] == "Example"


async def test_query_token_is_accepted(client, ada):
    res = await client.get(
        "/api/v1/bookmarks", params={"access_token": ada["token"]},
    )
    assert res.status_code == 200


async def test_second_sign_in_sees_same_bookmarks(client, ada):
    await _add(client, ada["headers"], "https://example.com")
    again = await sign_in(client, "ada@example.com")
    assert len(await _list(client, again["headers"])) == 1


async def test_stream_without_token_sends_snapshot_then_done(client):
    res = await client.get("/api/v1/bookmarks/stream")

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    frames = [line for line in res.text.split("\n\n") if line.startswith("data: ")]
    assert len(frames) == 2
    assert '"type": "done"' in frames[1]


async def test_delete_route_acts_through_open_live_session(
    client, ada, make_provider, monkeypatch,
):
    await _add(client, ada["headers"], "https://example.com")
    bookmark_id = (await _list(client, ada["headers"]))[0]["id"]
    events = live_view_events(
        make_provider(ada["token"]), keepalive_seconds=5.0, session_key=ada["token"],
    )
    await anext(events)

    view_model = live_session(ada["token"])
    removed = []
    original_remove = view_model.remove

    async def recording_remove(bid):
        removed.append(bid)
        await original_remove(bid)

    monkeypatch.setattr(view_model, "remove", recording_remove)

    res = await client.delete(f"/api/v1/bookmarks/{bookmark_id}", headers=ada["headers"])

    assert res.status_code == 204
    assert removed == [bookmark_id]
    assert view_model.snapshot == ()
    await events.aclose()


async def test_add_route_acts_through_open_live_session(client, ada, make_provider):
    events = live_view_events(
        make_provider(ada["token"]), keepalive_seconds=5.0, session_key=ada["token"],
    )
    await anext(events)

    res = await _add(client, ada["headers"], "https://example.com", "Example")

    assert res.status_code == 202
    assert [b.title for b in live_session(ada["token"]).snapshot] == ["Example"]
    await events.aclose()
