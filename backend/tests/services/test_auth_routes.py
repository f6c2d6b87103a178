"""Auth Routes — sign in, current identity, sign out."""


async def test_sign_in_returns_token_and_identity(client, ada):
    assert ada["token"]
    assert ada["identity"]["email"] == "ada@example.com"
    assert ada["identity"]["display_name"] == "Ada Lovelace"


async def test_sign_in_rejects_bad_email(client):
    res = await client.post("/api/v1/auth/session", json={"email": "nope"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_me_requires_token(client):
    res = await client.get("/api/v1/auth/me")
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "You must be logged in to manage bookmarks"


async def test_me_returns_identity(client, ada):
    res = await client.get("/api/v1/auth/me", headers=ada["headers"])
    assert res.status_code == 200
    assert res.json()["id"] == ada["identity"]["id"]


async def test_display_name_defaults_to_user(client):
    res = await client.post("/api/v1/auth/session", json={"email": "anon@example.com"})
    assert res.json()["identity"]["display_name"] == "User"


async def test_sign_out_revokes_token(client, ada):
    res = await client.delete("/api/v1/auth/session", headers=ada["headers"])
    assert res.status_code == 204

    me = await client.get("/api/v1/auth/me", headers=ada["headers"])
    assert me.status_code == 401


async def test_health_endpoints(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"

    ready = await client.get("/api/v1/health/ready")
    assert ready.status_code == 200
    assert ready.json()["live_subscriptions"] == 0
