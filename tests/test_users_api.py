"""User directory tests."""

import uuid

import pytest


@pytest.mark.asyncio
async def test_list_users_excludes_caller(client, make_user):
    alice, headers = await make_user("alice")
    await make_user("bob")
    await make_user("carol")

    r = await client.get("/api/users", headers=headers)
    assert r.status_code == 200
    names = [u["username"] for u in r.json()]
    assert names == ["bob", "carol"]
    assert alice["id"] not in [u["id"] for u in r.json()]


@pytest.mark.asyncio
async def test_get_user_by_id(client, make_user):
    _, headers = await make_user()
    bob, _ = await make_user("bob")

    r = await client.get(f"/api/users/{bob['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["username"] == "bob"


@pytest.mark.asyncio
async def test_get_unknown_user(client, make_user):
    _, headers = await make_user()
    r = await client.get(f"/api/users/{uuid.uuid4()}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_get_user_bad_id(client, make_user):
    _, headers = await make_user()
    r = await client.get("/api/users/not-a-uuid", headers=headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_my_conversations(client, make_user):
    """Inbox lists each conversation once, with the other member as recipient."""
    alice, alice_h = await make_user("alice")
    bob, _ = await make_user("bob")
    carol, carol_h = await make_user("carol")

    r = await client.post(
        "/api/conversations", json={"recipientId": bob["id"]}, headers=alice_h
    )
    with_bob = r.json()["id"]
    await client.post(
        f"/api/conversations/{with_bob}/messages", json={"text": "hey bob"}, headers=alice_h
    )
    await client.post(
        "/api/conversations", json={"recipientId": alice["id"]}, headers=carol_h
    )

    r = await client.get("/api/users/conversations", headers=alice_h)
    assert r.status_code == 200
    convs = r.json()
    assert len(convs) == 2
    by_recipient = {c["recipient"]["username"]: c for c in convs}
    assert set(by_recipient) == {"bob", "carol"}
    assert by_recipient["bob"]["latestMessage"]["text"] == "hey bob"
    assert by_recipient["carol"]["latestMessage"] is None

    # Carol only sees her one conversation
    r = await client.get("/api/users/conversations", headers=carol_h)
    assert [c["recipient"]["id"] for c in r.json()] == [alice["id"]]


@pytest.mark.asyncio
async def test_my_conversations_paging(client, make_user):
    _, headers = await make_user("alice")
    for name in ("bob", "carol", "dave"):
        other, _ = await make_user(name)
        await client.post(
            "/api/conversations", json={"recipientId": other["id"]}, headers=headers
        )

    r = await client.get(
        "/api/users/conversations", params={"page": 1, "limit": 1}, headers=headers
    )
    assert r.status_code == 200
    assert len(r.json()) == 1

    r = await client.get(
        "/api/users/conversations", params={"page": 3}, headers=headers
    )
    assert r.json() == []
