"""Registration and login tests.

Learn: Tests cover:
1. User registration + duplicate prevention + input validation
2. Login → JWT access token
3. Protected routes reject missing / bad tokens
"""

import uuid

import pytest

from chathub.auth.jwt import create_access_token, verify_token


def _name(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    username = _name()
    r = await client.post(
        "/api/users/register",
        json={
            "username": username,
            "password": "secure_password_123",
            "profilePicture": "https://example.com/me.png",
        },
    )
    assert r.status_code == 201
    user = r.json()
    assert user["username"] == username
    assert user["profilePicture"] == "https://example.com/me.png"
    assert "id" in user
    assert "createAt" in user
    assert "password" not in user
    assert "passwordHash" not in user


@pytest.mark.asyncio
async def test_register_duplicate_username(client):
    """Can't register the same username twice."""
    body = {"username": _name("dup"), "password": "password_123"}

    r1 = await client.post("/api/users/register", json=body)
    assert r1.status_code == 201

    r2 = await client.post("/api/users/register", json=body)
    assert r2.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"username": "ab", "password": "password_123"},          # too short
        {"username": "has spaces", "password": "password_123"},  # bad chars
        {"username": "shortpw", "password": "abc"},              # password < 6
        {"password": "password_123"},                            # no username
    ],
)
async def test_register_validation(client, body):
    r = await client.post("/api/users/register", json=body)
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client):
    """Login returns a token whose subject is the user's id."""
    username = _name("login")
    r = await client.post(
        "/api/users/register", json={"username": username, "password": "password_123"}
    )
    user_id = r.json()["id"]

    r = await client.post(
        "/api/users/login", json={"username": username, "password": "password_123"}
    )
    assert r.status_code == 200
    data = r.json()
    assert data["tokenType"] == "bearer"
    assert data["expiresIn"] > 0
    assert verify_token(data["token"])["sub"] == user_id


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    username = _name("wrong")
    await client.post(
        "/api/users/register", json={"username": username, "password": "password_123"}
    )

    r = await client.post(
        "/api/users/login", json={"username": username, "password": "not_the_password"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    r = await client.post(
        "/api/users/login", json={"username": "nobody_here", "password": "password_123"}
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Protected routes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_token(client, make_user):
    user, headers = await make_user()
    r = await client.get("/api/users/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]


@pytest.mark.asyncio
async def test_protected_route_without_token(client):
    r = await client.get("/api/users/me")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_protected_route_with_garbage_token(client):
    r = await client.get(
        "/api/users/me", headers={"Authorization": "Bearer not.a.jwt"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_rejected(client, make_user):
    user, _ = await make_user()
    expired = create_access_token(user["id"], expires_minutes=-5)
    r = await client.get(
        "/api/users/me", headers={"Authorization": f"Bearer {expired}"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_token_for_deleted_user(client):
    """A valid token for a user that doesn't exist gets 404 from /me."""
    token = create_access_token(str(uuid.uuid4()))
    r = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 404
