"""Tests for session resolution and the /auth endpoints."""

import pytest

from bpm.core.deps import COOKIE_NAME
from bpm.services import user_service


@pytest.mark.asyncio
async def test_me_returns_profile(client_for, employee):
    res = await client_for(employee).get("/auth/me")

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user_id"] == str(employee.id)
    assert data["role"] == "employee"
    assert data["full_name"] == "Eve Employee"


@pytest.mark.asyncio
async def test_bearer_token_is_accepted(client_for, auth_token, client_user):
    client = client_for()

    res = await client.get(
        "/auth/me", headers={"Authorization": f"Bearer {auth_token(client_user)}"}
    )

    assert res.status_code == 200
    assert res.json()["data"]["role"] == "client"


@pytest.mark.asyncio
async def test_revoked_session_is_rejected(db, client_for, client_user):
    client = client_for(client_user)
    user_service.revoke_all_sessions(db, client_user.id)

    res = await client.get("/auth/me")

    assert res.status_code == 401
    assert res.json()["message"] == "Session revoked"


@pytest.mark.asyncio
async def test_disabled_account_is_rejected(db, client_for, client_user):
    client = client_for(client_user)
    client_user.is_active = False
    db.commit()

    res = await client.get("/auth/me")

    assert res.status_code == 401
    assert res.json()["message"] == "Account disabled"


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(client_for):
    client = client_for()
    client.cookies.set(COOKIE_NAME, "not-a-jwt")

    res = await client.get("/auth/me")

    assert res.status_code == 401
    assert res.json()["message"] == "Invalid session"


@pytest.mark.asyncio
async def test_logout_clears_cookie(client_for, client_user):
    res = await client_for(client_user).post("/auth/logout")

    assert res.status_code == 200
    assert COOKIE_NAME in res.headers["set-cookie"]


def test_create_user_normalizes_and_rejects_duplicates(db):
    from bpm.core.errors import ConflictError

    user = user_service.create_user(db, "  New.Person@Example.com ", "New Person")
    assert user.email == "new.person@example.com"
    assert user.role == "client"

    with pytest.raises(ConflictError):
        user_service.create_user(db, "new.person@example.com", "Someone Else")
