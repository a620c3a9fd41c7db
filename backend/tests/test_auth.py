from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from crewhours.auth import service
from crewhours.auth.models import RefreshToken


@pytest.mark.asyncio
async def test_first_user_becomes_admin(client):
    response = await client.post(
        "/api/auth/register",
        json={"email": "boss@example.com", "password": "secret123", "full_name": "First Boss"},
    )
    assert response.status_code == 201
    assert response.json()["data"]["role"] == "admin"

    response = await client.post(
        "/api/auth/register",
        json={"email": "jan@example.com", "password": "secret123", "full_name": "Jan Novak"},
    )
    assert response.json()["data"]["role"] == "monter"


@pytest.mark.asyncio
async def test_login_and_me(client):
    await client.post(
        "/api/auth/register",
        json={"email": "jan@example.com", "password": "secret123", "full_name": "Jan Novak"},
    )
    response = await client.post(
        "/api/auth/login", json={"email": "jan@example.com", "password": "secret123"}
    )
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    me = response.json()["data"]
    assert me["full_name"] == "Jan Novak"
    assert "approve_weeks" in me["capabilities"]
    assert me["last_login_at"] is not None


@pytest.mark.asyncio
async def test_wrong_password(client):
    await client.post(
        "/api/auth/register",
        json={"email": "jan@example.com", "password": "secret123", "full_name": "Jan Novak"},
    )
    response = await client.post(
        "/api/auth/login", json={"email": "jan@example.com", "password": "nope-nope"}
    )
    assert response.status_code == 422
    assert response.json()["error"]["message"] == "Invalid email or password."


@pytest.mark.asyncio
async def test_capabilities_follow_role(client, worker, auth):
    response = await client.get("/api/auth/me", headers=auth(worker))
    assert response.json()["data"]["capabilities"] == ["log_own_hours"]


@pytest.mark.asyncio
async def test_only_admin_changes_roles(client, worker, manager, admin, auth):
    response = await client.put(
        f"/api/auth/users/{worker.id}/role", json={"role": "manager"}, headers=auth(manager)
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/auth/users/{worker.id}/role", json={"role": "manager"}, headers=auth(admin)
    )
    assert response.status_code == 200
    assert response.json()["data"]["role"] == "manager"


@pytest.mark.asyncio
async def test_last_admin_cannot_be_demoted(client, admin, auth):
    response = await client.put(
        f"/api/auth/users/{admin.id}/role", json={"role": "manager"}, headers=auth(admin)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_deactivated_user_is_locked_out(client, worker, admin, auth):
    response = await client.delete(f"/api/auth/users/{worker.id}", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False

    response = await client.get("/api/auth/me", headers=auth(worker))
    assert response.status_code == 401

    response = await client.get("/api/auth/users", headers=auth(admin))
    assert str(worker.id) not in {u["id"] for u in response.json()["data"]}


@pytest.mark.asyncio
async def test_password_change_needs_current_password(client, worker, auth):
    response = await client.put(
        "/api/auth/me", json={"password": "new-secret"}, headers=auth(worker)
    )
    assert response.status_code == 422

    response = await client.put(
        "/api/auth/me",
        json={"password": "new-secret", "current_password": "secret123"},
        headers=auth(worker),
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_refresh_token_rotation(client):
    await client.post(
        "/api/auth/register",
        json={"email": "jan@example.com", "password": "secret123", "full_name": "Jan Novak"},
    )
    tokens = (await client.post(
        "/api/auth/login", json={"email": "jan@example.com", "password": "secret123"}
    )).json()["data"]

    # A refresh token is not accepted as an access token.
    response = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
    )
    assert response.status_code == 401

    response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    assert response.json()["data"]["refresh_token"] != tokens["refresh_token"]

    # The old refresh token was revoked by the rotation.
    response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_purge_refresh_tokens(db, worker):
    now = datetime(2025, 10, 20, 12, 0, tzinfo=timezone.utc)
    db.add_all([
        RefreshToken(user_id=worker.id, token_hash="live", expires_at=now + timedelta(days=1)),
        RefreshToken(user_id=worker.id, token_hash="expired", expires_at=now - timedelta(minutes=1)),
        RefreshToken(
            user_id=worker.id, token_hash="revoked", expires_at=now + timedelta(days=1), revoked=True
        ),
    ])
    await db.commit()

    assert await service.purge_refresh_tokens(db, now=now) == 2
    remaining = (await db.execute(select(RefreshToken.token_hash))).scalars().all()
    assert remaining == ["live"]
