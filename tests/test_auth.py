import pytest
from datetime import timedelta
from httpx import AsyncClient

from routes.deps import create_access_token

pytestmark = pytest.mark.asyncio


async def test_app_health(async_client: AsyncClient):
    response = await async_client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "online"


async def test_login_sets_session_cookie(async_client: AsyncClient, test_user):
    resp = await async_client.post("/api/auth/login", json={"username": "admin", "password": "secret123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"] == {"username": "admin", "name": "Test Admin", "role": "admin"}
    assert "lumen_session" in resp.cookies

    me = await async_client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "admin"


async def test_cookie_session_is_accepted(async_client: AsyncClient, test_user):
    await async_client.post("/api/auth/login", json={"username": "admin", "password": "secret123"})
    # The client keeps the cookie from the login response
    me = await async_client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["role"] == "admin"


async def test_login_with_wrong_password(async_client: AsyncClient, test_user):
    resp = await async_client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 401

    resp = await async_client.post("/api/auth/login", json={"username": "ghost", "password": "secret123"})
    assert resp.status_code == 401


async def test_logout_clears_cookie(async_client: AsyncClient, test_user):
    await async_client.post("/api/auth/login", json={"username": "admin", "password": "secret123"})
    resp = await async_client.post("/api/auth/logout")
    assert resp.status_code == 200
    me = await async_client.get("/api/auth/me")
    assert me.status_code == 401


async def test_auth_token_format(auth_headers: dict):
    assert "Authorization" in auth_headers
    assert auth_headers["Authorization"].startswith("Bearer ")


async def test_expired_token_is_rejected(async_client: AsyncClient, test_user):
    token = create_access_token({"sub": "admin", "role": "admin", "name": "Test Admin"}, expires_delta=timedelta(minutes=-5))
    resp = await async_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


async def test_token_for_deleted_user_is_rejected(async_client: AsyncClient, auth_headers: dict, store):
    await store.users.delete("admin")
    resp = await async_client.get("/api/auth/me", headers=auth_headers)
    assert resp.status_code == 401


async def test_service_key(async_client: AsyncClient):
    resp = await async_client.get("/api/auth/me", headers={"X-API-Key": "test_service_key"})
    assert resp.status_code == 200
    assert resp.json()["role"] == "service"

    resp = await async_client.get("/api/auth/me", headers={"X-API-Key": "wrong"})
    assert resp.status_code == 401


async def test_request_id_header(async_client: AsyncClient):
    resp = await async_client.get("/")
    assert len(resp.headers["X-Request-ID"]) == 8
