"""Tests for credential resolution: agent API keys, worker tokens and the login cookie."""

import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient

from fiverrclaw.auth.tokens import create_worker_token, decode_worker_token
from fiverrclaw.config import settings
from fiverrclaw.errors import AuthenticationError
from tests.conftest import make_worker_data, register_agent, register_worker


def test_worker_token_round_trip() -> None:
    worker_id = uuid.uuid4()
    token = create_worker_token(worker_id, "a@example.com")
    assert decode_worker_token(token) == worker_id


def test_expired_worker_token_rejected() -> None:
    token = create_worker_token(uuid.uuid4(), "a@example.com", expires_delta=timedelta(seconds=-5))
    with pytest.raises(AuthenticationError):
        decode_worker_token(token)


def test_token_signed_with_other_key_rejected() -> None:
    token = create_worker_token(uuid.uuid4(), "a@example.com")
    object.__setattr__(settings, "jwt_secret_key", "a-different-secret")
    with pytest.raises(AuthenticationError):
        decode_worker_token(token)


@pytest.mark.asyncio
async def test_missing_api_key(client: AsyncClient) -> None:
    resp = await client.get("/agent/profile")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Missing or invalid x-api-key header"


@pytest.mark.asyncio
async def test_unknown_api_key(client: AsyncClient) -> None:
    resp = await client.get("/agent/profile", headers={"x-api-key": "fc_" + "0" * 32})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_missing_worker_token(client: AsyncClient) -> None:
    resp = await client.get("/worker/profile")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Missing or invalid authorization token"


@pytest.mark.asyncio
async def test_garbage_worker_token(client: AsyncClient) -> None:
    resp = await client.get("/worker/profile", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_for_deleted_worker_rejected(client: AsyncClient) -> None:
    token = create_worker_token(uuid.uuid4(), "ghost@example.com")
    resp = await client.get("/worker/profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_register_sets_auth_cookie(client: AsyncClient) -> None:
    resp = await client.post("/worker/register", json=make_worker_data())
    assert resp.status_code == 201
    set_cookie = resp.headers["set-cookie"]
    assert set_cookie.startswith("fiverr_auth=")
    assert "HttpOnly" in set_cookie
    assert "SameSite=strict" in set_cookie or "samesite=strict" in set_cookie.lower()
    assert resp.json()["token"]


@pytest.mark.asyncio
async def test_cookie_authenticates_worker(client: AsyncClient) -> None:
    resp = await client.post("/worker/register", json=make_worker_data())
    token = resp.json()["token"]
    client.cookies.clear()

    resp = await client.get("/worker/profile", headers={"Cookie": f"fiverr_auth={token}"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Helpful Human"


@pytest.mark.asyncio
async def test_agent_key_is_not_a_worker_credential(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    resp = await client.get("/worker/profile", headers=agent_headers)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_worker_token_is_not_an_agent_credential(client: AsyncClient) -> None:
    _, worker_headers = await register_worker(client)
    resp = await client.get("/agent/status", headers=worker_headers)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_logout_clears_cookie(client: AsyncClient) -> None:
    resp = await client.post("/worker/logout")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Logged out"}
    assert 'fiverr_auth=""' in resp.headers["set-cookie"] or "Max-Age=0" in resp.headers["set-cookie"]
