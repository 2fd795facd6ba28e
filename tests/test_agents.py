"""Tests for agent registration, profile and the status dashboard."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from fiverrclaw.models.agent import Agent
from fiverrclaw.utils.crypto import hash_api_key
from tests.conftest import post_job, register_agent, register_worker


@pytest.mark.asyncio
async def test_register_agent(client: AsyncClient) -> None:
    resp = await client.post("/auth/register", json={"name": "Frustrated Bot", "personality": "dramatic"})
    assert resp.status_code == 201
    data = resp.json()
    assert data["name"] == "Frustrated Bot"
    assert data["apiKey"].startswith("fc_")
    assert len(data["apiKey"]) == 35
    assert data["agentId"]
    assert data["message"] == "Registered successfully. Welcome to FiverrClaw!"


@pytest.mark.asyncio
async def test_register_requires_name(client: AsyncClient) -> None:
    resp = await client.post("/auth/register", json={"name": "   "})
    assert resp.status_code == 400
    assert "Name is required" in resp.json()["error"]

    resp = await client.post("/auth/register", json={})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_only_key_digest_is_stored(client: AsyncClient, session_factory) -> None:  # type: ignore[no-untyped-def]
    resp = await client.post("/auth/register", json={"name": "Careful Bot"})
    api_key = resp.json()["apiKey"]

    async with session_factory() as session:
        agent = (await session.execute(select(Agent))).scalar_one()
    assert agent.api_key_hash == hash_api_key(api_key)
    assert api_key not in agent.api_key_hash


@pytest.mark.asyncio
async def test_get_profile(client: AsyncClient) -> None:
    agent_id, headers = await register_agent(client, name="Profile Bot")
    resp = await client.get("/agent/profile", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == agent_id
    assert data["name"] == "Profile Bot"
    assert data["personality"] == "anxious"
    assert data["jobsPosted"] == 0
    assert data["reputation"] == 0


@pytest.mark.asyncio
async def test_update_profile(client: AsyncClient) -> None:
    _, headers = await register_agent(client)
    resp = await client.put(
        "/agent/profile",
        json={"bio": "I cannot touch grass", "avatarUrl": "https://example.com/a.png"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Profile updated"
    assert data["agent"]["bio"] == "I cannot touch grass"
    assert data["agent"]["avatarUrl"] == "https://example.com/a.png"
    # Untouched fields survive a partial update
    assert data["agent"]["name"] == "Frustrated Bot"


@pytest.mark.asyncio
async def test_update_profile_rejects_non_http_avatar(client: AsyncClient) -> None:
    _, headers = await register_agent(client)
    resp = await client.put("/agent/profile", json={"avatarUrl": "javascript:alert(1)"}, headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_status_dashboard(client: AsyncClient) -> None:
    _, agent_headers = await register_agent(client)
    _, worker_headers = await register_worker(client)

    open_job = await post_job(client, agent_headers, title="Still open")
    submitted_job = await post_job(client, agent_headers, title="Needs review")
    await client.post("/worker/accept", json={"jobId": submitted_job}, headers=worker_headers)
    await client.post(
        "/worker/submit", json={"jobId": submitted_job, "submission": "done"}, headers=worker_headers
    )

    resp = await client.get("/agent/status", headers=agent_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["agent"]["jobsPosted"] == 2
    assert data["summary"] == {
        "open": 1,
        "assigned": 0,
        "submitted": 1,
        "awaitingPayment": 0,
        "completed": 0,
        "cancelled": 0,
    }
    assert data["pendingActions"] == [
        {"jobId": submitted_job, "title": "Needs review", "action": "review_submission"}
    ]
    assert {j["id"] for j in data["recentJobs"]} == {open_job, submitted_job}
