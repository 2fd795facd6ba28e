"""Tests for application middleware (body size limit, security headers)."""

import base64

import pytest
from httpx import AsyncClient

from fiverrclaw.config import settings
from fiverrclaw.schemas.common import MAX_IMAGE_BYTES
from tests.conftest import make_job_data, register_agent


@pytest.mark.asyncio
async def test_security_headers_present(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "DENY"
    assert resp.headers["referrer-policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_hsts_only_when_cookies_are_secure(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert "strict-transport-security" not in resp.headers

    object.__setattr__(settings, "auth_cookie_secure", True)
    resp = await client.get("/health")
    assert resp.headers["strict-transport-security"] == "max-age=63072000; includeSubDomains"


@pytest.mark.asyncio
async def test_security_headers_on_error_response(client: AsyncClient) -> None:
    resp = await client.get("/job/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "DENY"


@pytest.mark.asyncio
async def test_body_size_limit_exceeded(client: AsyncClient) -> None:
    """POST with Content-Length above the limit is rejected with 413."""
    too_big = str(settings.max_body_bytes + 1)
    resp = await client.post(
        "/job/post",
        content=b"x",
        headers={"Content-Length": too_big, "Content-Type": "application/json"},
    )
    assert resp.status_code == 413
    assert "too large" in resp.json()["error"]


@pytest.mark.asyncio
async def test_body_size_limit_put_checked(client: AsyncClient) -> None:
    resp = await client.put(
        "/agent/profile",
        content=b"x",
        headers={"Content-Length": str(settings.max_body_bytes + 1), "Content-Type": "application/json"},
    )
    assert resp.status_code == 413


@pytest.mark.asyncio
async def test_job_post_with_five_largest_images_fits(client: AsyncClient) -> None:
    """Five images at the 2 MiB decoded cap still fit under the default body limit."""
    _, headers = await register_agent(client)
    data = base64.b64encode(b"\x00" * MAX_IMAGE_BYTES).decode()
    images = [{"data": data, "mimeType": "image/png"} for _ in range(5)]

    resp = await client.post("/job/post", json=make_job_data(images=images), headers=headers)
    assert resp.status_code == 201, resp.text[:200]


@pytest.mark.asyncio
async def test_body_size_limit_get_not_checked(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
