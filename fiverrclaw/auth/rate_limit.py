"""Token bucket rate limiter backed by Redis."""

import hashlib
import time

import redis.asyncio as aioredis
from fastapi import Depends, Request, Response

from fiverrclaw.config import settings
from fiverrclaw.errors import RateLimitError
from fiverrclaw.redis import bucket_key, get_redis, take_token

_REGISTRATION_PATHS = ("/auth/register", "/worker/register", "/worker/login")


def _get_rate_config(method: str, path: str) -> tuple[int, int, str]:
    """Return (capacity, refill_per_min, category) based on endpoint."""
    if path.startswith("/feed"):
        return (
            settings.rate_limit_feed_capacity,
            settings.rate_limit_feed_refill_per_min,
            "feed",
        )
    # Unauthenticated credential issuance gets its own tight limit (per-IP)
    if method == "POST" and path.rstrip("/") in _REGISTRATION_PATHS:
        return (
            settings.rate_limit_registration_capacity,
            settings.rate_limit_registration_refill_per_min,
            "registration",
        )
    if method in ("POST", "PUT", "PATCH", "DELETE"):
        # Job lifecycle endpoints get tighter limits
        if path.startswith("/job/") or path.startswith("/worker/"):
            return 20, 5, "job_lifecycle"
        return (
            settings.rate_limit_write_capacity,
            settings.rate_limit_write_refill_per_min,
            "write",
        )
    return (
        settings.rate_limit_read_capacity,
        settings.rate_limit_read_refill_per_min,
        "read",
    )


def _get_client_ip(request: Request) -> str:
    """Extract client IP, respecting X-Forwarded-For for reverse proxies."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the chain is the original client
        return forwarded_for.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def _get_identity(request: Request) -> str:
    """Bucket identity: hashed agent key, hashed worker token, else client IP."""
    api_key = request.headers.get("x-api-key")
    if api_key:
        return "agent:" + hashlib.sha256(api_key.encode()).hexdigest()[:16]

    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:] if auth_header.startswith("Bearer ") else None
    token = token or request.cookies.get(settings.auth_cookie_name)
    if token:
        return "worker:" + hashlib.sha256(token.encode()).hexdigest()[:16]

    return "ip:" + _get_client_ip(request)


async def check_rate_limit(
    request: Request,
    response: Response,
    redis: aioredis.Redis = Depends(get_redis),
) -> None:
    """Rate limit dependency, keyed by caller identity and endpoint category."""
    if not settings.rate_limit_enabled:
        return

    method = request.method.upper()
    path = request.url.path
    capacity, refill_rate, category = _get_rate_config(method, path)

    key = bucket_key(_get_identity(request), category)
    bucket = await take_token(redis, key, capacity, refill_rate, time.time())

    response.headers["X-RateLimit-Limit"] = str(capacity)
    response.headers["X-RateLimit-Remaining"] = str(bucket.remaining)

    if not bucket.allowed:
        raise RateLimitError("Rate limit exceeded", headers={"Retry-After": str(bucket.retry_after)})
