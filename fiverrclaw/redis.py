"""Redis connection pool and the token bucket used by the rate limiter.

Each bucket is a hash at ``ratelimit:<identity>:<category>`` holding the
fractional token count and the time it was last topped up. Buckets expire
once they would have refilled completely, so idle callers leave no state.
"""

from collections.abc import AsyncGenerator
from typing import NamedTuple

import redis.asyncio as aioredis

from fiverrclaw.config import settings

redis_pool = aioredis.ConnectionPool.from_url(settings.redis_url)

# KEYS[1] bucket; ARGV capacity, refill per minute, now (seconds)
_TAKE_TOKEN = """
local capacity = tonumber(ARGV[1])
local per_second = tonumber(ARGV[2]) / 60.0
local now = tonumber(ARGV[3])

local state = redis.call('HMGET', KEYS[1], 'tokens', 'ts')
local tokens = tonumber(state[1]) or capacity
local ts = tonumber(state[2]) or now
tokens = math.min(capacity, tokens + math.max(0, now - ts) * per_second)

local allowed = 0
local wait = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
elseif per_second > 0 then
    wait = math.ceil((1 - tokens) / per_second)
else
    wait = 60
end

local ttl = 120
if per_second > 0 then
    ttl = math.max(ttl, math.ceil(capacity / per_second))
end
redis.call('HSET', KEYS[1], 'tokens', tokens, 'ts', now)
redis.call('EXPIRE', KEYS[1], ttl)
return {allowed, math.floor(tokens), wait}
"""


class BucketResult(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: int


def bucket_key(identity: str, category: str) -> str:
    return f"ratelimit:{identity}:{category}"


async def take_token(
    redis: aioredis.Redis, key: str, capacity: int, refill_per_min: int, now: float
) -> BucketResult:
    """Atomically refill the bucket at ``key`` and try to spend one token."""
    allowed, remaining, retry_after = await redis.eval(
        _TAKE_TOKEN, 1, key, capacity, refill_per_min, now
    )
    return BucketResult(bool(int(allowed)), int(remaining), int(retry_after))


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    client = aioredis.Redis(connection_pool=redis_pool)
    try:
        yield client
    finally:
        await client.aclose()
