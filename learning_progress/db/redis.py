"""Redis connection management.

When REDIS_URL is configured the progress store lives in Redis, shared by
every API instance; when it is unset (local dev, tests) the store falls
back to an in-process dict and no Redis server is needed.

Redis suits this data: small string values, per-key writes, and an
atomic INCRBY that makes activity ticks additive without a
read-modify-write race between instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from learning_progress.core.config import SETTINGS

logger = logging.getLogger(__name__)

# None when REDIS_URL is not set; every consumer checks for None and
# falls back to in-memory.
if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook: verify connectivity, release the pool."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured; progress store is in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        # Keep serving: store reads degrade to "no data" until Redis is back
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
