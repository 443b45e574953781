"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured a shared async client is
created at import time; when it is unset, ``redis_pool`` is None and
every consumer (currently the login throttle) falls back to an
in-memory implementation.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from lms.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis.

    A failed ping on startup is logged, not raised: the throttle degrades
    to failing open rather than keeping the API down.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, login throttle uses in-memory counters")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
