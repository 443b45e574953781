"""Login throttling: fixed-window attempt counters per login identity.

Key: (realm, org slug, email).  Every attempt increments the window's
counter; once it passes the limit the caller gets 429 until the window
expires.  A successful login clears the counter, so a user who mistypes
a few times starts from zero next time.

Backends: Redis (INCR + EXPIRE, shared by every API instance) when
REDIS_URL is set, a process-local dict otherwise.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from lms.core.errors import TooManyRequestsError
from lms.core.metrics import LOGIN_THROTTLED
from lms.db.redis import redis_pool

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ThrottleConfig:
    max_attempts: int = 10
    window_seconds: int = 60


@dataclass(frozen=True, slots=True)
class ThrottleResult:
    allowed: bool
    attempts: int
    limit: int
    retry_after: int  # seconds until the window resets (0 if allowed)


@runtime_checkable
class LoginThrottle(Protocol):
    async def hit(self, key: str, config: ThrottleConfig) -> ThrottleResult: ...
    async def reset(self, key: str) -> None: ...


class InMemoryLoginThrottle:
    """Process-local counters; each API instance counts separately."""

    def __init__(self) -> None:
        # key -> (attempts, window_started_at)
        self._windows: dict[str, tuple[int, float]] = {}

    async def hit(self, key: str, config: ThrottleConfig) -> ThrottleResult:
        now = time.monotonic()
        attempts, started = self._windows.get(key, (0, now))
        if now - started >= config.window_seconds:
            attempts, started = 0, now
        attempts += 1
        self._windows[key] = (attempts, started)

        if attempts <= config.max_attempts:
            return ThrottleResult(True, attempts, config.max_attempts, 0)
        retry_after = max(1, int(config.window_seconds - (now - started)))
        return ThrottleResult(False, attempts, config.max_attempts, retry_after)

    async def reset(self, key: str) -> None:
        self._windows.pop(key, None)


class RedisLoginThrottle:
    """INCR per attempt; the first hit of a window sets the TTL."""

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def hit(self, key: str, config: ThrottleConfig) -> ThrottleResult:
        redis_key = f"login-throttle:{key}"
        attempts = await self._redis.incr(redis_key)
        if attempts == 1:
            await self._redis.expire(redis_key, config.window_seconds)

        if attempts <= config.max_attempts:
            return ThrottleResult(True, attempts, config.max_attempts, 0)
        ttl = await self._redis.ttl(redis_key)
        return ThrottleResult(False, attempts, config.max_attempts, max(1, int(ttl)))

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"login-throttle:{key}")


if redis_pool is not None:
    login_throttle: LoginThrottle = RedisLoginThrottle(redis_pool)
else:
    login_throttle = InMemoryLoginThrottle()

LOGIN_CONFIG = ThrottleConfig()


def throttle_key(realm: str, org_slug: str | None, email: str) -> str:
    return f"{realm}:{(org_slug or '-').lower()}:{email.strip().lower()}"


async def check_login_allowed(
    realm: str,
    org_slug: str | None,
    email: str,
    *,
    throttle: LoginThrottle | None = None,
    config: ThrottleConfig = LOGIN_CONFIG,
) -> None:
    """Count one login attempt; raise TooManyRequestsError past the limit."""
    result = await (throttle or login_throttle).hit(
        throttle_key(realm, org_slug, email), config
    )
    if not result.allowed:
        LOGIN_THROTTLED.labels(realm=realm).inc()
        logger.warning(
            "Login throttled realm=%s org=%s attempts=%d", realm, org_slug, result.attempts
        )
        raise TooManyRequestsError(
            "Too many login attempts, try again later",
            retry_after=result.retry_after,
        )


async def clear_login_attempts(
    realm: str, org_slug: str | None, email: str, *, throttle: LoginThrottle | None = None
) -> None:
    await (throttle or login_throttle).reset(throttle_key(realm, org_slug, email))
