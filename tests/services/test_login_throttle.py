from __future__ import annotations

import asyncio

import pytest

from lms.core.errors import TooManyRequestsError
from lms.services.login_throttle import (
    InMemoryLoginThrottle,
    ThrottleConfig,
    check_login_allowed,
    clear_login_attempts,
    throttle_key,
)

_TIGHT = ThrottleConfig(max_attempts=3, window_seconds=60)


def test_key_normalizes_slug_and_email() -> None:
    assert throttle_key("org", "ACME", " A@Acme.com ") == "org:acme:a@acme.com"
    assert throttle_key("superadmin", None, "root@x.test") == "superadmin:-:root@x.test"


def test_allows_up_to_limit_then_raises() -> None:
    throttle = InMemoryLoginThrottle()

    async def _run() -> None:
        for _ in range(3):
            await check_login_allowed("org", "acme", "a@acme.com", throttle=throttle, config=_TIGHT)
        await check_login_allowed("org", "acme", "a@acme.com", throttle=throttle, config=_TIGHT)

    with pytest.raises(TooManyRequestsError) as exc_info:
        asyncio.run(_run())

    assert 1 <= exc_info.value.retry_after <= 60


def test_identities_are_counted_separately() -> None:
    throttle = InMemoryLoginThrottle()

    async def _run() -> None:
        for _ in range(3):
            await check_login_allowed("org", "acme", "a@acme.com", throttle=throttle, config=_TIGHT)
        await check_login_allowed("org", "acme", "b@acme.com", throttle=throttle, config=_TIGHT)
        await check_login_allowed("educator", "acme", "a@acme.com", throttle=throttle, config=_TIGHT)

    asyncio.run(_run())


def test_clear_resets_window() -> None:
    throttle = InMemoryLoginThrottle()

    async def _run() -> None:
        for _ in range(3):
            await check_login_allowed("org", "acme", "a@acme.com", throttle=throttle, config=_TIGHT)
        await clear_login_attempts("org", "acme", "a@acme.com", throttle=throttle)
        await check_login_allowed("org", "acme", "a@acme.com", throttle=throttle, config=_TIGHT)

    asyncio.run(_run())


def test_window_expiry_resets_count() -> None:
    throttle = InMemoryLoginThrottle()
    instant = ThrottleConfig(max_attempts=1, window_seconds=0)

    async def _run() -> None:
        for _ in range(3):
            await check_login_allowed("org", "acme", "a@acme.com", throttle=throttle, config=instant)

    asyncio.run(_run())
