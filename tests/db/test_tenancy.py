"""TenantRegistry: one cached handle per tenant database name."""

from __future__ import annotations

import asyncio

import pytest

from lms.db.tenancy import InMemoryTenantHandle, TenantRegistry, connect_in_memory
from lms.models.sub_org import SubOrg


class _CountingConnector:
    def __init__(self, *, fail_first: bool = False, delay: float = 0.0) -> None:
        self.calls: list[str] = []
        self._fail_first = fail_first
        self._delay = delay

    async def __call__(self, db_name: str) -> InMemoryTenantHandle:
        self.calls.append(db_name)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail_first and len(self.calls) == 1:
            raise ConnectionError("database unreachable")
        return InMemoryTenantHandle(db_name)


def test_resolve_returns_same_handle_for_same_name() -> None:
    registry = TenantRegistry(connect_in_memory)

    async def _run():
        return await registry.resolve("acme_tenant"), await registry.resolve("acme_tenant")

    first, second = asyncio.run(_run())

    assert first is second
    assert registry.cached_count() == 1


def test_distinct_names_get_distinct_handles() -> None:
    registry = TenantRegistry(connect_in_memory)

    async def _run():
        return await registry.resolve("a_tenant"), await registry.resolve("b_tenant")

    a, b = asyncio.run(_run())

    assert a is not b
    assert a.db_name == "a_tenant"
    assert b.db_name == "b_tenant"
    assert registry.cached_count() == 2


def test_concurrent_first_resolve_opens_one_connection() -> None:
    connector = _CountingConnector(delay=0.01)
    registry = TenantRegistry(connector)

    async def _run():
        return await asyncio.gather(*(registry.resolve("acme_tenant") for _ in range(20)))

    handles = asyncio.run(_run())

    assert connector.calls == ["acme_tenant"]
    assert all(h is handles[0] for h in handles)


def test_failed_connect_is_not_cached() -> None:
    connector = _CountingConnector(fail_first=True)
    registry = TenantRegistry(connector)

    with pytest.raises(ConnectionError):
        asyncio.run(registry.resolve("acme_tenant"))
    assert registry.cached_count() == 0

    handle = asyncio.run(registry.resolve("acme_tenant"))

    assert handle.db_name == "acme_tenant"
    assert len(connector.calls) == 2


def test_empty_name_is_rejected() -> None:
    registry = TenantRegistry(connect_in_memory)

    with pytest.raises(ValueError):
        asyncio.run(registry.resolve(""))


def test_close_all_empties_the_cache() -> None:
    registry = TenantRegistry(connect_in_memory)

    async def _run() -> None:
        await registry.resolve("a_tenant")
        await registry.resolve("b_tenant")
        await registry.close_all()

    asyncio.run(_run())

    assert registry.cached_count() == 0


def test_tenants_do_not_share_data() -> None:
    registry = TenantRegistry(connect_in_memory)

    async def _run():
        a = await registry.resolve("a_tenant")
        b = await registry.resolve("b_tenant")
        async with a.session() as repos:
            await repos.sub_orgs.add(SubOrg.new(name="Only in A"))
        async with b.session() as repos:
            return await repos.sub_orgs.list_all()

    assert asyncio.run(_run()) == []
