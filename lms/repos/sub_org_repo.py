from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.sub_org import SubOrg


class SubOrgRepo(Protocol):
    async def get(self, sub_org_id: UUID) -> SubOrg | None: ...
    async def get_by_code(self, code: str) -> SubOrg | None: ...
    async def add(self, sub_org: SubOrg) -> None: ...
    async def save(self, sub_org: SubOrg) -> None: ...
    async def list_all(self, *, only_id: UUID | None = None) -> list[SubOrg]: ...


class InMemorySubOrgRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, SubOrg] = {}

    async def get(self, sub_org_id: UUID) -> SubOrg | None:
        return self._by_id.get(sub_org_id)

    async def get_by_code(self, code: str) -> SubOrg | None:
        return next((s for s in self._by_id.values() if s.code == code), None)

    async def add(self, sub_org: SubOrg) -> None:
        if sub_org.code and await self.get_by_code(sub_org.code) is not None:
            raise ValueError("code already exists")
        self._by_id[sub_org.id] = sub_org

    async def save(self, sub_org: SubOrg) -> None:
        self._by_id[sub_org.id] = sub_org

    async def list_all(self, *, only_id: UUID | None = None) -> list[SubOrg]:
        items = [s for s in self._by_id.values() if only_id is None or s.id == only_id]
        return sorted(items, key=lambda s: s.created_at, reverse=True)
