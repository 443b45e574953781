from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.organization import Organization, SuperAdmin


class OrganizationRepo(Protocol):
    async def get(self, org_id: UUID) -> Organization | None: ...
    async def get_by_slug(self, slug: str) -> Organization | None: ...
    async def get_by_db_name(self, db_name: str) -> Organization | None: ...
    async def add(self, org: Organization) -> None: ...
    async def save(self, org: Organization) -> None: ...
    async def list_all(self) -> list[Organization]: ...


class SuperAdminRepo(Protocol):
    async def get(self, admin_id: UUID) -> SuperAdmin | None: ...
    async def get_by_email(self, email: str) -> SuperAdmin | None: ...
    async def add(self, admin: SuperAdmin) -> None: ...
    async def save(self, admin: SuperAdmin) -> None: ...


class InMemoryOrganizationRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Organization] = {}

    async def get(self, org_id: UUID) -> Organization | None:
        return self._by_id.get(org_id)

    async def get_by_slug(self, slug: str) -> Organization | None:
        return next((o for o in self._by_id.values() if o.slug == slug), None)

    async def get_by_db_name(self, db_name: str) -> Organization | None:
        return next((o for o in self._by_id.values() if o.db_name == db_name), None)

    async def add(self, org: Organization) -> None:
        if await self.get_by_slug(org.slug) is not None:
            raise ValueError("slug already exists")
        if await self.get_by_db_name(org.db_name) is not None:
            raise ValueError("db_name already exists")
        self._by_id[org.id] = org

    async def save(self, org: Organization) -> None:
        self._by_id[org.id] = org

    async def list_all(self) -> list[Organization]:
        return sorted(self._by_id.values(), key=lambda o: o.created_at, reverse=True)


class InMemorySuperAdminRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, SuperAdmin] = {}

    async def get(self, admin_id: UUID) -> SuperAdmin | None:
        return self._by_id.get(admin_id)

    async def get_by_email(self, email: str) -> SuperAdmin | None:
        email = email.strip().lower()
        return next((a for a in self._by_id.values() if a.email == email), None)

    async def add(self, admin: SuperAdmin) -> None:
        if await self.get_by_email(admin.email) is not None:
            raise ValueError("email already exists")
        self._by_id[admin.id] = admin

    async def save(self, admin: SuperAdmin) -> None:
        self._by_id[admin.id] = admin
