"""PostgreSQL implementations of the control-plane repos."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import OrganizationRow, SuperAdminRow
from lms.models.organization import Branding, Organization, SuperAdmin


class PgOrganizationRepo:
    """Satisfies the OrganizationRepo Protocol."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, org_id: UUID) -> Organization | None:
        return await self._one(select(OrganizationRow).where(OrganizationRow.id == org_id))

    async def get_by_slug(self, slug: str) -> Organization | None:
        return await self._one(select(OrganizationRow).where(OrganizationRow.slug == slug))

    async def get_by_db_name(self, db_name: str) -> Organization | None:
        return await self._one(
            select(OrganizationRow).where(OrganizationRow.db_name == db_name)
        )

    async def add(self, org: Organization) -> None:
        self._session.add(OrganizationRow(**_org_values(org)))
        await self._session.flush()

    async def save(self, org: Organization) -> None:
        values = _org_values(org)
        del values["id"]
        await self._session.execute(
            update(OrganizationRow).where(OrganizationRow.id == org.id).values(**values)
        )

    async def list_all(self) -> list[Organization]:
        stmt = select(OrganizationRow).order_by(OrganizationRow.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_org(r) for r in rows]

    async def _one(self, stmt) -> Organization | None:
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_org(row) if row is not None else None


class PgSuperAdminRepo:
    """Satisfies the SuperAdminRepo Protocol."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, admin_id: UUID) -> SuperAdmin | None:
        row = await self._session.get(SuperAdminRow, admin_id)
        return _row_to_super_admin(row) if row is not None else None

    async def get_by_email(self, email: str) -> SuperAdmin | None:
        stmt = select(SuperAdminRow).where(SuperAdminRow.email == email.strip().lower())
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_super_admin(row) if row is not None else None

    async def add(self, admin: SuperAdmin) -> None:
        self._session.add(SuperAdminRow(**asdict(admin)))
        await self._session.flush()

    async def save(self, admin: SuperAdmin) -> None:
        values = asdict(admin)
        del values["id"]
        await self._session.execute(
            update(SuperAdminRow).where(SuperAdminRow.id == admin.id).values(**values)
        )


def _org_values(org: Organization) -> dict[str, Any]:
    values = {name: getattr(org, name) for name in Organization.__dataclass_fields__}
    values["branding"] = asdict(org.branding)
    return values


def _row_to_org(row: OrganizationRow) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        slug=row.slug,
        db_name=row.db_name,
        status=row.status,
        primary_contact_name=row.primary_contact_name,
        primary_contact_email=row.primary_contact_email,
        primary_contact_phone=row.primary_contact_phone,
        subscription_plan_code=row.subscription_plan_code,
        subscription_status=row.subscription_status,
        domain=row.domain,
        branding=Branding(**(row.branding or {})),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_super_admin(row: SuperAdminRow) -> SuperAdmin:
    return SuperAdmin(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        status=row.status,
        last_login_at=row.last_login_at,
        created_at=row.created_at,
    )
