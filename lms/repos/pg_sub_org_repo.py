"""PostgreSQL implementation of SubOrgRepo."""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import SubOrgRow
from lms.models.sub_org import SubOrg


class PgSubOrgRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, sub_org_id: UUID) -> SubOrg | None:
        row = await self._session.get(SubOrgRow, sub_org_id)
        return _row_to_sub_org(row) if row is not None else None

    async def get_by_code(self, code: str) -> SubOrg | None:
        row = (
            await self._session.execute(select(SubOrgRow).where(SubOrgRow.code == code))
        ).scalar_one_or_none()
        return _row_to_sub_org(row) if row is not None else None

    async def add(self, sub_org: SubOrg) -> None:
        self._session.add(SubOrgRow(**asdict(sub_org)))
        await self._session.flush()

    async def save(self, sub_org: SubOrg) -> None:
        values = asdict(sub_org)
        del values["id"]
        await self._session.execute(
            update(SubOrgRow).where(SubOrgRow.id == sub_org.id).values(**values)
        )

    async def list_all(self, *, only_id: UUID | None = None) -> list[SubOrg]:
        stmt = select(SubOrgRow).order_by(SubOrgRow.created_at.desc())
        if only_id is not None:
            stmt = stmt.where(SubOrgRow.id == only_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_sub_org(r) for r in rows]


def _row_to_sub_org(row: SubOrgRow) -> SubOrg:
    return SubOrg(
        id=row.id,
        name=row.name,
        code=row.code,
        description=row.description,
        status=row.status,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
