"""PostgreSQL implementation of OrgUserRepo."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import OrgUserRow
from lms.models.org_user import OrgUser, VerificationDocument


class PgOrgUserRepo:
    """Satisfies the OrgUserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID) -> OrgUser | None:
        row = await self._session.get(OrgUserRow, user_id)
        return _row_to_user(row) if row is not None else None

    async def get_by_email(self, email: str) -> OrgUser | None:
        stmt = select(OrgUserRow).where(OrgUserRow.email == email.strip().lower())
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def add(self, user: OrgUser) -> None:
        self._session.add(OrgUserRow(**_user_values(user)))
        await self._session.flush()

    async def save(self, user: OrgUser) -> None:
        values = _user_values(user)
        del values["id"]
        await self._session.execute(
            update(OrgUserRow).where(OrgUserRow.id == user.id).values(**values)
        )

    async def search(
        self,
        *,
        role: str | None = None,
        status: str | None = None,
        verification_status: str | None = None,
        sub_org_id: UUID | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
    ) -> tuple[list[OrgUser], int]:
        conditions = []
        if role is not None:
            conditions.append(OrgUserRow.role == role)
        if status is not None:
            conditions.append(OrgUserRow.status == status)
        if verification_status is not None:
            conditions.append(OrgUserRow.verification_status == verification_status)
        if sub_org_id is not None:
            conditions.append(OrgUserRow.sub_org_id == sub_org_id)
        if q:
            conditions.append(
                or_(
                    OrgUserRow.name.icontains(q, autoescape=True),
                    OrgUserRow.email.icontains(q, autoescape=True),
                    OrgUserRow.phone.icontains(q, autoescape=True),
                )
            )

        total = await self._session.scalar(
            select(func.count()).select_from(OrgUserRow).where(*conditions)
        )
        order_col = getattr(OrgUserRow, order_by)
        stmt = (
            select(OrgUserRow)
            .where(*conditions)
            .order_by(order_col.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_user(r) for r in rows], int(total or 0)

    async def count_by_sub_org(self) -> dict[UUID, int]:
        stmt = (
            select(OrgUserRow.sub_org_id, func.count())
            .where(OrgUserRow.sub_org_id.is_not(None))
            .group_by(OrgUserRow.sub_org_id)
        )
        return {sub_org_id: count for sub_org_id, count in await self._session.execute(stmt)}


def _user_values(user: OrgUser) -> dict[str, Any]:
    values = {name: getattr(user, name) for name in OrgUser.__dataclass_fields__}
    values["verification_docs"] = [
        {
            "id": str(doc.id),
            "type": doc.type,
            "url": doc.url,
            "public_id": doc.public_id,
            "uploaded_at": doc.uploaded_at.isoformat(),
        }
        for doc in user.verification_docs
    ]
    return values


def _row_to_user(row: OrgUserRow) -> OrgUser:
    docs = tuple(
        VerificationDocument(
            id=UUID(d["id"]),
            type=d["type"],
            url=d["url"],
            public_id=d["public_id"],
            uploaded_at=datetime.fromisoformat(d["uploaded_at"]),
        )
        for d in (row.verification_docs or [])
    )
    return OrgUser(
        id=row.id,
        name=row.name,
        role=row.role,
        email=row.email,
        phone=row.phone,
        password_hash=row.password_hash,
        status=row.status,
        sub_org_id=row.sub_org_id,
        last_login_at=row.last_login_at,
        verification_status=row.verification_status,
        verification_notes=row.verification_notes,
        verified_by=row.verified_by,
        verified_at=row.verified_at,
        verification_docs=docs,
        educator_profile=row.educator_profile,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
