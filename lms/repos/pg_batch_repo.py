"""PostgreSQL implementations of BatchRepo and EnrollmentRepo."""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import BatchRow, EnrollmentRow
from lms.models.batch import ACTIVE_ENROLLMENT_STATUSES, Batch, Enrollment


class PgBatchRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, batch_id: UUID, *, for_update: bool = False) -> Batch | None:
        stmt = select(BatchRow).where(BatchRow.id == batch_id)
        if for_update:
            # Holds the row until the request transaction ends, so a
            # concurrent enrollment re-reads the updated counter.
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_batch(row) if row is not None else None

    async def add(self, batch: Batch) -> None:
        self._session.add(BatchRow(**asdict(batch)))
        await self._session.flush()

    async def save(self, batch: Batch) -> None:
        values = asdict(batch)
        del values["id"]
        await self._session.execute(
            update(BatchRow).where(BatchRow.id == batch.id).values(**values)
        )

    async def search(
        self,
        *,
        status: str | None = None,
        educator_id: UUID | None = None,
        course_id: str | None = None,
        sub_org_id: UUID | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Batch], int]:
        conditions = []
        if status is not None:
            conditions.append(BatchRow.status == status)
        if educator_id is not None:
            conditions.append(BatchRow.educator_id == educator_id)
        if course_id is not None:
            conditions.append(BatchRow.course_id == course_id)
        if sub_org_id is not None:
            conditions.append(BatchRow.sub_org_id == sub_org_id)
        if q:
            conditions.append(
                or_(
                    BatchRow.name.icontains(q, autoescape=True),
                    BatchRow.code.icontains(q, autoescape=True),
                )
            )

        total = await self._session.scalar(
            select(func.count()).select_from(BatchRow).where(*conditions)
        )
        stmt = (
            select(BatchRow)
            .where(*conditions)
            .order_by(BatchRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_batch(r) for r in rows], int(total or 0)


class PgEnrollmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, enrollment: Enrollment) -> None:
        self._session.add(EnrollmentRow(**asdict(enrollment)))
        await self._session.flush()

    async def find_active(self, batch_id: UUID, learner_id: UUID) -> Enrollment | None:
        stmt = (
            select(EnrollmentRow)
            .where(
                EnrollmentRow.batch_id == batch_id,
                EnrollmentRow.learner_id == learner_id,
                EnrollmentRow.status.in_(ACTIVE_ENROLLMENT_STATUSES),
            )
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row is not None else None

    async def list_for_batch(
        self, batch_id: UUID, *, offset: int = 0, limit: int = 20
    ) -> tuple[list[Enrollment], int]:
        total = await self._session.scalar(
            select(func.count()).where(EnrollmentRow.batch_id == batch_id)
        )
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.batch_id == batch_id)
            .order_by(EnrollmentRow.enrolled_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows], int(total or 0)


def _row_to_batch(row: BatchRow) -> Batch:
    return Batch(
        id=row.id,
        name=row.name,
        course_id=row.course_id,
        educator_id=row.educator_id,
        code=row.code,
        sub_org_id=row.sub_org_id,
        mode=row.mode,
        start_date=row.start_date,
        end_date=row.end_date,
        capacity=row.capacity,
        enrollment_count=row.enrollment_count,
        status=row.status,
        schedule=row.schedule or {},
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        batch_id=row.batch_id,
        learner_id=row.learner_id,
        sub_org_id=row.sub_org_id,
        status=row.status,
        source=row.source,
        start_date=row.start_date,
        expiry_date=row.expiry_date,
        notes=row.notes,
        enrolled_by=row.enrolled_by,
        enrolled_at=row.enrolled_at,
    )
