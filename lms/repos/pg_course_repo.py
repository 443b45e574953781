"""PostgreSQL implementations of the course, section and lesson repos."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import CourseLessonRow, CourseRow, CourseSectionRow
from lms.models.course import Course, CourseLesson, CourseSection, Pricing, Seo


class PgCourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        return _row_to_course(row) if row is not None else None

    async def add(self, course: Course) -> None:
        self._session.add(CourseRow(**_course_values(course)))
        await self._session.flush()

    async def save(self, course: Course) -> None:
        values = _course_values(course)
        del values["id"]
        await self._session.execute(
            update(CourseRow).where(CourseRow.id == course.id).values(**values)
        )

    async def delete(self, course_id: UUID) -> None:
        await self._session.execute(delete(CourseRow).where(CourseRow.id == course_id))

    async def search(
        self, *, status: str | None = None, offset: int = 0, limit: int = 10
    ) -> tuple[list[Course], int]:
        conditions = [CourseRow.status == status] if status is not None else []
        total = await self._session.scalar(
            select(func.count()).select_from(CourseRow).where(*conditions)
        )
        stmt = (
            select(CourseRow)
            .where(*conditions)
            .order_by(CourseRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows], int(total or 0)


class PgSectionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, section_id: UUID) -> CourseSection | None:
        row = await self._session.get(CourseSectionRow, section_id)
        return _row_to_section(row) if row is not None else None

    async def add(self, section: CourseSection) -> None:
        self._session.add(CourseSectionRow(**asdict(section)))
        await self._session.flush()

    async def save(self, section: CourseSection) -> None:
        values = asdict(section)
        del values["id"]
        await self._session.execute(
            update(CourseSectionRow).where(CourseSectionRow.id == section.id).values(**values)
        )

    async def delete(self, section_id: UUID) -> None:
        await self._session.execute(
            delete(CourseSectionRow).where(CourseSectionRow.id == section_id)
        )

    async def list_for_course(self, course_id: UUID) -> list[CourseSection]:
        stmt = (
            select(CourseSectionRow)
            .where(CourseSectionRow.course_id == course_id)
            .order_by(CourseSectionRow.order)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_section(r) for r in rows]

    async def count_for_course(self, course_id: UUID) -> int:
        stmt = select(func.count()).where(CourseSectionRow.course_id == course_id)
        return int(await self._session.scalar(stmt) or 0)

    async def delete_for_course(self, course_id: UUID) -> int:
        result = await self._session.execute(
            delete(CourseSectionRow).where(CourseSectionRow.course_id == course_id)
        )
        return result.rowcount


class PgLessonRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, lesson_id: UUID) -> CourseLesson | None:
        row = await self._session.get(CourseLessonRow, lesson_id)
        return _row_to_lesson(row) if row is not None else None

    async def add(self, lesson: CourseLesson) -> None:
        self._session.add(CourseLessonRow(**asdict(lesson)))
        await self._session.flush()

    async def save(self, lesson: CourseLesson) -> None:
        values = asdict(lesson)
        del values["id"]
        await self._session.execute(
            update(CourseLessonRow).where(CourseLessonRow.id == lesson.id).values(**values)
        )

    async def delete(self, lesson_id: UUID) -> None:
        await self._session.execute(
            delete(CourseLessonRow).where(CourseLessonRow.id == lesson_id)
        )

    async def list_for_course(self, course_id: UUID) -> list[CourseLesson]:
        stmt = (
            select(CourseLessonRow)
            .where(CourseLessonRow.course_id == course_id)
            .order_by(CourseLessonRow.order)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows]

    async def count_for_section(self, section_id: UUID) -> int:
        stmt = select(func.count()).where(CourseLessonRow.section_id == section_id)
        return int(await self._session.scalar(stmt) or 0)

    async def delete_for_course(self, course_id: UUID) -> int:
        result = await self._session.execute(
            delete(CourseLessonRow).where(CourseLessonRow.course_id == course_id)
        )
        return result.rowcount

    async def delete_for_section(self, section_id: UUID) -> int:
        result = await self._session.execute(
            delete(CourseLessonRow).where(CourseLessonRow.section_id == section_id)
        )
        return result.rowcount


def _course_values(course: Course) -> dict[str, Any]:
    values = {
        name: getattr(course, name)
        for name in Course.__dataclass_fields__
        if name not in ("pricing", "seo")
    }
    values.update(
        is_free=course.pricing.is_free,
        price=course.pricing.price,
        discount_percentage=course.pricing.discount_percentage,
        meta_title=course.seo.meta_title,
        meta_description=course.seo.meta_description,
        learning_outcomes=list(course.learning_outcomes),
        requirements=list(course.requirements),
        tags=list(course.tags),
    )
    return values


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        slug=row.slug,
        status=row.status,
        category=row.category,
        level=row.level,
        language=row.language,
        currency=row.currency,
        pricing=Pricing(
            is_free=row.is_free, price=row.price, discount_percentage=row.discount_percentage
        ),
        thumbnail_url=row.thumbnail_url,
        subtitle=row.subtitle,
        short_description=row.short_description,
        full_description=row.full_description,
        learning_outcomes=tuple(row.learning_outcomes or ()),
        requirements=tuple(row.requirements or ()),
        tags=tuple(row.tags or ()),
        seo=Seo(meta_title=row.meta_title, meta_description=row.meta_description),
        total_lessons=row.total_lessons,
        total_duration_minutes=row.total_duration_minutes,
        created_by=row.created_by,
        updated_by=row.updated_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_section(row: CourseSectionRow) -> CourseSection:
    return CourseSection(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        order=row.order,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_lesson(row: CourseLessonRow) -> CourseLesson:
    return CourseLesson(
        id=row.id,
        course_id=row.course_id,
        section_id=row.section_id,
        title=row.title,
        order=row.order,
        type=row.type,
        video_source=row.video_source,
        video_url=row.video_url,
        resource_url=row.resource_url,
        resource_public_id=row.resource_public_id,
        text_content=row.text_content,
        is_preview=row.is_preview,
        duration_minutes=row.duration_minutes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
