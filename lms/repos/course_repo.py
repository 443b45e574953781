from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.course import Course, CourseLesson, CourseSection
from lms.repos._paging import paginate


class CourseRepo(Protocol):
    async def get(self, course_id: UUID) -> Course | None: ...
    async def add(self, course: Course) -> None: ...
    async def save(self, course: Course) -> None: ...
    async def delete(self, course_id: UUID) -> None: ...
    async def search(
        self, *, status: str | None = None, offset: int = 0, limit: int = 10
    ) -> tuple[list[Course], int]: ...


class SectionRepo(Protocol):
    async def get(self, section_id: UUID) -> CourseSection | None: ...
    async def add(self, section: CourseSection) -> None: ...
    async def save(self, section: CourseSection) -> None: ...
    async def delete(self, section_id: UUID) -> None: ...
    async def list_for_course(self, course_id: UUID) -> list[CourseSection]: ...
    async def count_for_course(self, course_id: UUID) -> int: ...
    async def delete_for_course(self, course_id: UUID) -> int: ...


class LessonRepo(Protocol):
    async def get(self, lesson_id: UUID) -> CourseLesson | None: ...
    async def add(self, lesson: CourseLesson) -> None: ...
    async def save(self, lesson: CourseLesson) -> None: ...
    async def delete(self, lesson_id: UUID) -> None: ...
    async def list_for_course(self, course_id: UUID) -> list[CourseLesson]: ...
    async def count_for_section(self, section_id: UUID) -> int: ...
    async def delete_for_course(self, course_id: UUID) -> int: ...
    async def delete_for_section(self, section_id: UUID) -> int: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def get(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def add(self, course: Course) -> None:
        self._by_id[course.id] = course

    async def save(self, course: Course) -> None:
        self._by_id[course.id] = course

    async def delete(self, course_id: UUID) -> None:
        self._by_id.pop(course_id, None)

    async def search(
        self, *, status: str | None = None, offset: int = 0, limit: int = 10
    ) -> tuple[list[Course], int]:
        items = [c for c in self._by_id.values() if status is None or c.status == status]
        items.sort(key=lambda c: c.created_at, reverse=True)
        return paginate(items, offset, limit)


class InMemorySectionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, CourseSection] = {}

    async def get(self, section_id: UUID) -> CourseSection | None:
        return self._by_id.get(section_id)

    async def add(self, section: CourseSection) -> None:
        self._by_id[section.id] = section

    async def save(self, section: CourseSection) -> None:
        self._by_id[section.id] = section

    async def delete(self, section_id: UUID) -> None:
        self._by_id.pop(section_id, None)

    async def list_for_course(self, course_id: UUID) -> list[CourseSection]:
        items = [s for s in self._by_id.values() if s.course_id == course_id]
        return sorted(items, key=lambda s: s.order)

    async def count_for_course(self, course_id: UUID) -> int:
        return sum(1 for s in self._by_id.values() if s.course_id == course_id)

    async def delete_for_course(self, course_id: UUID) -> int:
        doomed = [s.id for s in self._by_id.values() if s.course_id == course_id]
        for section_id in doomed:
            del self._by_id[section_id]
        return len(doomed)


class InMemoryLessonRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, CourseLesson] = {}

    async def get(self, lesson_id: UUID) -> CourseLesson | None:
        return self._by_id.get(lesson_id)

    async def add(self, lesson: CourseLesson) -> None:
        self._by_id[lesson.id] = lesson

    async def save(self, lesson: CourseLesson) -> None:
        self._by_id[lesson.id] = lesson

    async def delete(self, lesson_id: UUID) -> None:
        self._by_id.pop(lesson_id, None)

    async def list_for_course(self, course_id: UUID) -> list[CourseLesson]:
        items = [l for l in self._by_id.values() if l.course_id == course_id]
        return sorted(items, key=lambda l: l.order)

    async def count_for_section(self, section_id: UUID) -> int:
        return sum(1 for l in self._by_id.values() if l.section_id == section_id)

    async def delete_for_course(self, course_id: UUID) -> int:
        return self._delete_where(lambda l: l.course_id == course_id)

    async def delete_for_section(self, section_id: UUID) -> int:
        return self._delete_where(lambda l: l.section_id == section_id)

    def _delete_where(self, predicate) -> int:
        doomed = [l.id for l in self._by_id.values() if predicate(l)]
        for lesson_id in doomed:
            del self._by_id[lesson_id]
        return len(doomed)
