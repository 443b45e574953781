"""Courses and their curriculum (sections and lessons).

Sections and lessons get ``order = sibling count + 1`` when created; an
update overwrites ``order`` as given, so gaps and duplicates can appear
after deletes.  Deletes cascade course -> sections -> lessons, and the
course's ``total_lessons`` / ``total_duration_minutes`` are recomputed
after every lesson-level change.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any
from uuid import UUID

from lms.core.errors import BadRequestError, NotFoundError
from lms.db.tenancy import TenantRepos
from lms.models.course import (
    COURSE_STATUSES,
    EXTERNAL_VIDEO_SOURCES,
    LESSON_TYPES,
    VIDEO_SOURCES,
    Course,
    CourseLesson,
    CourseSection,
    Pricing,
    Seo,
)
from lms.models.organization import utcnow
from lms.models.principal import Principal
from lms.services import media_service
from lms.services.media_service import MediaStore
from lms.services.pagination import Page, PageRequest

logger = logging.getLogger(__name__)

_SLUG_JUNK = re.compile(r"[^a-z0-9]+")

# Plain course attributes copied from create/update payloads as-is
_COURSE_FIELDS = (
    "category",
    "level",
    "language",
    "currency",
    "thumbnail_url",
    "subtitle",
    "short_description",
    "full_description",
)
_COURSE_LIST_FIELDS = ("learning_outcomes", "requirements", "tags")
_LESSON_FIELDS = ("title", "type", "text_content", "is_preview", "duration_minutes", "order")


@dataclass(frozen=True, slots=True)
class SectionWithLessons:
    section: CourseSection
    lessons: list[CourseLesson]


def slugify(title: str) -> str:
    return _SLUG_JUNK.sub("-", title.lower()).strip("-")


def normalize_pricing(payload: Mapping[str, Any], current: Pricing | None = None) -> Pricing:
    """Merge legacy top-level ``price`` and nested ``pricing`` into one value.

    ``pricing.price`` wins over legacy ``price`` only when the legacy field
    is absent.  ``is_free`` defaults to the current value on update and to
    "price is zero" on create; when true it forces the price to zero.
    """
    base = current or Pricing()
    nested = payload.get("pricing") or {}

    if payload.get("price") is not None:
        price = float(payload["price"])
    elif nested.get("price") is not None:
        price = float(nested["price"])
    else:
        price = base.price

    is_free = nested.get("is_free")
    if not isinstance(is_free, bool):
        is_free = current.is_free if current is not None else price == 0

    discount = nested.get("discount_percentage")
    if discount is None:
        discount = base.discount_percentage

    return Pricing(is_free=is_free, price=0 if is_free else price, discount_percentage=float(discount))


async def list_courses(
    repos: TenantRepos, *, status: str | None = None, paging: PageRequest = PageRequest(limit=10)
) -> Page[Course]:
    if status == "All":
        status = None
    items, total = await repos.courses.search(
        status=status or None, offset=paging.offset, limit=paging.limit
    )
    return Page(items=items, page=paging.page, limit=paging.limit, total=total)


async def get_course(repos: TenantRepos, course_id: UUID) -> Course:
    course = await repos.courses.get(course_id)
    if course is None:
        raise NotFoundError("Course not found")
    return course


async def create_course(
    repos: TenantRepos, principal: Principal, payload: Mapping[str, Any]
) -> Course:
    title = (payload.get("title") or "").strip()
    if not title:
        raise BadRequestError("Title is required")

    status = payload.get("status")
    if status not in COURSE_STATUSES:
        status = "draft"

    fields: dict[str, Any] = {k: payload[k] for k in _COURSE_FIELDS if payload.get(k) is not None}
    for key in _COURSE_LIST_FIELDS:
        if payload.get(key) is not None:
            fields[key] = tuple(payload[key])

    seo = payload.get("seo") or {}
    course = Course.new(
        title=title,
        slug=payload.get("slug") or slugify(title),
        created_by=principal.user_id,
        status=status,
        pricing=normalize_pricing(payload),
        seo=Seo(
            meta_title=seo.get("meta_title") or title,
            meta_description=seo.get("meta_description") or payload.get("short_description") or "",
        ),
        **fields,
    )
    await repos.courses.add(course)
    logger.info("Course created id=%s slug=%s by=%s", course.id, course.slug, principal.user_id)
    return course


async def update_course(
    repos: TenantRepos, principal: Principal, course_id: UUID, changes: Mapping[str, Any]
) -> Course:
    course = await get_course(repos, course_id)

    fields: dict[str, Any] = {k: changes[k] for k in _COURSE_FIELDS if k in changes}
    for key in _COURSE_LIST_FIELDS:
        if key in changes:
            fields[key] = tuple(changes[key] or ())
    for key in ("title", "slug"):
        if changes.get(key):
            fields[key] = changes[key]

    if "status" in changes:
        if changes["status"] not in COURSE_STATUSES:
            raise BadRequestError("Invalid status")
        fields["status"] = changes["status"]

    if "pricing" in changes or "price" in changes:
        fields["pricing"] = normalize_pricing(changes, course.pricing)

    if changes.get("seo") is not None:
        seo = changes["seo"]
        fields["seo"] = Seo(
            meta_title=seo.get("meta_title", course.seo.meta_title),
            meta_description=seo.get("meta_description", course.seo.meta_description),
        )

    course = replace(course, **fields, updated_by=principal.user_id, updated_at=utcnow())
    await repos.courses.save(course)
    return course


async def delete_course(repos: TenantRepos, course_id: UUID) -> None:
    await get_course(repos, course_id)
    lessons = await repos.lessons.delete_for_course(course_id)
    sections = await repos.sections.delete_for_course(course_id)
    await repos.courses.delete(course_id)
    logger.info(
        "Course deleted id=%s sections=%d lessons=%d", course_id, sections, lessons
    )


async def get_curriculum(repos: TenantRepos, course_id: UUID) -> list[SectionWithLessons]:
    await get_course(repos, course_id)
    sections = await repos.sections.list_for_course(course_id)
    lessons = await repos.lessons.list_for_course(course_id)
    by_section: dict[UUID, list[CourseLesson]] = {s.id: [] for s in sections}
    for lesson in lessons:
        by_section.setdefault(lesson.section_id, []).append(lesson)
    return [SectionWithLessons(section=s, lessons=by_section[s.id]) for s in sections]


# -- sections ------------------------------------------------------------


async def create_section(
    repos: TenantRepos, course_id: UUID, *, title: str | None
) -> CourseSection:
    if not title:
        raise BadRequestError("Section title is required")
    await get_course(repos, course_id)
    order = await repos.sections.count_for_course(course_id) + 1
    section = CourseSection.new(course_id=course_id, title=title, order=order)
    await repos.sections.add(section)
    return section


async def update_section(
    repos: TenantRepos, section_id: UUID, changes: Mapping[str, Any]
) -> CourseSection:
    section = await _load_section(repos, section_id)
    fields = {k: changes[k] for k in ("title", "order") if changes.get(k) is not None}
    section = replace(section, **fields, updated_at=utcnow())
    await repos.sections.save(section)
    return section


async def delete_section(repos: TenantRepos, section_id: UUID) -> None:
    section = await _load_section(repos, section_id)
    await repos.lessons.delete_for_section(section_id)
    await repos.sections.delete(section_id)
    await recompute_course_stats(repos, section.course_id)


# -- lessons -------------------------------------------------------------


async def create_lesson(
    repos: TenantRepos, course_id: UUID, section_id: UUID, payload: Mapping[str, Any]
) -> CourseLesson:
    title = payload.get("title")
    if not title:
        raise BadRequestError("Lesson title is required")
    await get_course(repos, course_id)
    section = await repos.sections.get(section_id)
    if section is None or section.course_id != course_id:
        raise NotFoundError("Section not found for this course")

    lesson_type = payload.get("type") or "video"
    if lesson_type not in LESSON_TYPES:
        raise BadRequestError("Invalid lesson type")

    video_url = payload.get("video_url") or None
    source = payload.get("video_source") or ("youtube" if video_url else "upload")
    if source not in VIDEO_SOURCES:
        raise BadRequestError("Invalid videoSource")
    if source == "upload":
        video_url = None
    elif source in EXTERNAL_VIDEO_SOURCES and not video_url:
        raise BadRequestError(f"videoUrl is required for {source} lessons")

    lesson = CourseLesson.new(
        course_id=course_id,
        section_id=section.id,
        title=title,
        order=await repos.lessons.count_for_section(section.id) + 1,
        type=lesson_type,
        video_source=source,
        video_url=video_url,
        text_content=payload.get("text_content"),
        is_preview=bool(payload.get("is_preview", False)),
        duration_minutes=payload.get("duration_minutes"),
    )
    await repos.lessons.add(lesson)
    await recompute_course_stats(repos, course_id)
    return lesson


async def update_lesson(
    repos: TenantRepos, lesson_id: UUID, changes: Mapping[str, Any]
) -> CourseLesson:
    lesson = await _load_lesson(repos, lesson_id)

    fields: dict[str, Any] = {k: changes[k] for k in _LESSON_FIELDS if k in changes}
    if "type" in fields and fields["type"] not in LESSON_TYPES:
        raise BadRequestError("Invalid lesson type")
    if fields.get("title") is None:
        fields.pop("title", None)
    if fields.get("order") is None:
        fields.pop("order", None)

    if "video_source" in changes or "video_url" in changes:
        source = changes.get("video_source")
        video_url = changes.get("video_url", lesson.video_url) or None
        if source is None:
            source = "youtube" if "video_url" in changes else lesson.video_source
        if source not in VIDEO_SOURCES:
            raise BadRequestError("Invalid videoSource")
        if source == "upload":
            fields.update(video_source="upload", video_url=None)
        else:
            if not video_url:
                raise BadRequestError(f"videoUrl is required for {source} lessons")
            fields.update(
                video_source=source,
                video_url=video_url,
                resource_url=None,
                resource_public_id=None,
            )

    lesson = replace(lesson, **fields, updated_at=utcnow())
    await repos.lessons.save(lesson)
    await recompute_course_stats(repos, lesson.course_id)
    return lesson


async def delete_lesson(repos: TenantRepos, lesson_id: UUID) -> None:
    lesson = await _load_lesson(repos, lesson_id)
    await repos.lessons.delete(lesson_id)
    await recompute_course_stats(repos, lesson.course_id)


async def attach_lesson_material(
    repos: TenantRepos,
    store: MediaStore,
    lesson_id: UUID,
    *,
    data: bytes,
    filename: str | None,
    content_type: str | None,
) -> CourseLesson:
    """Upload a file and make it the lesson's source (clears any external URL)."""
    if not data:
        raise BadRequestError("File is required (field name: 'file')")
    lesson = await _load_lesson(repos, lesson_id)
    stored = await media_service.upload_lesson_material(
        store,
        data,
        tenant=repos.db_name,
        lesson_id=lesson.id,
        filename=filename,
        content_type=content_type,
    )
    lesson = replace(
        lesson,
        resource_url=stored.url,
        resource_public_id=stored.public_id,
        video_source="upload",
        video_url=None,
        updated_at=utcnow(),
    )
    await repos.lessons.save(lesson)
    return lesson


async def recompute_course_stats(repos: TenantRepos, course_id: UUID) -> Course | None:
    course = await repos.courses.get(course_id)
    if course is None:
        return None
    lessons = await repos.lessons.list_for_course(course_id)
    course = replace(
        course,
        total_lessons=len(lessons),
        total_duration_minutes=sum(l.duration_minutes or 0 for l in lessons),
        updated_at=utcnow(),
    )
    await repos.courses.save(course)
    return course


async def _load_section(repos: TenantRepos, section_id: UUID) -> CourseSection:
    section = await repos.sections.get(section_id)
    if section is None:
        raise NotFoundError("Section not found")
    return section


async def _load_lesson(repos: TenantRepos, lesson_id: UUID) -> CourseLesson:
    lesson = await repos.lessons.get(lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    return lesson
