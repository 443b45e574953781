from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from lms.models.organization import utcnow

COURSE_STATUSES = ("draft", "published", "archived")
LESSON_TYPES = ("video", "pdf", "text")
VIDEO_SOURCES = ("upload", "youtube", "sharepoint")
EXTERNAL_VIDEO_SOURCES = ("youtube", "sharepoint")


@dataclass(frozen=True, slots=True)
class Pricing:
    is_free: bool = True
    price: float = 0
    discount_percentage: float = 0


@dataclass(frozen=True, slots=True)
class Seo:
    meta_title: str | None = None
    meta_description: str | None = None


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    slug: str
    status: str = "draft"  # draft|published|archived
    category: str | None = None
    level: str | None = None
    language: str = "english"
    currency: str = "INR"
    pricing: Pricing = field(default_factory=Pricing)
    thumbnail_url: str | None = None
    subtitle: str | None = None
    short_description: str | None = None
    full_description: str | None = None
    learning_outcomes: tuple[str, ...] = ()
    requirements: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    seo: Seo = field(default_factory=Seo)
    total_lessons: int = 0
    total_duration_minutes: int = 0
    created_by: UUID | None = None
    updated_by: UUID | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(*, title: str, slug: str, created_by: UUID | None = None, **fields) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            slug=slug,
            created_by=created_by,
            updated_by=created_by,
            **fields,
        )


@dataclass(frozen=True, slots=True)
class CourseSection:
    id: UUID
    course_id: UUID
    title: str
    order: int
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(*, course_id: UUID, title: str, order: int) -> CourseSection:
        return CourseSection(id=uuid4(), course_id=course_id, title=title, order=order)


@dataclass(frozen=True, slots=True)
class CourseLesson:
    """One lesson inside a section.

    A video lesson is either uploaded (resource_url/resource_public_id set,
    video_url cleared) or external (video_url set, resource fields cleared).
    The service keeps the two groups exclusive; storage does not.
    """

    id: UUID
    course_id: UUID
    section_id: UUID
    title: str
    order: int
    type: str = "video"  # video|pdf|text
    video_source: str = "upload"  # upload|youtube|sharepoint
    video_url: str | None = None
    resource_url: str | None = None
    resource_public_id: str | None = None
    text_content: str | None = None
    is_preview: bool = False
    duration_minutes: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(*, course_id: UUID, section_id: UUID, title: str, order: int, **fields) -> CourseLesson:
        return CourseLesson(
            id=uuid4(),
            course_id=course_id,
            section_id=section_id,
            title=title,
            order=order,
            **fields,
        )
