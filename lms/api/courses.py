"""Courses and curriculum (/courses)."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from lms.api.dependencies import Media, Tenant, read_upload, require_any_role
from lms.api.schemas import (
    CourseIn,
    CourseOut,
    CurriculumSectionOut,
    LessonIn,
    LessonOut,
    SectionIn,
    SectionOut,
    ok,
    page_out,
)
from lms.models.principal import Principal
from lms.services import course_service
from lms.services.pagination import PageRequest

router = APIRouter(prefix="/courses", tags=["courses"])

Author = Annotated[Principal, Depends(require_any_role({"admin", "educator"}))]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(body: CourseIn, principal: Author, repos: Tenant) -> dict:
    course = await course_service.create_course(
        repos, principal, body.model_dump(exclude_unset=True)
    )
    return ok(CourseOut.model_validate(course))


@router.get("")
async def list_courses(
    _principal: Author,
    repos: Tenant,
    status_: Annotated[str | None, Query(alias="status")] = None,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    result = await course_service.list_courses(
        repos, status=status_, paging=PageRequest.of(page, limit, default_limit=10)
    )
    return ok(page_out(result, [CourseOut.model_validate(c) for c in result.items]))


@router.patch("/sections/{section_id}")
async def update_section(
    section_id: UUID, body: SectionIn, _principal: Author, repos: Tenant
) -> dict:
    section = await course_service.update_section(
        repos, section_id, body.model_dump(exclude_unset=True)
    )
    return ok(SectionOut.model_validate(section))


@router.delete("/sections/{section_id}")
async def delete_section(section_id: UUID, _principal: Author, repos: Tenant) -> dict:
    await course_service.delete_section(repos, section_id)
    return ok(message="Section deleted")


@router.patch("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: UUID, body: LessonIn, _principal: Author, repos: Tenant
) -> dict:
    lesson = await course_service.update_lesson(
        repos, lesson_id, body.model_dump(exclude_unset=True)
    )
    return ok(LessonOut.model_validate(lesson))


@router.delete("/lessons/{lesson_id}")
async def delete_lesson(lesson_id: UUID, _principal: Author, repos: Tenant) -> dict:
    await course_service.delete_lesson(repos, lesson_id)
    return ok(message="Lesson deleted")


@router.post("/lessons/{lesson_id}/material")
async def upload_lesson_material(
    lesson_id: UUID,
    _principal: Author,
    repos: Tenant,
    store: Media,
    file: Annotated[UploadFile | None, File()] = None,
) -> dict:
    upload = await read_upload(file)
    lesson = await course_service.attach_lesson_material(
        repos,
        store,
        lesson_id,
        data=upload.data if upload else b"",
        filename=upload.filename if upload else None,
        content_type=upload.content_type if upload else None,
    )
    return ok(LessonOut.model_validate(lesson))


@router.get("/{course_id}")
async def get_course(course_id: UUID, _principal: Author, repos: Tenant) -> dict:
    course = await course_service.get_course(repos, course_id)
    return ok(CourseOut.model_validate(course))


@router.patch("/{course_id}")
async def update_course(
    course_id: UUID, body: CourseIn, principal: Author, repos: Tenant
) -> dict:
    course = await course_service.update_course(
        repos, principal, course_id, body.model_dump(exclude_unset=True)
    )
    return ok(CourseOut.model_validate(course))


@router.delete("/{course_id}")
async def delete_course(course_id: UUID, _principal: Author, repos: Tenant) -> dict:
    await course_service.delete_course(repos, course_id)
    return ok(message="Course deleted")


@router.get("/{course_id}/curriculum")
async def get_curriculum(course_id: UUID, _principal: Author, repos: Tenant) -> dict:
    curriculum = await course_service.get_curriculum(repos, course_id)
    return ok(
        {
            "courseId": course_id,
            "sections": [
                CurriculumSectionOut(
                    **SectionOut.model_validate(item.section).model_dump(),
                    lessons=[LessonOut.model_validate(l) for l in item.lessons],
                )
                for item in curriculum
            ],
        }
    )


@router.post("/{course_id}/sections", status_code=status.HTTP_201_CREATED)
async def create_section(
    course_id: UUID, body: SectionIn, _principal: Author, repos: Tenant
) -> dict:
    section = await course_service.create_section(repos, course_id, title=body.title)
    return ok(SectionOut.model_validate(section))


@router.post("/{course_id}/sections/{section_id}/lessons", status_code=status.HTTP_201_CREATED)
async def create_lesson(
    course_id: UUID, section_id: UUID, body: LessonIn, _principal: Author, repos: Tenant
) -> dict:
    lesson = await course_service.create_lesson(
        repos, course_id, section_id, body.model_dump(exclude_unset=True)
    )
    return ok(LessonOut.model_validate(lesson))
