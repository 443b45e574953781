"""Batches and enrollments (/admin/batches)."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from lms.api.dependencies import Tenant, require_any_role
from lms.api.schemas import (
    BatchIn,
    BatchOut,
    BulkEnrollIn,
    BulkEnrollOut,
    BulkItemOut,
    EnrollIn,
    EnrollmentOut,
    StatusIn,
    ok,
    page_out,
)
from lms.models.principal import Principal
from lms.services import batch_service
from lms.services.batch_service import EnrollmentTerms
from lms.services.pagination import PageRequest

router = APIRouter(prefix="/admin/batches", tags=["batches"])

Staff = Annotated[Principal, Depends(require_any_role({"admin", "subOrgAdmin", "educator"}))]


def _terms(body: EnrollIn | BulkEnrollIn) -> EnrollmentTerms:
    return EnrollmentTerms(
        start_date=body.start_date, expiry_date=body.expiry_date, notes=body.notes
    )


@router.get("")
async def list_batches(
    principal: Staff,
    repos: Tenant,
    status_: Annotated[str | None, Query(alias="status")] = None,
    educator_id: Annotated[UUID | None, Query(alias="educatorId")] = None,
    course_id: Annotated[str | None, Query(alias="courseId")] = None,
    sub_org_id: Annotated[UUID | None, Query(alias="subOrgId")] = None,
    q: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    result = await batch_service.list_batches(
        repos,
        principal,
        status=status_,
        educator_id=educator_id,
        course_id=course_id,
        sub_org_id=sub_org_id,
        q=q,
        paging=PageRequest.of(page, limit),
    )
    return ok(page_out(result, [BatchOut.model_validate(b) for b in result.items]))


@router.get("/{batch_id}")
async def get_batch(batch_id: UUID, principal: Staff, repos: Tenant) -> dict:
    batch = await batch_service.get_batch(repos, principal, batch_id)
    return ok(BatchOut.model_validate(batch))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_batch(body: BatchIn, principal: Staff, repos: Tenant) -> dict:
    batch = await batch_service.create_batch(
        repos, principal, body.model_dump(exclude_unset=True)
    )
    return ok(BatchOut.model_validate(batch))


@router.patch("/{batch_id}")
async def update_batch(batch_id: UUID, body: BatchIn, principal: Staff, repos: Tenant) -> dict:
    batch = await batch_service.update_batch(
        repos, principal, batch_id, body.model_dump(exclude_unset=True)
    )
    return ok(BatchOut.model_validate(batch))


@router.patch("/{batch_id}/status")
async def change_batch_status(
    batch_id: UUID, body: StatusIn, principal: Staff, repos: Tenant
) -> dict:
    batch = await batch_service.change_batch_status(repos, principal, batch_id, body.status)
    return ok({"id": batch.id, "status": batch.status})


@router.get("/{batch_id}/enrollments")
async def list_enrollments(
    batch_id: UUID,
    principal: Staff,
    repos: Tenant,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    result = await batch_service.list_enrollments(
        repos, principal, batch_id, PageRequest.of(page, limit)
    )
    return ok(page_out(result, [EnrollmentOut.model_validate(e) for e in result.items]))


@router.post("/{batch_id}/enrollments", status_code=status.HTTP_201_CREATED)
async def enroll_learner(
    batch_id: UUID, body: EnrollIn, principal: Staff, repos: Tenant
) -> dict:
    enrollment = await batch_service.enroll_learner(
        repos, principal, batch_id, body.learner_id, _terms(body)
    )
    return ok(EnrollmentOut.model_validate(enrollment))


@router.post("/{batch_id}/enrollments/bulk")
async def bulk_enroll(
    batch_id: UUID, body: BulkEnrollIn, principal: Staff, repos: Tenant
) -> dict:
    result = await batch_service.bulk_enroll(
        repos, principal, batch_id, body.learner_ids, _terms(body)
    )
    return ok(
        BulkEnrollOut(
            batch_id=result.batch_id,
            total=result.total,
            success_count=result.success_count,
            failure_count=result.failure_count,
            results=[BulkItemOut.model_validate(r) for r in result.results],
        )
    )
