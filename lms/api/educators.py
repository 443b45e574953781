"""Educator profiles and verification (/admin/educators)."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from lms.api.dependencies import Media, Tenant, read_upload, require_any_role
from lms.api.schemas import (
    DocumentOut,
    EducatorListItemOut,
    EducatorOut,
    EducatorProfileIn,
    VerificationStatusOut,
    VerifyIn,
    ok,
    page_out,
)
from lms.models.principal import Principal
from lms.services import educator_service
from lms.services.pagination import PageRequest

router = APIRouter(prefix="/admin/educators", tags=["educators"])

Caller = Annotated[Principal, Depends(require_any_role({"admin", "subOrgAdmin", "educator"}))]


@router.get("")
async def list_educators(
    principal: Caller,
    repos: Tenant,
    status_: Annotated[str | None, Query(alias="status")] = None,
    q: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    result = await educator_service.list_educators(
        repos, principal, status=status_, q=q, paging=PageRequest.of(page, limit)
    )
    return ok(page_out(result, [EducatorListItemOut.of(u) for u in result.items]))


@router.get("/{educator_id}")
async def get_educator(educator_id: UUID, principal: Caller, repos: Tenant) -> dict:
    educator = await educator_service.get_educator(repos, principal, educator_id)
    return ok(EducatorOut.of(educator))


@router.get("/{educator_id}/verification-status")
async def get_verification_status(educator_id: UUID, principal: Caller, repos: Tenant) -> dict:
    educator = await educator_service.get_educator(repos, principal, educator_id)
    return ok(VerificationStatusOut.of(educator))


@router.patch("/{educator_id}/profile")
async def update_profile(
    educator_id: UUID, body: EducatorProfileIn, principal: Caller, repos: Tenant
) -> dict:
    educator = await educator_service.update_profile(
        repos, principal, educator_id, body.educator_profile
    )
    return ok(EducatorOut.of(educator))


@router.post("/{educator_id}/documents", status_code=status.HTTP_201_CREATED)
async def upload_document(
    educator_id: UUID,
    principal: Caller,
    repos: Tenant,
    store: Media,
    file: Annotated[UploadFile | None, File()] = None,
    doc_type: Annotated[str | None, Form(alias="type")] = None,
) -> dict:
    upload = await read_upload(file)
    educator, doc = await educator_service.add_verification_document(
        repos,
        store,
        principal,
        educator_id,
        data=upload.data if upload else b"",
        filename=upload.filename if upload else None,
        content_type=upload.content_type if upload else None,
        doc_type=doc_type,
    )
    return ok(
        {
            "document": DocumentOut.model_validate(doc),
            "verificationStatus": educator.verification_status,
        }
    )


@router.delete("/{educator_id}/documents/{doc_id}")
async def delete_document(
    educator_id: UUID, doc_id: UUID, principal: Caller, repos: Tenant, store: Media
) -> dict:
    await educator_service.delete_verification_document(
        repos, store, principal, educator_id, doc_id
    )
    return ok(message="Document deleted")


@router.patch("/{educator_id}/verify")
async def verify_educator(
    educator_id: UUID, body: VerifyIn, principal: Caller, repos: Tenant
) -> dict:
    educator = await educator_service.review_verification(
        repos, principal, educator_id, status=body.status, notes=body.notes
    )
    return ok(VerificationStatusOut.of(educator))
