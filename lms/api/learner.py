"""Learner self-service (/learner)."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from lms.api.dependencies import Tenant, require_any_role
from lms.api.schemas import EnrollmentOut, EnrollmentTermsIn, ok
from lms.models.principal import Principal
from lms.services import batch_service
from lms.services.batch_service import EnrollmentTerms

router = APIRouter(prefix="/learner", tags=["learner"])

Learner = Annotated[Principal, Depends(require_any_role({"learner"}))]


@router.post("/batches/{batch_id}/enroll", status_code=status.HTTP_201_CREATED)
async def self_enroll(
    batch_id: UUID,
    principal: Learner,
    repos: Tenant,
    body: EnrollmentTermsIn | None = None,
) -> dict:
    body = body or EnrollmentTermsIn()
    enrollment = await batch_service.self_enroll(
        repos,
        principal,
        batch_id,
        EnrollmentTerms(start_date=body.start_date, expiry_date=body.expiry_date, notes=body.notes),
    )
    return ok(EnrollmentOut.model_validate(enrollment))
