"""Wire schemas.

JSON bodies use camelCase on the wire (``orgSlug``, ``subOrgId``); the
models accept either spelling and services receive snake_case via
``model_dump(exclude_unset=True)``.  Every response is wrapped by
``ok()`` as ``{"success": true, "data": ...}``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lms.models.org_user import DEFAULT_EDUCATOR_PROFILE, OrgUser
from lms.services.pagination import Page


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


def ok(data: Any = None, *, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = jsonable_encoder(data, by_alias=True)
    return body


def page_out(page: Page, items: list[Any]) -> dict[str, Any]:
    return {
        "items": items,
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "totalPages": page.total_pages,
        },
    }


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginIn(CamelModel):
    org_slug: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class SuperAdminLoginIn(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class BrandingOut(CamelModel):
    logo_url: str | None = None
    favicon_url: str | None = None
    primary_color: str
    secondary_color: str


class LoginUserOut(CamelModel):
    id: UUID
    name: str
    email: str | None = None
    role: str
    sub_org_id: UUID | None = None


class LoginOrgOut(CamelModel):
    id: UUID
    name: str
    slug: str
    db_name: str
    branding: BrandingOut


class SuperAdminOut(CamelModel):
    id: UUID
    name: str
    email: str
    role: str = "superadmin"


# ---------------------------------------------------------------------------
# Organizations (super-admin)
# ---------------------------------------------------------------------------


class OrganizationOut(CamelModel):
    id: UUID
    name: str
    slug: str
    db_name: str
    status: str
    primary_contact_name: str | None = None
    primary_contact_email: str | None = None
    primary_contact_phone: str | None = None
    subscription_plan_code: str
    subscription_status: str
    domain: str | None = None
    branding: BrandingOut
    created_at: datetime
    updated_at: datetime


class StatusIn(CamelModel):
    status: str | None = None


# ---------------------------------------------------------------------------
# Users and sub-orgs
# ---------------------------------------------------------------------------


class UserCreateIn(CamelModel):
    name: str | None = None
    role: str | None = None
    email: str | None = None
    phone: str | None = None
    password: str | None = None
    sub_org_id: UUID | None = None


class UserUpdateIn(CamelModel):
    name: str | None = None
    phone: str | None = None
    role: str | None = None
    sub_org_id: UUID | None = None


class ResetPasswordIn(CamelModel):
    new_password: str | None = None


class UserOut(CamelModel):
    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    role: str
    status: str
    sub_org_id: UUID | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class SubOrgIn(CamelModel):
    name: str | None = None
    code: str | None = None
    description: str | None = None


class SubOrgWithAdminIn(SubOrgIn):
    admin_name: str | None = None
    admin_email: str | None = None
    admin_phone: str | None = None
    admin_password: str | None = None


class TransferUserIn(CamelModel):
    sub_org_id: UUID | None = None


class SubOrgOut(CamelModel):
    id: UUID
    name: str
    code: str | None = None
    description: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime
    user_count: int | None = None


# ---------------------------------------------------------------------------
# Educators
# ---------------------------------------------------------------------------


class EducatorProfileIn(CamelModel):
    educator_profile: dict[str, Any] | None = None


class VerifyIn(CamelModel):
    status: str | None = None
    notes: str | None = None


class DocumentOut(CamelModel):
    id: UUID
    type: str
    url: str
    public_id: str
    uploaded_at: datetime


class EducatorListItemOut(CamelModel):
    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    status: str
    user_status: str
    docs_count: int
    reviewed_at: datetime | None = None

    @classmethod
    def of(cls, user: OrgUser) -> EducatorListItemOut:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            status=user.verification_status or "unverified",
            user_status=user.status,
            docs_count=len(user.verification_docs),
            reviewed_at=user.verified_at,
        )


class EducatorOut(CamelModel):
    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    status: str
    sub_org_id: UUID | None = None
    verification_status: str
    verification_notes: str | None = None
    verified_by: UUID | None = None
    verified_at: datetime | None = None
    documents: list[DocumentOut]
    educator_profile: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def of(cls, user: OrgUser) -> EducatorOut:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            status=user.status,
            sub_org_id=user.sub_org_id,
            verification_status=user.verification_status or "pending",
            verification_notes=user.verification_notes,
            verified_by=user.verified_by,
            verified_at=user.verified_at,
            documents=[DocumentOut.model_validate(d) for d in user.verification_docs],
            educator_profile={**DEFAULT_EDUCATOR_PROFILE, **(user.educator_profile or {})},
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class VerificationStatusOut(CamelModel):
    educator_id: UUID
    name: str
    status: str
    documents: list[DocumentOut]
    last_updated: datetime

    @classmethod
    def of(cls, user: OrgUser) -> VerificationStatusOut:
        return cls(
            educator_id=user.id,
            name=user.name,
            status=user.verification_status or "pending",
            documents=[DocumentOut.model_validate(d) for d in user.verification_docs],
            last_updated=user.updated_at,
        )


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


class PricingIn(CamelModel):
    is_free: bool | None = None
    price: float | None = Field(default=None, ge=0)
    discount_percentage: float | None = Field(default=None, ge=0, le=100)


class SeoIn(CamelModel):
    meta_title: str | None = None
    meta_description: str | None = None


class CourseIn(CamelModel):
    title: str | None = None
    slug: str | None = None
    status: str | None = None
    category: str | None = None
    level: str | None = None
    language: str | None = None
    currency: str | None = None
    price: float | None = Field(default=None, ge=0)
    pricing: PricingIn | None = None
    thumbnail_url: str | None = None
    subtitle: str | None = None
    short_description: str | None = None
    full_description: str | None = None
    learning_outcomes: list[str] | None = None
    requirements: list[str] | None = None
    tags: list[str] | None = None
    seo: SeoIn | None = None


class PricingOut(CamelModel):
    is_free: bool
    price: float
    discount_percentage: float


class SeoOut(CamelModel):
    meta_title: str | None = None
    meta_description: str | None = None


class CourseOut(CamelModel):
    id: UUID
    title: str
    slug: str
    status: str
    category: str | None = None
    level: str | None = None
    language: str
    currency: str
    pricing: PricingOut
    thumbnail_url: str | None = None
    subtitle: str | None = None
    short_description: str | None = None
    full_description: str | None = None
    learning_outcomes: list[str]
    requirements: list[str]
    tags: list[str]
    seo: SeoOut
    total_lessons: int
    total_duration_minutes: int
    created_by: UUID | None = None
    updated_by: UUID | None = None
    created_at: datetime
    updated_at: datetime


class SectionIn(CamelModel):
    title: str | None = None
    order: int | None = None


class LessonIn(CamelModel):
    title: str | None = None
    type: str | None = None
    video_source: str | None = None
    video_url: str | None = None
    text_content: str | None = None
    is_preview: bool | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    order: int | None = None


class SectionOut(CamelModel):
    id: UUID
    course_id: UUID
    title: str
    order: int


class LessonOut(CamelModel):
    id: UUID
    course_id: UUID
    section_id: UUID
    title: str
    order: int
    type: str
    video_source: str
    video_url: str | None = None
    resource_url: str | None = None
    resource_public_id: str | None = None
    text_content: str | None = None
    is_preview: bool
    duration_minutes: int | None = None


class CurriculumSectionOut(SectionOut):
    lessons: list[LessonOut]


# ---------------------------------------------------------------------------
# Batches and enrollments
# ---------------------------------------------------------------------------


class BatchIn(CamelModel):
    name: str | None = None
    code: str | None = None
    course_id: str | None = None
    educator_id: UUID | None = None
    sub_org_id: UUID | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    capacity: int | None = Field(default=None, ge=0)
    status: str | None = None
    schedule: dict[str, Any] | None = None
    mode: str | None = None


class EnrollmentTermsIn(CamelModel):
    start_date: datetime | None = None
    expiry_date: datetime | None = None
    notes: str | None = None


class EnrollIn(EnrollmentTermsIn):
    learner_id: UUID | None = None


class BulkEnrollIn(EnrollmentTermsIn):
    learner_ids: list[UUID] | None = None


class BatchOut(CamelModel):
    id: UUID
    name: str
    code: str | None = None
    course_id: str
    educator_id: UUID
    sub_org_id: UUID | None = None
    mode: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    capacity: int
    enrollment_count: int
    status: str
    schedule: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class EnrollmentOut(CamelModel):
    id: UUID
    batch_id: UUID
    learner_id: UUID
    sub_org_id: UUID | None = None
    status: str
    source: str
    start_date: datetime | None = None
    expiry_date: datetime | None = None
    notes: str | None = None
    enrolled_by: UUID | None = None
    enrolled_at: datetime


class BulkItemOut(CamelModel):
    learner_id: UUID
    status: str
    enrollment_id: UUID | None = None
    message: str | None = None


class BulkEnrollOut(CamelModel):
    batch_id: UUID
    total: int
    success_count: int
    failure_count: int
    results: list[BulkItemOut]
