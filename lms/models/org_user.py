from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from lms.models.organization import utcnow

USER_ROLES = ("admin", "subOrgAdmin", "educator", "learner")
USER_STATUSES = ("active", "inactive", "blocked")
VERIFICATION_STATUSES = ("pending", "approved", "rejected", "unverified")

# Shape returned for educators that have never filled in a profile
DEFAULT_EDUCATOR_PROFILE: dict[str, Any] = {
    "title": "",
    "bio": "",
    "highestQualification": "",
    "yearsOfExperience": None,
    "expertiseAreas": [],
    "languages": [],
    "linkedinUrl": "",
    "portfolioUrl": "",
}


@dataclass(frozen=True, slots=True)
class VerificationDocument:
    id: UUID
    type: str
    url: str
    public_id: str
    uploaded_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(*, type: str, url: str, public_id: str) -> VerificationDocument:
        return VerificationDocument(id=uuid4(), type=type, url=url, public_id=public_id)


@dataclass(frozen=True, slots=True)
class OrgUser:
    id: UUID
    name: str
    role: str  # admin|subOrgAdmin|educator|learner
    email: str | None = None
    phone: str | None = None
    password_hash: str | None = None
    status: str = "active"  # active|inactive|blocked
    sub_org_id: UUID | None = None
    last_login_at: datetime | None = None
    verification_status: str | None = None
    verification_notes: str | None = None
    verified_by: UUID | None = None
    verified_at: datetime | None = None
    verification_docs: tuple[VerificationDocument, ...] = ()
    educator_profile: dict[str, Any] | None = None
    created_by: UUID | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(
        *,
        name: str,
        role: str,
        email: str | None = None,
        phone: str | None = None,
        password_hash: str | None = None,
        sub_org_id: UUID | None = None,
        created_by: UUID | None = None,
    ) -> OrgUser:
        return OrgUser(
            id=uuid4(),
            name=name,
            role=role,
            email=email.strip().lower() if email else None,
            phone=phone,
            password_hash=password_hash,
            sub_org_id=sub_org_id,
            created_by=created_by,
        )

    @property
    def is_verified_educator(self) -> bool:
        return self.role == "educator" and self.verification_status == "approved"
