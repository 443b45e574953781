from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

ORG_STATUSES = ("active", "inactive", "suspended")
SUBSCRIPTION_STATUSES = ("trial", "active", "expired", "cancelled")

DEFAULT_PRIMARY_COLOR = "#2E5BFF"
DEFAULT_SECONDARY_COLOR = "#F2F4FF"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Branding:
    logo_url: str | None = None
    favicon_url: str | None = None
    primary_color: str = DEFAULT_PRIMARY_COLOR
    secondary_color: str = DEFAULT_SECONDARY_COLOR


@dataclass(frozen=True, slots=True)
class Organization:
    id: UUID
    name: str
    slug: str
    db_name: str
    status: str = "active"  # active|inactive|suspended
    primary_contact_name: str | None = None
    primary_contact_email: str | None = None
    primary_contact_phone: str | None = None
    subscription_plan_code: str = "PRO"
    subscription_status: str = "active"  # trial|active|expired|cancelled
    domain: str | None = None
    branding: Branding = field(default_factory=Branding)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(
        *,
        name: str,
        slug: str,
        db_name: str,
        primary_contact_email: str,
        primary_contact_name: str | None = None,
        primary_contact_phone: str | None = None,
        subscription_plan_code: str = "PRO",
        domain: str | None = None,
        branding: Branding | None = None,
    ) -> Organization:
        return Organization(
            id=uuid4(),
            name=name,
            slug=slug,
            db_name=db_name,
            primary_contact_name=primary_contact_name,
            primary_contact_email=primary_contact_email,
            primary_contact_phone=primary_contact_phone,
            subscription_plan_code=subscription_plan_code,
            domain=domain,
            branding=branding or Branding(),
        )


@dataclass(frozen=True, slots=True)
class SuperAdmin:
    id: UUID
    name: str
    email: str
    password_hash: str
    status: str = "active"  # active|inactive
    last_login_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(*, name: str, email: str, password_hash: str) -> SuperAdmin:
        return SuperAdmin(
            id=uuid4(), name=name, email=email.strip().lower(), password_hash=password_hash
        )
