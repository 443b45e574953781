from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

TENANT_ROLES = frozenset({"admin", "subOrgAdmin", "educator", "learner"})
SUPERADMIN_ROLE = "superadmin"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller, built once from a validated identity token.

    Every domain operation receives this instead of reading claims off
    the request.

        user_id:    token subject (OrgUser id, or SuperAdmin id)
        role:       admin | subOrgAdmin | educator | learner | superadmin
        org_id:     owning organization (unset for super-admins)
        db_name:    tenant database the caller belongs to (unset for super-admins)
        sub_org_id: sub-organization the caller is scoped to, if any
    """

    user_id: UUID
    role: str
    org_id: UUID | None = None
    db_name: str | None = None
    sub_org_id: UUID | None = None

    def has_role(self, role: str) -> bool:
        return self.role == role

    def has_any_role(self, roles: set[str] | frozenset[str]) -> bool:
        return self.role in roles

    def is_superadmin(self) -> bool:
        return self.role == SUPERADMIN_ROLE
