"""Fine-grained access checks applied inside domain operations.

The routers only check that a role may reach an operation family at all
(``require_any_role``).  These functions apply the per-row rules once
the row has been loaded:

  subOrgAdmin  rows whose sub-org differs from the caller's are off limits
  educator     only their own rows (their profile, their batches)
  admin-only   writes that a subOrgAdmin may list but not change

Plain functions rather than dependencies: they need the loaded row.
"""

from __future__ import annotations

import logging
from uuid import UUID

from lms.core.errors import ForbiddenError
from lms.models.principal import Principal

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({"admin", "subOrgAdmin"})


def check_sub_org_scope(
    principal: Principal, resource_sub_org_id: UUID | None, message: str = "Forbidden"
) -> None:
    """Raise 403 when a subOrgAdmin touches a row from another sub-org.

    Rows without a sub-org (root-level) stay visible, as do callers
    without one.
    """
    if not principal.has_role("subOrgAdmin"):
        return
    if principal.sub_org_id is None or resource_sub_org_id is None:
        return
    if resource_sub_org_id != principal.sub_org_id:
        logger.warning(
            "Access denied: user=%s sub_org=%s resource_sub_org=%s",
            principal.user_id,
            principal.sub_org_id,
            resource_sub_org_id,
        )
        raise ForbiddenError(message)


def check_educator_self(
    principal: Principal, owner_id: UUID, message: str = "Forbidden"
) -> None:
    """Raise 403 when an educator acts on a row owned by someone else."""
    if principal.has_role("educator") and principal.user_id != owner_id:
        logger.warning(
            "Access denied: educator=%s owner=%s", principal.user_id, owner_id
        )
        raise ForbiddenError(message)


def require_tenant_admin(principal: Principal, message: str) -> None:
    if not principal.has_role("admin"):
        logger.warning(
            "Access denied: user=%s role=%s needs admin", principal.user_id, principal.role
        )
        raise ForbiddenError(message)


def sub_org_filter(principal: Principal) -> UUID | None:
    """Sub-org a list query must be narrowed to, if any."""
    if principal.has_role("subOrgAdmin"):
        return principal.sub_org_id
    return None


def check_can_manage_user(
    principal: Principal, target_role: str, target_sub_org_id: UUID | None
) -> None:
    """Raise 403 when a subOrgAdmin writes to an admin or a root-level user.

    Sub-org admins manage the non-admin members of their own sub-org only.
    """
    if not principal.has_role("subOrgAdmin"):
        return
    if target_role in ADMIN_ROLES or target_sub_org_id is None:
        logger.warning(
            "Access denied: user=%s may not manage role=%s sub_org=%s",
            principal.user_id,
            target_role,
            target_sub_org_id,
        )
        raise ForbiddenError("SubOrg admin cannot manage this user")
    check_sub_org_scope(principal, target_sub_org_id)
