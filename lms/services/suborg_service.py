"""Sub-organizations: listing for admins and sub-org admins, writes for admins."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any
from uuid import UUID

from lms.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from lms.db.tenancy import TenantRepos
from lms.models.org_user import OrgUser
from lms.models.organization import utcnow
from lms.models.principal import Principal
from lms.models.sub_org import SUB_ORG_STATUSES, SubOrg
from lms.services.access import require_tenant_admin
from lms.services.auth_service import hash_password_async

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubOrgSummary:
    sub_org: SubOrg
    user_count: int


async def list_sub_orgs(repos: TenantRepos, principal: Principal) -> list[SubOrgSummary]:
    only_id = principal.sub_org_id if principal.has_role("subOrgAdmin") else None
    sub_orgs = await repos.sub_orgs.list_all(only_id=only_id)
    counts = await repos.users.count_by_sub_org()
    return [SubOrgSummary(s, counts.get(s.id, 0)) for s in sub_orgs]


async def get_sub_org(repos: TenantRepos, principal: Principal, sub_org_id: UUID) -> SubOrg:
    sub_org = await _load(repos, sub_org_id)
    if (
        principal.has_role("subOrgAdmin")
        and principal.sub_org_id is not None
        and sub_org.id != principal.sub_org_id
    ):
        raise ForbiddenError("Forbidden")
    return sub_org


async def create_sub_org(
    repos: TenantRepos,
    principal: Principal,
    *,
    name: str | None,
    code: str | None = None,
    description: str | None = None,
) -> SubOrg:
    require_tenant_admin(principal, "Only tenant admin can create sub-organizations")
    if not name:
        raise BadRequestError("name is required")
    await _require_unique_code(repos, code)

    sub_org = SubOrg.new(
        name=name, code=code, description=description, created_by=principal.user_id
    )
    await repos.sub_orgs.add(sub_org)
    logger.info("Sub-org created id=%s code=%s", sub_org.id, sub_org.code)
    return sub_org


async def create_sub_org_with_admin(
    repos: TenantRepos,
    principal: Principal,
    *,
    name: str | None,
    admin_name: str | None,
    admin_email: str | None,
    admin_password: str | None,
    admin_phone: str | None = None,
    code: str | None = None,
    description: str | None = None,
) -> tuple[SubOrg, OrgUser]:
    """Create a sub-org and its first subOrgAdmin in one call."""
    require_tenant_admin(principal, "Only tenant admin can create sub-org + admin")
    if not name:
        raise BadRequestError("Sub-org name is required")
    if not admin_name or not admin_email or not admin_password:
        raise BadRequestError(
            "adminName, adminEmail and adminPassword are required to create SubOrgAdmin"
        )
    await _require_unique_code(repos, code)
    if await repos.users.get_by_email(admin_email) is not None:
        raise ConflictError("Admin email already in use")

    sub_org = SubOrg.new(
        name=name, code=code, description=description, created_by=principal.user_id
    )
    await repos.sub_orgs.add(sub_org)
    admin = OrgUser.new(
        name=admin_name,
        role="subOrgAdmin",
        email=admin_email,
        phone=admin_phone,
        password_hash=await hash_password_async(admin_password),
        sub_org_id=sub_org.id,
        created_by=principal.user_id,
    )
    await repos.users.add(admin)
    logger.info("Sub-org created id=%s with admin=%s", sub_org.id, admin.id)
    return sub_org, admin


async def update_sub_org(
    repos: TenantRepos, principal: Principal, sub_org_id: UUID, changes: Mapping[str, Any]
) -> SubOrg:
    require_tenant_admin(principal, "Only tenant admin can update sub-organizations")
    sub_org = await _load(repos, sub_org_id)

    fields: dict[str, Any] = {}
    if changes.get("name") is not None:
        fields["name"] = changes["name"]
    if "code" in changes:
        code = changes["code"] or None
        if code is not None and code != sub_org.code:
            await _require_unique_code(repos, code)
        fields["code"] = code
    if "description" in changes:
        fields["description"] = changes["description"]

    sub_org = replace(sub_org, **fields, updated_at=utcnow())
    await repos.sub_orgs.save(sub_org)
    return sub_org


async def change_sub_org_status(
    repos: TenantRepos, principal: Principal, sub_org_id: UUID, status: str | None
) -> SubOrg:
    require_tenant_admin(principal, "Only tenant admin can change sub-org status")
    if status not in SUB_ORG_STATUSES:
        raise BadRequestError("Invalid status")
    sub_org = replace(await _load(repos, sub_org_id), status=status, updated_at=utcnow())
    await repos.sub_orgs.save(sub_org)
    return sub_org


async def transfer_user(
    repos: TenantRepos, principal: Principal, user_id: UUID, sub_org_id: UUID | None
) -> OrgUser:
    """Move a user to another sub-org, or to the root org with None."""
    require_tenant_admin(
        principal, "Only tenant admin can transfer users between sub-orgs"
    )
    user = await repos.users.get(user_id)
    if user is None:
        raise NotFoundError("User not found")
    if sub_org_id is not None:
        await _load(repos, sub_org_id)

    user = replace(user, sub_org_id=sub_org_id, updated_at=utcnow())
    await repos.users.save(user)
    logger.info("User %s transferred to sub-org=%s", user.id, sub_org_id)
    return user


async def _load(repos: TenantRepos, sub_org_id: UUID) -> SubOrg:
    sub_org = await repos.sub_orgs.get(sub_org_id)
    if sub_org is None:
        raise NotFoundError("Sub-organization not found")
    return sub_org


async def _require_unique_code(repos: TenantRepos, code: str | None) -> None:
    if code and await repos.sub_orgs.get_by_code(code) is not None:
        raise ConflictError("Sub-organization code already exists")
