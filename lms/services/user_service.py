"""Tenant user administration (admins and sub-org admins)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any
from uuid import UUID

from lms.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from lms.db.tenancy import TenantRepos
from lms.models.org_user import USER_ROLES, USER_STATUSES, OrgUser
from lms.models.organization import utcnow
from lms.models.principal import Principal
from lms.services.access import (
    ADMIN_ROLES,
    check_can_manage_user,
    check_sub_org_scope,
    sub_org_filter,
)
from lms.services.auth_service import hash_password_async
from lms.services.pagination import Page, PageRequest

logger = logging.getLogger(__name__)


async def list_users(
    repos: TenantRepos,
    principal: Principal,
    *,
    role: str | None = None,
    status: str | None = None,
    q: str | None = None,
    paging: PageRequest = PageRequest(),
) -> Page[OrgUser]:
    items, total = await repos.users.search(
        role=role or None,
        status=status or None,
        sub_org_id=sub_org_filter(principal),
        q=q or None,
        offset=paging.offset,
        limit=paging.limit,
    )
    return Page(items=items, page=paging.page, limit=paging.limit, total=total)


async def get_user(repos: TenantRepos, principal: Principal, user_id: UUID) -> OrgUser:
    user = await _load(repos, user_id)
    check_sub_org_scope(principal, user.sub_org_id)
    return user


async def create_user(
    repos: TenantRepos,
    principal: Principal,
    *,
    name: str | None,
    role: str | None,
    email: str | None = None,
    phone: str | None = None,
    password: str | None = None,
    sub_org_id: UUID | None = None,
) -> OrgUser:
    if not name or not role:
        raise BadRequestError("name and role are required")
    if role not in USER_ROLES:
        raise BadRequestError("Invalid role")
    if principal.has_role("subOrgAdmin") and role in ADMIN_ROLES:
        raise ForbiddenError("SubOrg admin cannot create admin roles")

    if email and await repos.users.get_by_email(email) is not None:
        raise ConflictError("Email already in use")

    if principal.has_role("subOrgAdmin"):
        sub_org_id = principal.sub_org_id
    elif sub_org_id is not None:
        await _require_sub_org(repos, sub_org_id)

    user = OrgUser.new(
        name=name,
        role=role,
        email=email,
        phone=phone,
        password_hash=await hash_password_async(password) if password else None,
        sub_org_id=sub_org_id,
        created_by=principal.user_id,
    )
    await repos.users.add(user)
    logger.info("User created id=%s role=%s by=%s", user.id, role, principal.user_id)
    return user


async def update_user(
    repos: TenantRepos, principal: Principal, user_id: UUID, changes: Mapping[str, Any]
) -> OrgUser:
    """Apply name/phone/role (and, for admins, sub_org_id) changes."""
    user = await _load(repos, user_id)
    check_can_manage_user(principal, user.role, user.sub_org_id)

    new_role = changes.get("role")
    if new_role is not None:
        if new_role not in USER_ROLES:
            raise BadRequestError("Invalid role")
        if principal.has_role("subOrgAdmin") and new_role in ADMIN_ROLES:
            raise ForbiddenError("SubOrg admin cannot assign admin roles")

    fields: dict[str, Any] = {}
    for key in ("name", "phone", "role"):
        if key in changes and changes[key] is not None:
            fields[key] = changes[key]
    if principal.has_role("admin") and "sub_org_id" in changes:
        sub_org_id = changes["sub_org_id"]
        if sub_org_id is not None:
            await _require_sub_org(repos, sub_org_id)
        fields["sub_org_id"] = sub_org_id

    user = replace(user, **fields, updated_at=utcnow())
    await repos.users.save(user)
    return user


async def change_status(
    repos: TenantRepos, principal: Principal, user_id: UUID, status: str | None
) -> OrgUser:
    if status not in USER_STATUSES:
        raise BadRequestError("Invalid status")
    user = await _load(repos, user_id)
    check_can_manage_user(principal, user.role, user.sub_org_id)

    user = replace(user, status=status, updated_at=utcnow())
    await repos.users.save(user)
    logger.info("User status id=%s status=%s by=%s", user.id, status, principal.user_id)
    return user


async def reset_password(
    repos: TenantRepos, principal: Principal, user_id: UUID, new_password: str | None
) -> OrgUser:
    if not new_password:
        raise BadRequestError("newPassword is required")
    user = await _load(repos, user_id)
    check_can_manage_user(principal, user.role, user.sub_org_id)

    user = replace(
        user, password_hash=await hash_password_async(new_password), updated_at=utcnow()
    )
    await repos.users.save(user)
    logger.info("Password reset for user=%s by=%s", user.id, principal.user_id)
    return user


async def _load(repos: TenantRepos, user_id: UUID) -> OrgUser:
    user = await repos.users.get(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _require_sub_org(repos: TenantRepos, sub_org_id: UUID) -> None:
    if await repos.sub_orgs.get(sub_org_id) is None:
        raise BadRequestError("Sub-organization not found")
