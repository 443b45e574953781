"""Tenant user administration (/admin/users)."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from lms.api.dependencies import Tenant, require_any_role
from lms.api.schemas import ResetPasswordIn, StatusIn, UserCreateIn, UserOut, UserUpdateIn, ok, page_out
from lms.models.principal import Principal
from lms.services import user_service
from lms.services.pagination import PageRequest

router = APIRouter(prefix="/admin/users", tags=["users"])

Admin = Annotated[Principal, Depends(require_any_role({"admin", "subOrgAdmin"}))]


@router.get("")
async def list_users(
    principal: Admin,
    repos: Tenant,
    role: str | None = None,
    status_: Annotated[str | None, Query(alias="status")] = None,
    q: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    result = await user_service.list_users(
        repos, principal, role=role, status=status_, q=q, paging=PageRequest.of(page, limit)
    )
    return ok(page_out(result, [UserOut.model_validate(u) for u in result.items]))


@router.get("/{user_id}")
async def get_user(user_id: UUID, principal: Admin, repos: Tenant) -> dict:
    user = await user_service.get_user(repos, principal, user_id)
    return ok(UserOut.model_validate(user))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreateIn, principal: Admin, repos: Tenant) -> dict:
    user = await user_service.create_user(
        repos,
        principal,
        name=body.name,
        role=body.role,
        email=body.email,
        phone=body.phone,
        password=body.password,
        sub_org_id=body.sub_org_id,
    )
    return ok(UserOut.model_validate(user))


@router.patch("/{user_id}")
async def update_user(user_id: UUID, body: UserUpdateIn, principal: Admin, repos: Tenant) -> dict:
    user = await user_service.update_user(
        repos, principal, user_id, body.model_dump(exclude_unset=True)
    )
    return ok(UserOut.model_validate(user))


@router.patch("/{user_id}/status")
async def change_status(user_id: UUID, body: StatusIn, principal: Admin, repos: Tenant) -> dict:
    user = await user_service.change_status(repos, principal, user_id, body.status)
    return ok(UserOut.model_validate(user))


@router.post("/{user_id}/resetPassword")
async def reset_password(
    user_id: UUID, body: ResetPasswordIn, principal: Admin, repos: Tenant
) -> dict:
    await user_service.reset_password(repos, principal, user_id, body.new_password)
    return ok(message="Password reset successfully")
