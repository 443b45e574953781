"""Sub-organizations (/admin/suborgs).

subOrgAdmins may read their own sub-org; every write is admin-only and
enforced in the service.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from lms.api.dependencies import Tenant, require_any_role
from lms.api.schemas import (
    StatusIn,
    SubOrgIn,
    SubOrgOut,
    SubOrgWithAdminIn,
    TransferUserIn,
    UserOut,
    ok,
)
from lms.models.principal import Principal
from lms.services import suborg_service

router = APIRouter(prefix="/admin/suborgs", tags=["suborgs"])

Admin = Annotated[Principal, Depends(require_any_role({"admin", "subOrgAdmin"}))]


@router.get("")
async def list_sub_orgs(principal: Admin, repos: Tenant) -> dict:
    summaries = await suborg_service.list_sub_orgs(repos, principal)
    return ok(
        [
            SubOrgOut.model_validate(s.sub_org).model_copy(update={"user_count": s.user_count})
            for s in summaries
        ]
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_sub_org(body: SubOrgIn, principal: Admin, repos: Tenant) -> dict:
    sub_org = await suborg_service.create_sub_org(
        repos, principal, name=body.name, code=body.code, description=body.description
    )
    return ok(SubOrgOut.model_validate(sub_org))


@router.post("/with-admin", status_code=status.HTTP_201_CREATED)
async def create_sub_org_with_admin(
    body: SubOrgWithAdminIn, principal: Admin, repos: Tenant
) -> dict:
    sub_org, admin = await suborg_service.create_sub_org_with_admin(
        repos,
        principal,
        name=body.name,
        code=body.code,
        description=body.description,
        admin_name=body.admin_name,
        admin_email=body.admin_email,
        admin_phone=body.admin_phone,
        admin_password=body.admin_password,
    )
    return ok({"subOrg": SubOrgOut.model_validate(sub_org), "admin": UserOut.model_validate(admin)})


@router.patch("/transfer-user/{user_id}")
async def transfer_user(
    user_id: UUID, body: TransferUserIn, principal: Admin, repos: Tenant
) -> dict:
    user = await suborg_service.transfer_user(repos, principal, user_id, body.sub_org_id)
    return ok(UserOut.model_validate(user))


@router.get("/{sub_org_id}")
async def get_sub_org(sub_org_id: UUID, principal: Admin, repos: Tenant) -> dict:
    sub_org = await suborg_service.get_sub_org(repos, principal, sub_org_id)
    return ok(SubOrgOut.model_validate(sub_org))


@router.patch("/{sub_org_id}")
async def update_sub_org(
    sub_org_id: UUID, body: SubOrgIn, principal: Admin, repos: Tenant
) -> dict:
    sub_org = await suborg_service.update_sub_org(
        repos, principal, sub_org_id, body.model_dump(exclude_unset=True)
    )
    return ok(SubOrgOut.model_validate(sub_org))


@router.patch("/{sub_org_id}/status")
async def change_sub_org_status(
    sub_org_id: UUID, body: StatusIn, principal: Admin, repos: Tenant
) -> dict:
    sub_org = await suborg_service.change_sub_org_status(repos, principal, sub_org_id, body.status)
    return ok(SubOrgOut.model_validate(sub_org))
