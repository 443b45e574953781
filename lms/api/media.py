"""Tenant branding uploads (/admin/media)."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile

from lms.api.dependencies import Media, Tenant, get_control_plane, read_upload, require_any_role
from lms.api.schemas import ok
from lms.db.control_plane import ControlPlane
from lms.models.principal import Principal
from lms.services import organization_service

router = APIRouter(prefix="/admin/media", tags=["media"])

TenantAdmin = Annotated[Principal, Depends(require_any_role({"admin"}))]


@router.post("/logo")
async def upload_logo(
    principal: TenantAdmin,
    repos: Tenant,
    store: Media,
    cp: Annotated[ControlPlane, Depends(get_control_plane)],
    logo: Annotated[UploadFile | None, File()] = None,
    org_slug: Annotated[str | None, Form(alias="orgSlug")] = None,
) -> dict:
    """Replace the organization logo shown by the tenant's apps."""
    if not org_slug and principal.org_id is not None:
        async with cp.session() as cp_repos:
            org = await cp_repos.organizations.get(principal.org_id)
        org_slug = org.slug if org is not None else None
    stored = await organization_service.set_tenant_logo(
        repos, store, org_slug=org_slug or repos.db_name, upload=await read_upload(logo)
    )
    return ok({"logoUrl": stored.url, "logoPublicId": stored.public_id})
