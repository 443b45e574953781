"""Organization management for the platform operator (role superadmin)."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from lms.api.dependencies import (
    Media,
    get_control_plane,
    get_registry,
    read_upload,
    require_any_role,
)
from lms.api.schemas import OrganizationOut, StatusIn, ok
from lms.db.control_plane import ControlPlane
from lms.db.tenancy import TenantRegistry
from lms.models.principal import SUPERADMIN_ROLE, Principal
from lms.services import organization_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/superadmin/organizations", tags=["superadmin"])

_require_superadmin = require_any_role({SUPERADMIN_ROLE})

ControlPlaneDep = Annotated[ControlPlane, Depends(get_control_plane)]
RegistryDep = Annotated[TenantRegistry, Depends(get_registry)]
SuperAdmin = Annotated[Principal, Depends(_require_superadmin)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_organization(
    principal: SuperAdmin,
    cp: ControlPlaneDep,
    registry: RegistryDep,
    store: Media,
    name: Annotated[str | None, Form()] = None,
    primary_contact_email: Annotated[str | None, Form(alias="primaryContactEmail")] = None,
    slug: Annotated[str | None, Form()] = None,
    db_name: Annotated[str | None, Form(alias="dbName")] = None,
    primary_contact_name: Annotated[str | None, Form(alias="primaryContactName")] = None,
    primary_contact_phone: Annotated[str | None, Form(alias="primaryContactPhone")] = None,
    subscription_plan_code: Annotated[str | None, Form(alias="subscriptionPlanCode")] = None,
    subscription_status: Annotated[str | None, Form(alias="subscriptionStatus")] = None,
    admin_password: Annotated[str | None, Form(alias="adminPassword")] = None,
    logo: Annotated[UploadFile | None, File()] = None,
    favicon: Annotated[UploadFile | None, File()] = None,
) -> dict:
    """Provision an organization (multipart form with ``logo`` and optional ``favicon``)."""
    result = await organization_service.provision_organization(
        cp,
        registry,
        store,
        name=name,
        primary_contact_email=primary_contact_email,
        logo=await read_upload(logo),
        favicon=await read_upload(favicon),
        slug=slug,
        db_name=db_name,
        primary_contact_name=primary_contact_name,
        primary_contact_phone=primary_contact_phone,
        subscription_plan_code=subscription_plan_code,
        subscription_status=subscription_status,
        admin_password=admin_password,
    )
    logger.info(
        "Organization %s provisioned by super-admin=%s seeded=%s",
        result.organization.slug,
        principal.user_id,
        result.tenant_seeded,
    )
    org = result.organization
    return ok(
        {
            "organization": OrganizationOut.model_validate(org),
            "branding": {
                "logoUrl": result.logo.url,
                "logoPublicId": result.logo.public_id,
                "faviconUrl": result.favicon.url if result.favicon else None,
                "faviconPublicId": result.favicon.public_id if result.favicon else None,
                "primaryColor": org.branding.primary_color,
                "secondaryColor": org.branding.secondary_color,
            },
            "adminCredentials": {
                "email": result.admin_email,
                "password": result.admin_password,
            },
            "tenantSeeded": result.tenant_seeded,
        }
    )


@router.get("")
async def list_organizations(_principal: SuperAdmin, cp: ControlPlaneDep) -> dict:
    orgs = await organization_service.list_organizations(cp)
    return ok([OrganizationOut.model_validate(o) for o in orgs])


@router.get("/{org_id}")
async def get_organization(org_id: UUID, _principal: SuperAdmin, cp: ControlPlaneDep) -> dict:
    org = await organization_service.get_organization(cp, org_id)
    return ok(OrganizationOut.model_validate(org))


@router.patch("/{org_id}/status")
async def change_organization_status(
    org_id: UUID, body: StatusIn, _principal: SuperAdmin, cp: ControlPlaneDep
) -> dict:
    org = await organization_service.change_organization_status(cp, org_id, body.status)
    return ok(OrganizationOut.model_validate(org))


@router.post("/{org_id}/reconcile")
async def reconcile_organization(
    org_id: UUID, _principal: SuperAdmin, cp: ControlPlaneDep, registry: RegistryDep
) -> dict:
    """Re-seed tenant defaults that are missing; safe to repeat."""
    org, seeded = await organization_service.reconcile_organization(cp, registry, org_id)
    data = {
        "organization": OrganizationOut.model_validate(org),
        "settingsCreated": seeded.settings_created,
        "adminCreated": seeded.admin_created,
    }
    if seeded.admin_created:
        data["adminCredentials"] = {
            "email": seeded.admin_email,
            "password": seeded.admin_password,
        }
    return ok(data)
