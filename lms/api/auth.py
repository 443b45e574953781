"""Login endpoints for org admins, educators and super-admins.

Each login counts against the throttle before credentials are checked
and clears it on success.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from lms.api.dependencies import get_control_plane, get_login_throttle, get_registry
from lms.api.schemas import (
    BrandingOut,
    LoginIn,
    LoginOrgOut,
    LoginUserOut,
    SuperAdminLoginIn,
    SuperAdminOut,
    ok,
)
from lms.db.control_plane import ControlPlane
from lms.db.tenancy import TenantRegistry
from lms.services import auth_service
from lms.services.auth_service import EDUCATOR_LOGIN_ROLES, ORG_LOGIN_ROLES, TenantLogin
from lms.services.login_throttle import LoginThrottle, check_login_allowed, clear_login_attempts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _tenant_login_out(result: TenantLogin) -> dict:
    return {
        "user": LoginUserOut.model_validate(result.user),
        "org": LoginOrgOut(
            id=result.org.id,
            name=result.org.name,
            slug=result.org.slug,
            db_name=result.org.db_name,
            branding=BrandingOut.model_validate(result.branding),
        ),
        "token": result.token,
    }


async def _tenant_login(
    body: LoginIn,
    realm: str,
    roles: frozenset[str],
    cp: ControlPlane,
    registry: TenantRegistry,
    throttle: LoginThrottle,
) -> dict:
    await check_login_allowed(realm, body.org_slug, body.email, throttle=throttle)
    result = await auth_service.login_tenant_user(
        cp,
        registry,
        org_slug=body.org_slug,
        email=body.email,
        password=body.password,
        roles=roles,
        realm=realm,
    )
    await clear_login_attempts(realm, body.org_slug, body.email, throttle=throttle)
    return ok(_tenant_login_out(result))


@router.post("/admin/login")
async def admin_login(
    body: LoginIn,
    cp: Annotated[ControlPlane, Depends(get_control_plane)],
    registry: Annotated[TenantRegistry, Depends(get_registry)],
    throttle: Annotated[LoginThrottle, Depends(get_login_throttle)],
) -> dict:
    """Org admin / sub-org admin login."""
    return await _tenant_login(body, "org", ORG_LOGIN_ROLES, cp, registry, throttle)


@router.post("/educator/login")
async def educator_login(
    body: LoginIn,
    cp: Annotated[ControlPlane, Depends(get_control_plane)],
    registry: Annotated[TenantRegistry, Depends(get_registry)],
    throttle: Annotated[LoginThrottle, Depends(get_login_throttle)],
) -> dict:
    return await _tenant_login(body, "educator", EDUCATOR_LOGIN_ROLES, cp, registry, throttle)


@router.post("/superadmin/login")
async def superadmin_login(
    body: SuperAdminLoginIn,
    cp: Annotated[ControlPlane, Depends(get_control_plane)],
    throttle: Annotated[LoginThrottle, Depends(get_login_throttle)],
) -> dict:
    await check_login_allowed("superadmin", None, body.email, throttle=throttle)
    result = await auth_service.login_super_admin(cp, email=body.email, password=body.password)
    await clear_login_attempts("superadmin", None, body.email, throttle=throttle)
    return ok({"user": SuperAdminOut.model_validate(result.user), "token": result.token})
