"""Password hashing and the three login flows.

Org login (admin/subOrgAdmin) and educator login resolve the
organization by slug in the control plane, open its tenant database
through the registry and check the user there.  Super-admin login checks
the control plane only.  All three report a failed lookup and a wrong
password the same way.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from lms.core.errors import NotFoundError, UnauthorizedError
from lms.core.metrics import LOGIN_ATTEMPTS
from lms.db.control_plane import ControlPlane
from lms.db.tenancy import TenantHandle, TenantRegistry
from lms.models.org_user import OrgUser
from lms.models.organization import Branding, Organization, SuperAdmin, utcnow
from lms.services import token_service

logger = logging.getLogger(__name__)

_ph = PasswordHasher()

INVALID_CREDENTIALS = "Invalid credentials"

ORG_LOGIN_ROLES = frozenset({"admin", "subOrgAdmin"})
EDUCATOR_LOGIN_ROLES = frozenset({"educator"})


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


async def hash_password_async(plain_password: str) -> str:
    """Argon2 is deliberately slow; keep it off the event loop."""
    return await asyncio.to_thread(hash_password, plain_password)


async def verify_password_async(plain_password: str, password_hash: str | None) -> bool:
    return await asyncio.to_thread(verify_password, plain_password, password_hash)


@dataclass(frozen=True, slots=True)
class TenantLogin:
    token: str
    user: OrgUser
    org: Organization
    branding: Branding


@dataclass(frozen=True, slots=True)
class SuperAdminLogin:
    token: str
    user: SuperAdmin


async def login_tenant_user(
    control_plane: ControlPlane,
    registry: TenantRegistry,
    *,
    org_slug: str,
    email: str,
    password: str,
    roles: frozenset[str],
    realm: str,
) -> TenantLogin:
    """Authenticate an OrgUser of one of ``roles`` inside the org's tenant."""
    async with control_plane.session() as cp:
        org = await cp.organizations.get_by_slug(org_slug.strip().lower())
    if org is None or org.status != "active":
        LOGIN_ATTEMPTS.labels(realm=realm, outcome="unknown_org").inc()
        raise NotFoundError("Organization not found or inactive")

    handle = await registry.resolve(org.db_name)
    async with handle.session() as repos:
        user = await repos.users.get_by_email(email)
        settings = await repos.settings.get()

    if (
        user is None
        or user.role not in roles
        or user.status != "active"
        or not await verify_password_async(password, user.password_hash)
    ):
        LOGIN_ATTEMPTS.labels(realm=realm, outcome="invalid").inc()
        logger.warning("Login failed realm=%s org=%s", realm, org.slug)
        raise UnauthorizedError(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

    user = await _touch_last_login(handle, user)

    token = token_service.create_identity_token(
        user_id=str(user.id),
        role=user.role,
        org_id=str(org.id),
        db_name=org.db_name,
        sub_org_id=str(user.sub_org_id) if user.sub_org_id else None,
    )
    LOGIN_ATTEMPTS.labels(realm=realm, outcome="ok").inc()
    logger.info("Login ok realm=%s org=%s user=%s", realm, org.slug, user.id)

    branding = settings.branding if settings is not None else Branding(
        logo_url=org.branding.logo_url
    )
    return TenantLogin(token=token, user=user, org=org, branding=branding)


async def login_super_admin(
    control_plane: ControlPlane, *, email: str, password: str
) -> SuperAdminLogin:
    async with control_plane.session() as cp:
        admin = await cp.super_admins.get_by_email(email)

    if (
        admin is None
        or admin.status != "active"
        or not await verify_password_async(password, admin.password_hash)
    ):
        LOGIN_ATTEMPTS.labels(realm="superadmin", outcome="invalid").inc()
        logger.warning("Super-admin login failed")
        raise UnauthorizedError(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

    admin = replace(admin, last_login_at=utcnow())
    try:
        async with control_plane.session() as cp:
            await cp.super_admins.save(admin)
    except Exception:
        logger.exception("Could not record last login for super-admin=%s", admin.id)

    token = token_service.create_identity_token(user_id=str(admin.id), role="superadmin")
    LOGIN_ATTEMPTS.labels(realm="superadmin", outcome="ok").inc()
    logger.info("Super-admin login ok user=%s", admin.id)
    return SuperAdminLogin(token=token, user=admin)


async def create_super_admin(
    control_plane: ControlPlane, *, name: str, email: str, password: str
) -> SuperAdmin:
    """Create the control-plane operator account (used by the seed script)."""
    admin = SuperAdmin.new(
        name=name, email=email, password_hash=await hash_password_async(password)
    )
    async with control_plane.session() as cp:
        if await cp.super_admins.get_by_email(admin.email) is not None:
            raise ValueError(f"super-admin {admin.email} already exists")
        await cp.super_admins.add(admin)
    logger.info("Super-admin created id=%s", admin.id)
    return admin


async def _touch_last_login(handle: TenantHandle, user: OrgUser) -> OrgUser:
    # Separate unit of work: a failure here must not undo the login
    updated = replace(user, last_login_at=utcnow())
    try:
        async with handle.session() as repos:
            await repos.users.save(updated)
    except Exception:
        logger.exception("Could not record last login for user=%s", user.id)
        return user
    return updated
