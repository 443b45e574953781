"""Request-scoped dependencies: caller identity, role gates, tenant repos.

Every tenant route stacks three of these:

  require_any_role({...})  token -> Principal, coarse role gate (401/403)
  get_tenant               Principal -> TenantRepos for the caller's tenant

The backing singletons (control plane, tenant registry, media store,
login throttle) are reached through their own ``get_*`` dependencies so
tests can swap them with ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, UploadFile, status
from fastapi.security import OAuth2PasswordBearer

from lms.core.config import SETTINGS
from lms.core.errors import BadRequestError, InternalError, NotFoundError
from lms.db.control_plane import ControlPlane, control_plane
from lms.db.tenancy import TenantRegistry, TenantRepos, tenant_registry
from lms.middleware.request_context import bind_tenant
from lms.models.principal import Principal
from lms.services import token_service
from lms.services.login_throttle import LoginThrottle, login_throttle
from lms.services.media_service import MediaStore, MediaUpload, media_store

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/admin/login", auto_error=False)


def get_control_plane() -> ControlPlane:
    return control_plane


def get_registry() -> TenantRegistry:
    return tenant_registry


def get_media_store() -> MediaStore:
    return media_store


def get_login_throttle() -> LoginThrottle:
    return login_throttle


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _optional_uuid(value) -> UUID | None:
    return UUID(str(value)) if value else None


def require_user(
    raw_token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and build the caller's Principal."""
    if not raw_token:
        raise _unauthorized("No token provided")
    try:
        claims = token_service.decode_identity_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid or expired token") from None

    try:
        principal = Principal(
            user_id=UUID(claims["sub"]),
            role=claims["role"],
            org_id=_optional_uuid(claims.get("orgId")),
            db_name=claims.get("dbName") or None,
            sub_org_id=_optional_uuid(claims.get("subOrgId")),
        )
    except ValueError:
        logger.warning("Token with malformed identifiers rejected")
        raise _unauthorized("Invalid or expired token") from None

    logger.debug("Token validated for user=%s role=%s", principal.user_id, principal.role)
    return principal


def require_any_role(roles: set[str]):
    """Dependency factory: demand one of the given roles.

    Usage: Depends(require_any_role({"admin", "subOrgAdmin"}))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s role=%s allowed=%s",
                principal.user_id,
                principal.role,
                sorted(roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: insufficient role",
            )
        return principal

    return _guard


async def resolve_tenant_db_name(principal: Principal, cp: ControlPlane) -> str:
    """Tenant database of the caller: the token's dbName, else via orgId."""
    if principal.db_name:
        return principal.db_name
    if principal.org_id is None:
        raise BadRequestError("Tenant not resolved for this request", code="TENANT_NOT_FOUND")
    async with cp.session() as repos:
        org = await repos.organizations.get(principal.org_id)
    if org is None:
        raise NotFoundError("Organization not found for tenant", code="TENANT_NOT_FOUND")
    return org.db_name


async def get_tenant(
    request: Request,
    principal: Annotated[Principal, Depends(require_user)],
    cp: Annotated[ControlPlane, Depends(get_control_plane)],
    registry: Annotated[TenantRegistry, Depends(get_registry)],
) -> AsyncIterator[TenantRepos]:
    """Yield the caller's tenant repositories for the length of the request."""
    db_name = await resolve_tenant_db_name(principal, cp)
    try:
        handle = await registry.resolve(db_name)
    except Exception:
        logger.exception("Failed to resolve tenant db=%s", db_name)
        raise InternalError("Failed to resolve tenant", code="TENANT_RESOLVE_ERROR") from None

    bind_tenant(request, db_name)
    async with handle.session() as repos:
        yield repos


async def read_upload(file: UploadFile | None) -> MediaUpload | None:
    """Buffer an uploaded file in memory, enforcing MAX_UPLOAD_BYTES."""
    if file is None:
        return None
    data = await file.read(SETTINGS.max_upload_bytes + 1)
    if len(data) > SETTINGS.max_upload_bytes:
        raise BadRequestError(
            f"File too large (max {SETTINGS.max_upload_bytes} bytes)", code="FILE_TOO_LARGE"
        )
    if not data:
        return None
    return MediaUpload(data=data, filename=file.filename, content_type=file.content_type)


Tenant = Annotated[TenantRepos, Depends(get_tenant)]
Media = Annotated[MediaStore, Depends(get_media_store)]
