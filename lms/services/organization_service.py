"""Organization provisioning and super-admin organization management.

Provisioning is two-phase:

  1. validate, upload branding media, insert the control-plane record
  2. seed the tenant database (settings document + first admin user)

Phase 2 is best-effort: a failure is logged and reported as
``tenant_seeded=False`` but the organization stays created.
``reconcile_organization`` re-runs phase 2 and is safe to repeat.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from uuid import UUID

from lms.core.config import SETTINGS
from lms.core.errors import BadRequestError, ConflictError, NotFoundError
from lms.db.control_plane import ControlPlane
from lms.db.engine import DB_NAME_RE
from lms.db.tenancy import TenantRegistry, TenantRepos
from lms.models.org_settings import NotificationSettings, OrgSettings
from lms.models.org_user import OrgUser
from lms.models.organization import ORG_STATUSES, SUBSCRIPTION_STATUSES, Branding, Organization, utcnow
from lms.services import media_service
from lms.services.auth_service import hash_password_async
from lms.services.media_service import MediaStore, MediaUpload, StoredMedia

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_SLUG_JUNK = re.compile(r"[^a-z0-9-]")


@dataclass(frozen=True, slots=True)
class SeedResult:
    settings_created: bool
    admin_created: bool
    admin_email: str | None = None
    admin_password: str | None = None


@dataclass(frozen=True, slots=True)
class ProvisionedOrganization:
    organization: Organization
    logo: StoredMedia
    favicon: StoredMedia | None
    admin_email: str
    admin_password: str
    tenant_seeded: bool


def normalize_slug(raw: str | None) -> str:
    slug = _WHITESPACE.sub("-", (raw or "").strip().lower())
    return _SLUG_JUNK.sub("", slug)


def derive_db_name(slug: str) -> str:
    return slug.replace("-", "_")


async def provision_organization(
    control_plane: ControlPlane,
    registry: TenantRegistry,
    store: MediaStore,
    *,
    name: str | None,
    primary_contact_email: str | None,
    logo: MediaUpload | None,
    favicon: MediaUpload | None = None,
    slug: str | None = None,
    db_name: str | None = None,
    primary_contact_name: str | None = None,
    primary_contact_phone: str | None = None,
    subscription_plan_code: str | None = None,
    subscription_status: str | None = None,
    admin_password: str | None = None,
) -> ProvisionedOrganization:
    if not name:
        raise BadRequestError("name is required")
    if not primary_contact_email:
        raise BadRequestError("primaryContactEmail is required (used as admin login email)")

    slug = normalize_slug(slug or name)
    db_name = db_name or derive_db_name(slug)
    if not slug or not DB_NAME_RE.match(db_name):
        raise BadRequestError("Organization slug/dbName must be lowercase letters, digits, '-' or '_'")
    if subscription_status is not None and subscription_status not in SUBSCRIPTION_STATUSES:
        raise BadRequestError("Invalid subscriptionStatus")

    async with control_plane.session() as cp:
        if (
            await cp.organizations.get_by_slug(slug) is not None
            or await cp.organizations.get_by_db_name(db_name) is not None
        ):
            raise ConflictError("Organization with same slug or dbName already exists")

    if logo is None or not logo.data:
        raise BadRequestError("Logo file is required (field name: 'logo')")
    stored_logo = await media_service.upload_org_logo(
        store, logo.data, org_slug=slug, filename=logo.filename, content_type=logo.content_type
    )
    stored_favicon = None
    if favicon is not None and favicon.data:
        stored_favicon = await media_service.upload_org_favicon(
            store,
            favicon.data,
            org_slug=slug,
            filename=favicon.filename,
            content_type=favicon.content_type,
        )

    org = Organization.new(
        name=name,
        slug=slug,
        db_name=db_name,
        primary_contact_email=primary_contact_email.strip().lower(),
        primary_contact_name=primary_contact_name or None,
        primary_contact_phone=primary_contact_phone or None,
        subscription_plan_code=subscription_plan_code or "PRO",
        branding=Branding(
            logo_url=stored_logo.url,
            favicon_url=stored_favicon.url if stored_favicon else None,
        ),
    )
    if subscription_status:
        org = replace(org, subscription_status=subscription_status)

    async with control_plane.session() as cp:
        try:
            await cp.organizations.add(org)
        except ValueError:
            raise ConflictError("Organization with same slug or dbName already exists") from None
    logger.info("Organization provisioned id=%s slug=%s db=%s", org.id, org.slug, org.db_name)

    password = admin_password or SETTINGS.default_admin_password
    try:
        await seed_tenant_defaults(registry, org, admin_password=password)
        seeded = True
    except Exception:
        logger.exception("Tenant seeding failed for org=%s db=%s", org.slug, org.db_name)
        seeded = False

    return ProvisionedOrganization(
        organization=org,
        logo=stored_logo,
        favicon=stored_favicon,
        admin_email=org.primary_contact_email,
        admin_password=password,
        tenant_seeded=seeded,
    )


async def seed_tenant_defaults(
    registry: TenantRegistry, org: Organization, *, admin_password: str
) -> SeedResult:
    """Create missing tenant defaults; existing rows are left alone."""
    handle = await registry.resolve(org.db_name)
    async with handle.session() as repos:
        settings_created = await _seed_settings(repos, org)
        admin_created = await _seed_admin(repos, org, admin_password)
    logger.info(
        "Tenant seeded db=%s settings_created=%s admin_created=%s",
        org.db_name,
        settings_created,
        admin_created,
    )
    if not admin_created:
        return SeedResult(settings_created=settings_created, admin_created=False)
    return SeedResult(
        settings_created=settings_created,
        admin_created=True,
        admin_email=org.primary_contact_email,
        admin_password=admin_password,
    )


async def _seed_settings(repos: TenantRepos, org: Organization) -> bool:
    settings = await repos.settings.get()
    if settings is None:
        await repos.settings.save(
            OrgSettings(
                branding=org.branding,
                notifications=NotificationSettings(
                    email_from_name=org.name,
                    email_from_address=org.primary_contact_email,
                ),
            )
        )
        return True

    # Fill branding gaps from the control-plane record, keep tenant edits
    branding = settings.branding
    if branding.logo_url is None and org.branding.logo_url:
        branding = replace(branding, logo_url=org.branding.logo_url)
    if branding.favicon_url is None and org.branding.favicon_url:
        branding = replace(branding, favicon_url=org.branding.favicon_url)
    if branding != settings.branding:
        await repos.settings.save(replace(settings, branding=branding, updated_at=utcnow()))
    return False


async def _seed_admin(repos: TenantRepos, org: Organization, password: str) -> bool:
    existing = await repos.users.get_by_email(org.primary_contact_email)
    if existing is not None and existing.role == "admin":
        return False
    if existing is not None:
        logger.warning(
            "Primary contact %s exists with role=%s in db=%s; admin not created",
            existing.id,
            existing.role,
            org.db_name,
        )
        return False
    admin = OrgUser.new(
        name=org.primary_contact_name or "Organization Admin",
        role="admin",
        email=org.primary_contact_email,
        password_hash=await hash_password_async(password),
    )
    await repos.users.add(admin)
    logger.info("Default admin created for org=%s user=%s", org.slug, admin.id)
    return True


async def list_organizations(control_plane: ControlPlane) -> list[Organization]:
    async with control_plane.session() as cp:
        return await cp.organizations.list_all()


async def get_organization(control_plane: ControlPlane, org_id: UUID) -> Organization:
    async with control_plane.session() as cp:
        org = await cp.organizations.get(org_id)
    if org is None:
        raise NotFoundError("Organization not found")
    return org


async def change_organization_status(
    control_plane: ControlPlane, org_id: UUID, status: str | None
) -> Organization:
    if status not in ORG_STATUSES:
        raise BadRequestError("Invalid status")
    async with control_plane.session() as cp:
        org = await cp.organizations.get(org_id)
        if org is None:
            raise NotFoundError("Organization not found")
        org = replace(org, status=status, updated_at=utcnow())
        await cp.organizations.save(org)
    logger.info("Organization status id=%s status=%s", org.id, status)
    return org


async def reconcile_organization(
    control_plane: ControlPlane, registry: TenantRegistry, org_id: UUID
) -> tuple[Organization, SeedResult]:
    """Re-run tenant seeding for an existing organization."""
    org = await get_organization(control_plane, org_id)
    result = await seed_tenant_defaults(
        registry, org, admin_password=SETTINGS.default_admin_password
    )
    return org, result


async def set_tenant_logo(
    repos: TenantRepos, store: MediaStore, *, org_slug: str, upload: MediaUpload | None
) -> StoredMedia:
    """Upload a logo from the tenant admin console into OrgSettings.branding."""
    if upload is None or not upload.data:
        raise BadRequestError("Logo file is required (field name: 'logo')")
    stored = await media_service.upload_org_logo(
        store,
        upload.data,
        org_slug=org_slug,
        filename=upload.filename,
        content_type=upload.content_type,
    )
    settings = await repos.settings.get() or OrgSettings()
    await repos.settings.save(
        replace(
            settings,
            branding=replace(settings.branding, logo_url=stored.url),
            updated_at=utcnow(),
        )
    )
    logger.info("Tenant logo updated db=%s", repos.db_name)
    return stored
