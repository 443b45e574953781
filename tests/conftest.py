from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from lms.api.dependencies import (
    get_control_plane,
    get_login_throttle,
    get_media_store,
    get_registry,
)
from lms.db.control_plane import InMemoryControlPlane
from lms.db.tenancy import TenantRegistry, TenantRepos, connect_in_memory
from lms.main import app
from lms.models.org_settings import OrgSettings
from lms.models.org_user import OrgUser
from lms.models.organization import Organization, SuperAdmin
from lms.models.sub_org import SubOrg
from lms.services import token_service
from lms.services.auth_service import hash_password
from lms.services.login_throttle import InMemoryLoginThrottle
from lms.services.media_service import InMemoryMediaStore

TEST_PASSWORD = "correct-horse-battery"

# argon2 is slow on purpose; hash once for every seeded user
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@dataclass
class Backends:
    control_plane: InMemoryControlPlane
    registry: TenantRegistry
    media: InMemoryMediaStore
    throttle: InMemoryLoginThrottle


@pytest.fixture(autouse=True)
def backends() -> Backends:
    """Fresh in-memory control plane, tenants, media and throttle per test."""
    b = Backends(
        control_plane=InMemoryControlPlane(),
        registry=TenantRegistry(connect_in_memory),
        media=InMemoryMediaStore(),
        throttle=InMemoryLoginThrottle(),
    )
    app.dependency_overrides[get_control_plane] = lambda: b.control_plane
    app.dependency_overrides[get_registry] = lambda: b.registry
    app.dependency_overrides[get_media_store] = lambda: b.media
    app.dependency_overrides[get_login_throttle] = lambda: b.throttle
    yield b
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


def mint_token(user: OrgUser, org: Organization) -> str:
    """Identity token for a tenant user, as the login flows would issue it."""
    return token_service.create_identity_token(
        user_id=str(user.id),
        role=user.role,
        org_id=str(org.id),
        db_name=org.db_name,
        sub_org_id=str(user.sub_org_id) if user.sub_org_id else None,
    )


def mint_superadmin_token(admin: SuperAdmin | None = None) -> str:
    user_id = str(admin.id) if admin else "00000000-0000-0000-0000-000000000001"
    return token_service.create_identity_token(user_id=user_id, role="superadmin")


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


def tenant_repos(b: Backends, org: Organization) -> TenantRepos:
    """Repositories of an org's in-memory tenant database."""
    handle = asyncio.run(b.registry.resolve(org.db_name))
    return handle._repos  # type: ignore[attr-defined]


def create_test_org(
    b: Backends, slug: str = "acme", *, status: str = "active", with_settings: bool = True
) -> Organization:
    org = Organization.new(
        name=slug.replace("-", " ").title(),
        slug=slug,
        db_name=f"{slug.replace('-', '_')}_tenant",
        primary_contact_email=f"owner@{slug}.test",
    )
    if status != "active":
        org = replace(org, status=status)

    async def _add() -> None:
        async with b.control_plane.session() as cp:
            await cp.organizations.add(org)
        if with_settings:
            handle = await b.registry.resolve(org.db_name)
            async with handle.session() as repos:
                await repos.settings.save(OrgSettings())

    asyncio.run(_add())
    return org


def add_user(
    b: Backends,
    org: Organization,
    role: str,
    *,
    email: str | None = None,
    sub_org_id: UUID | None = None,
    verification_status: str | None = None,
    status: str = "active",
) -> OrgUser:
    user = OrgUser.new(
        name=f"Test {role}",
        role=role,
        email=email or f"{role.lower()}-{uuid4().hex[:8]}@{org.slug}.test",
        password_hash=_PASSWORD_HASH,
        sub_org_id=sub_org_id,
    )
    user = replace(user, status=status, verification_status=verification_status)
    asyncio.run(tenant_repos(b, org).users.add(user))
    return user


def add_sub_org(b: Backends, org: Organization, name: str = "North Campus") -> SubOrg:
    sub_org = SubOrg.new(name=name)
    asyncio.run(tenant_repos(b, org).sub_orgs.add(sub_org))
    return sub_org


def add_super_admin(b: Backends, email: str = "root@lms.test") -> SuperAdmin:
    admin = SuperAdmin.new(name="Root", email=email, password_hash=_PASSWORD_HASH)

    async def _add() -> None:
        async with b.control_plane.session() as cp:
            await cp.super_admins.add(admin)

    asyncio.run(_add())
    return admin
