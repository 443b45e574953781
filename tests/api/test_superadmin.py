"""Organization provisioning and management by super-admins."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import UUID

from fastapi.testclient import TestClient

from lms.api.dependencies import get_registry
from lms.core.config import SETTINGS
from lms.db.tenancy import TenantRegistry
from lms.main import app
from tests.conftest import Backends, auth, mint_superadmin_token, tenant_repos

_LOGO = ("logo.png", b"\x89PNG\r\n\x1a\n", "image/png")


def _provision(client: TestClient, *, files=None, **form):
    data = {
        "name": "Acme Academy",
        "primaryContactEmail": "Owner@Acme.com",
        "adminPassword": "s3cret-pass",
        **form,
    }
    return client.post(
        "/superadmin/organizations",
        data=data,
        files=files if files is not None else {"logo": _LOGO},
        headers=auth(mint_superadmin_token()),
    )


def _failing_connector():
    async def connect(db_name: str):
        raise ConnectionError(f"cannot reach {db_name}")

    return connect


def test_provision_creates_org_and_seeds_tenant(client: TestClient, backends: Backends) -> None:
    resp = _provision(client)

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["organization"]["slug"] == "acme-academy"
    assert data["organization"]["dbName"] == "acme_academy"
    assert data["branding"]["logoUrl"].startswith("memory://media/org-logos/acme-academy/")
    assert data["branding"]["faviconUrl"] is None
    assert data["adminCredentials"] == {"email": "owner@acme.com", "password": "s3cret-pass"}
    assert data["tenantSeeded"] is True
    assert len(backends.media.objects) == 1


def test_provisioned_admin_can_log_in(client: TestClient) -> None:
    _provision(client, slug="acme")

    resp = client.post(
        "/auth/admin/login",
        json={"orgSlug": "acme", "email": "owner@acme.com", "password": "s3cret-pass"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["org"]["branding"]["logoUrl"].startswith("memory://media/")


def test_provision_requires_logo(client: TestClient) -> None:
    resp = _provision(client, files={})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Logo file is required (field name: 'logo')"


def test_provision_rejects_non_image_logo(client: TestClient) -> None:
    resp = _provision(client, files={"logo": ("logo.txt", b"hello", "text/plain")})

    assert resp.status_code == 400


def test_provision_requires_name(client: TestClient) -> None:
    resp = _provision(client, name="")

    assert resp.status_code == 400


def test_duplicate_slug_conflicts(client: TestClient) -> None:
    assert _provision(client, slug="acme").status_code == 201

    resp = _provision(client, slug="acme")

    assert resp.status_code == 409


def test_invalid_db_name_rejected(client: TestClient) -> None:
    resp = _provision(client, dbName="Bad Name!")

    assert resp.status_code == 400


def test_seed_failure_still_creates_org(client: TestClient, backends: Backends) -> None:
    app.dependency_overrides[get_registry] = lambda: TenantRegistry(_failing_connector())

    resp = _provision(client, slug="acme")

    assert resp.status_code == 201
    assert resp.json()["data"]["tenantSeeded"] is False
    listed = client.get("/superadmin/organizations", headers=auth(mint_superadmin_token()))
    assert [o["slug"] for o in listed.json()["data"]] == ["acme"]


def test_reconcile_repairs_then_is_idempotent(client: TestClient, backends: Backends) -> None:
    app.dependency_overrides[get_registry] = lambda: TenantRegistry(_failing_connector())
    org_id = _provision(client, slug="acme").json()["data"]["organization"]["id"]
    app.dependency_overrides[get_registry] = lambda: backends.registry
    headers = auth(mint_superadmin_token())

    first = client.post(f"/superadmin/organizations/{org_id}/reconcile", headers=headers)
    second = client.post(f"/superadmin/organizations/{org_id}/reconcile", headers=headers)

    assert first.status_code == second.status_code == 200
    assert first.json()["data"]["settingsCreated"] is True
    assert first.json()["data"]["adminCreated"] is True
    assert second.json()["data"]["settingsCreated"] is False
    assert second.json()["data"]["adminCreated"] is False
    assert first.json()["data"]["adminCredentials"] == {
        "email": "owner@acme.com",
        "password": SETTINGS.default_admin_password,
    }
    assert "adminCredentials" not in second.json()["data"]
    login = client.post(
        "/auth/admin/login",
        json={
            "orgSlug": "acme",
            "email": "owner@acme.com",
            "password": SETTINGS.default_admin_password,
        },
    )
    assert login.status_code == 200


def test_reconcile_keeps_tenant_branding_edits(client: TestClient, backends: Backends) -> None:
    org_id = _provision(client, slug="acme").json()["data"]["organization"]["id"]
    org = asyncio.run(_get_org(backends, org_id))
    repos = tenant_repos(backends, org)
    settings = asyncio.run(repos.settings.get())
    assert settings is not None
    asyncio.run(
        repos.settings.save(
            replace(settings, branding=replace(settings.branding, primary_color="#000000"))
        )
    )

    client.post(
        f"/superadmin/organizations/{org_id}/reconcile", headers=auth(mint_superadmin_token())
    )

    stored = asyncio.run(repos.settings.get())
    assert stored is not None
    assert stored.branding.primary_color == "#000000"


def test_change_status_blocks_login(client: TestClient) -> None:
    org_id = _provision(client, slug="acme").json()["data"]["organization"]["id"]

    resp = client.patch(
        f"/superadmin/organizations/{org_id}/status",
        json={"status": "suspended"},
        headers=auth(mint_superadmin_token()),
    )
    login = client.post(
        "/auth/admin/login",
        json={"orgSlug": "acme", "email": "owner@acme.com", "password": "s3cret-pass"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "suspended"
    assert login.status_code == 404


def test_change_status_rejects_unknown(client: TestClient) -> None:
    org_id = _provision(client, slug="acme").json()["data"]["organization"]["id"]

    resp = client.patch(
        f"/superadmin/organizations/{org_id}/status",
        json={"status": "deleted"},
        headers=auth(mint_superadmin_token()),
    )

    assert resp.status_code == 400


def test_get_unknown_org_is_404(client: TestClient) -> None:
    resp = client.get(
        "/superadmin/organizations/00000000-0000-0000-0000-000000000000",
        headers=auth(mint_superadmin_token()),
    )

    assert resp.status_code == 404


async def _get_org(backends: Backends, org_id: str):
    async with backends.control_plane.session() as cp:
        return await cp.organizations.get(UUID(org_id))
