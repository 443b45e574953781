from __future__ import annotations

import asyncio

import pytest

from lms.core.errors import BadRequestError
from lms.db.tenancy import InMemoryTenantHandle
from lms.models.org_settings import OrgSettings
from lms.services.media_service import InMemoryMediaStore, MediaUpload
from lms.services.organization_service import derive_db_name, normalize_slug, set_tenant_logo


@pytest.mark.parametrize(
    "raw,slug",
    [
        ("Acme Academy", "acme-academy"),
        ("  Acme   Academy ", "acme-academy"),
        ("Acme & Co.", "acme--co"),
        ("already-fine", "already-fine"),
        (None, ""),
    ],
)
def test_normalize_slug(raw: str | None, slug: str) -> None:
    assert normalize_slug(raw) == slug


def test_derive_db_name() -> None:
    assert derive_db_name("acme-academy") == "acme_academy"


def test_set_tenant_logo_updates_settings_branding() -> None:
    repos = InMemoryTenantHandle("acme_tenant")._repos
    store = InMemoryMediaStore()
    asyncio.run(repos.settings.save(OrgSettings()))

    stored = asyncio.run(
        set_tenant_logo(
            repos,
            store,
            org_slug="acme",
            upload=MediaUpload(data=b"\x89PNG", filename="l.png", content_type="image/png"),
        )
    )

    settings = asyncio.run(repos.settings.get())
    assert settings is not None
    assert settings.branding.logo_url == stored.url
    assert stored.public_id.startswith("org-logos/acme/logo-")


def test_set_tenant_logo_requires_file() -> None:
    repos = InMemoryTenantHandle("acme_tenant")._repos

    with pytest.raises(BadRequestError, match="Logo file is required"):
        asyncio.run(set_tenant_logo(repos, InMemoryMediaStore(), org_slug="acme", upload=None))
