"""Educator profile and verification workflow."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import uuid4

import pytest

from lms.core.errors import BadRequestError, ForbiddenError, NotFoundError
from lms.db.tenancy import InMemoryTenantHandle, TenantRepos
from lms.models.org_user import OrgUser
from lms.models.principal import Principal
from lms.services import educator_service
from lms.services.media_service import InMemoryMediaStore

_ADMIN = Principal(user_id=uuid4(), role="admin", db_name="acme_tenant")


def _repos() -> TenantRepos:
    return InMemoryTenantHandle("acme_tenant")._repos


def _educator(repos: TenantRepos, **fields) -> OrgUser:
    educator = OrgUser.new(name="Ed", role="educator", email=f"{uuid4().hex[:8]}@x.test")
    educator = replace(educator, **fields)
    asyncio.run(repos.users.add(educator))
    return educator


def _upload(repos, store, principal, educator, doc_type=None):
    return asyncio.run(
        educator_service.add_verification_document(
            repos,
            store,
            principal,
            educator.id,
            data=b"%PDF-1.7",
            filename="degree.pdf",
            content_type="application/pdf",
            doc_type=doc_type,
        )
    )


def test_first_document_moves_status_to_pending() -> None:
    repos, store = _repos(), InMemoryMediaStore()
    educator = _educator(repos)

    updated, doc = _upload(repos, store, _ADMIN, educator, "DEGREE")

    assert updated.verification_status == "pending"
    assert doc.type == "DEGREE"
    assert doc.public_id in store.objects
    assert len(updated.verification_docs) == 1


def test_document_type_defaults_to_other() -> None:
    repos, store = _repos(), InMemoryMediaStore()
    _, doc = _upload(repos, store, _ADMIN, _educator(repos))
    assert doc.type == "OTHER"


@pytest.mark.parametrize("decided", ["approved", "rejected"])
def test_upload_never_downgrades_decided_status(decided: str) -> None:
    repos, store = _repos(), InMemoryMediaStore()
    educator = _educator(repos, verification_status=decided)

    updated, _ = _upload(repos, store, _ADMIN, educator)

    assert updated.verification_status == decided


def test_educator_uploads_only_own_documents() -> None:
    repos, store = _repos(), InMemoryMediaStore()
    educator = _educator(repos)
    someone_else = Principal(user_id=uuid4(), role="educator")

    with pytest.raises(ForbiddenError):
        _upload(repos, store, someone_else, educator)


def test_delete_document_removes_stored_file() -> None:
    repos, store = _repos(), InMemoryMediaStore()
    educator = _educator(repos)
    _, doc = _upload(repos, store, _ADMIN, educator)

    updated = asyncio.run(
        educator_service.delete_verification_document(repos, store, _ADMIN, educator.id, doc.id)
    )

    assert updated.verification_docs == ()
    assert doc.public_id not in store.objects


def test_delete_unknown_document_is_404() -> None:
    repos, store = _repos(), InMemoryMediaStore()
    educator = _educator(repos)

    with pytest.raises(NotFoundError, match="Document not found"):
        asyncio.run(
            educator_service.delete_verification_document(repos, store, _ADMIN, educator.id, uuid4())
        )


def test_review_stamps_reviewer() -> None:
    repos = _repos()
    educator = _educator(repos, verification_status="pending")

    reviewed = asyncio.run(
        educator_service.review_verification(
            repos, _ADMIN, educator.id, status="approved", notes="Looks good"
        )
    )

    assert reviewed.verification_status == "approved"
    assert reviewed.verified_by == _ADMIN.user_id
    assert reviewed.verified_at is not None
    assert reviewed.verification_notes == "Looks good"
    assert reviewed.is_verified_educator


def test_re_approval_restamps_time() -> None:
    repos = _repos()
    educator = _educator(repos)
    first = asyncio.run(
        educator_service.review_verification(repos, _ADMIN, educator.id, status="approved")
    )

    second = asyncio.run(
        educator_service.review_verification(repos, _ADMIN, educator.id, status="approved")
    )

    assert second.verification_status == "approved"
    assert second.verified_at >= first.verified_at


def test_review_rejects_unknown_status() -> None:
    repos = _repos()
    educator = _educator(repos)

    with pytest.raises(BadRequestError):
        asyncio.run(
            educator_service.review_verification(repos, _ADMIN, educator.id, status="pending")
        )


def test_educator_cannot_review() -> None:
    repos = _repos()
    educator = _educator(repos)
    principal = Principal(user_id=educator.id, role="educator")

    with pytest.raises(ForbiddenError):
        asyncio.run(
            educator_service.review_verification(repos, principal, educator.id, status="approved")
        )


def test_profile_update_is_shallow_merge() -> None:
    repos = _repos()
    educator = _educator(repos, educator_profile={"title": "Dr", "bio": "Old"})

    updated = asyncio.run(
        educator_service.update_profile(repos, _ADMIN, educator.id, {"bio": "New"})
    )

    assert updated.educator_profile == {"title": "Dr", "bio": "New"}


def test_profile_update_requires_object() -> None:
    repos = _repos()
    educator = _educator(repos)

    with pytest.raises(BadRequestError, match="educatorProfile object is required"):
        asyncio.run(educator_service.update_profile(repos, _ADMIN, educator.id, None))


def test_non_educator_is_not_found() -> None:
    repos = _repos()
    learner = OrgUser.new(name="L", role="learner", email="l@x.test")
    asyncio.run(repos.users.add(learner))

    with pytest.raises(NotFoundError, match="Educator not found"):
        asyncio.run(educator_service.get_educator(repos, _ADMIN, learner.id))


def test_educator_list_for_educator_is_self_only() -> None:
    repos = _repos()
    me = _educator(repos)
    _educator(repos)

    page = asyncio.run(
        educator_service.list_educators(repos, Principal(user_id=me.id, role="educator"))
    )

    assert [e.id for e in page.items] == [me.id]


def test_sub_org_admin_sees_only_own_sub_org_educators() -> None:
    repos = _repos()
    mine, theirs = uuid4(), uuid4()
    in_scope = _educator(repos, sub_org_id=mine)
    _educator(repos, sub_org_id=theirs)

    page = asyncio.run(
        educator_service.list_educators(
            repos, Principal(user_id=uuid4(), role="subOrgAdmin", sub_org_id=mine)
        )
    )

    assert [e.id for e in page.items] == [in_scope.id]
