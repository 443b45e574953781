"""Educator profiles and the verification workflow.

Verification status moves null/unverified -> pending when the first
document is uploaded.  Later uploads never change a status that has
already been decided.  Approve/reject is an admin or subOrgAdmin action
and may be repeated (re-approval restamps reviewer and time).  Only an
approved educator can be assigned to a batch.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any
from uuid import UUID

from lms.core.errors import BadRequestError, ForbiddenError, NotFoundError
from lms.db.tenancy import TenantRepos
from lms.models.org_user import OrgUser, VerificationDocument
from lms.models.organization import utcnow
from lms.models.principal import Principal
from lms.services import media_service
from lms.services.access import ADMIN_ROLES, check_educator_self, check_sub_org_scope
from lms.services.media_service import MediaStore
from lms.services.pagination import Page, PageRequest

logger = logging.getLogger(__name__)

REVIEW_STATUSES = ("approved", "rejected")
_UNDECIDED = (None, "unverified")


async def list_educators(
    repos: TenantRepos,
    principal: Principal,
    *,
    status: str | None = None,
    q: str | None = None,
    paging: PageRequest = PageRequest(),
) -> Page[OrgUser]:
    if principal.has_role("educator"):
        me = await repos.users.get(principal.user_id)
        items = [me] if me is not None and me.role == "educator" else []
        return Page(items=items, page=1, limit=paging.limit, total=len(items))

    sub_org_id = principal.sub_org_id if principal.has_role("subOrgAdmin") else None
    items, total = await repos.users.search(
        role="educator",
        verification_status=status or None,
        sub_org_id=sub_org_id,
        q=q or None,
        offset=paging.offset,
        limit=paging.limit,
        order_by="updated_at",
    )
    return Page(items=items, page=paging.page, limit=paging.limit, total=total)


async def get_educator(repos: TenantRepos, principal: Principal, educator_id: UUID) -> OrgUser:
    educator = await _load(repos, educator_id)
    check_sub_org_scope(principal, educator.sub_org_id, "Forbidden: educator not in your sub-organization")
    check_educator_self(principal, educator.id, "Educators can only view their own verification")
    return educator


async def update_profile(
    repos: TenantRepos, principal: Principal, educator_id: UUID, profile: Mapping[str, Any] | None
) -> OrgUser:
    """Shallow-merge ``profile`` into the stored educator profile."""
    if not isinstance(profile, Mapping):
        raise BadRequestError("educatorProfile object is required")
    educator = await _load(repos, educator_id)
    check_sub_org_scope(principal, educator.sub_org_id, "Forbidden: educator not in your sub-organization")
    check_educator_self(principal, educator.id, "Educators can only edit their own profile")

    merged = {**(educator.educator_profile or {}), **profile}
    educator = replace(educator, educator_profile=merged, updated_at=utcnow())
    await repos.users.save(educator)
    return educator


async def add_verification_document(
    repos: TenantRepos,
    store: MediaStore,
    principal: Principal,
    educator_id: UUID,
    *,
    data: bytes,
    filename: str | None,
    content_type: str | None,
    doc_type: str | None = None,
) -> tuple[OrgUser, VerificationDocument]:
    if not data:
        raise BadRequestError("Document file is required (field name: 'file')")
    educator = await _load(repos, educator_id)
    check_sub_org_scope(principal, educator.sub_org_id, "Forbidden: educator not in your sub-organization")
    check_educator_self(principal, educator.id, "Educators can only upload their own documents")

    stored = await media_service.upload_educator_doc(
        store,
        data,
        tenant=repos.db_name,
        educator_id=educator.id,
        filename=filename,
        content_type=content_type,
    )
    doc = VerificationDocument.new(
        type=doc_type or "OTHER", url=stored.url, public_id=stored.public_id
    )
    status = educator.verification_status
    if status in _UNDECIDED:
        status = "pending"
    educator = replace(
        educator,
        verification_docs=(*educator.verification_docs, doc),
        verification_status=status,
        updated_at=utcnow(),
    )
    await repos.users.save(educator)
    logger.info("Verification document added educator=%s status=%s", educator.id, status)
    return educator, doc


async def delete_verification_document(
    repos: TenantRepos,
    store: MediaStore,
    principal: Principal,
    educator_id: UUID,
    doc_id: UUID,
) -> OrgUser:
    educator = await _load(repos, educator_id)
    check_educator_self(principal, educator.id, "Educators can only delete their own documents")
    check_sub_org_scope(principal, educator.sub_org_id, "Forbidden: educator not in your sub-organization")

    doc = next((d for d in educator.verification_docs if d.id == doc_id), None)
    if doc is None:
        raise NotFoundError("Document not found")

    await store.delete(doc.public_id)
    educator = replace(
        educator,
        verification_docs=tuple(d for d in educator.verification_docs if d.id != doc_id),
        updated_at=utcnow(),
    )
    await repos.users.save(educator)
    logger.info("Verification document removed educator=%s doc=%s", educator.id, doc_id)
    return educator


async def review_verification(
    repos: TenantRepos,
    principal: Principal,
    educator_id: UUID,
    *,
    status: str | None,
    notes: str | None = None,
) -> OrgUser:
    """Approve or reject an educator; repeatable."""
    if not principal.has_any_role(ADMIN_ROLES):
        raise ForbiddenError("Only admins can review educator verification")
    if status not in REVIEW_STATUSES:
        raise BadRequestError("status must be 'approved' or 'rejected'")
    educator = await _load(repos, educator_id)
    check_sub_org_scope(principal, educator.sub_org_id, "Forbidden: educator not in your sub-organization")

    now = utcnow()
    educator = replace(
        educator,
        verification_status=status,
        verification_notes=notes or None,
        verified_by=principal.user_id,
        verified_at=now,
        updated_at=now,
    )
    await repos.users.save(educator)
    logger.info(
        "Educator %s verification=%s by=%s", educator.id, status, principal.user_id
    )
    return educator


async def _load(repos: TenantRepos, educator_id: UUID) -> OrgUser:
    educator = await repos.users.get(educator_id)
    if educator is None or educator.role != "educator":
        raise NotFoundError("Educator not found")
    return educator
