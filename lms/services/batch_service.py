"""Batches and enrollments.

Enrollment rules, shared by single, bulk and self enrollment:

  - the batch must be ``published`` or ``ongoing``
  - ``capacity`` 0 means unlimited; otherwise ``enrollment_count`` may
    not reach past it
  - the learner must exist with role ``learner``
  - at most one active (pending|confirmed) enrollment per (batch, learner)

The check-then-write sequence for one batch is serialized: an in-process
lock keyed by (tenant, batch) plus a row lock on the batch under
PostgreSQL, so two concurrent requests cannot both take the last seat.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any
from uuid import UUID

from lms.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from lms.core.metrics import ENROLLMENTS
from lms.db.tenancy import TenantRepos
from lms.models.batch import BATCH_MODES, BATCH_STATUSES, ENROLLABLE_BATCH_STATUSES, Batch, Enrollment
from lms.models.org_user import OrgUser
from lms.models.organization import utcnow
from lms.models.principal import Principal
from lms.services.access import check_educator_self, check_sub_org_scope
from lms.services.pagination import Page, PageRequest

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("name", "code", "start_date", "end_date", "capacity", "status", "schedule", "mode")

_enrollment_locks: weakref.WeakValueDictionary[tuple[str, UUID], asyncio.Lock] = (
    weakref.WeakValueDictionary()
)


@asynccontextmanager
async def _batch_lock(db_name: str, batch_id: UUID):
    key = (db_name, batch_id)
    lock = _enrollment_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _enrollment_locks[key] = lock
    async with lock:
        yield


@dataclass(frozen=True, slots=True)
class EnrollmentTerms:
    start_date: datetime | None = None
    expiry_date: datetime | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class BulkItemResult:
    learner_id: UUID
    status: str  # success|error
    enrollment_id: UUID | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class BulkEnrollResult:
    batch_id: UUID
    results: list[BulkItemResult]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.status == "success")

    @property
    def failure_count(self) -> int:
        return self.total - self.success_count


async def list_batches(
    repos: TenantRepos,
    principal: Principal,
    *,
    status: str | None = None,
    educator_id: UUID | None = None,
    course_id: str | None = None,
    sub_org_id: UUID | None = None,
    q: str | None = None,
    paging: PageRequest = PageRequest(),
) -> Page[Batch]:
    if principal.has_role("subOrgAdmin") and principal.sub_org_id is not None:
        sub_org_id = principal.sub_org_id
    if principal.has_role("educator"):
        educator_id = principal.user_id

    items, total = await repos.batches.search(
        status=status or None,
        educator_id=educator_id,
        course_id=course_id or None,
        sub_org_id=sub_org_id,
        q=q or None,
        offset=paging.offset,
        limit=paging.limit,
    )
    return Page(items=items, page=paging.page, limit=paging.limit, total=total)


async def get_batch(repos: TenantRepos, principal: Principal, batch_id: UUID) -> Batch:
    batch = await _load(repos, batch_id)
    _check_scope(principal, batch)
    return batch


async def create_batch(
    repos: TenantRepos, principal: Principal, payload: Mapping[str, Any]
) -> Batch:
    name = payload.get("name")
    course_id = payload.get("course_id")
    educator_id = payload.get("educator_id")
    if not name or not course_id or educator_id is None:
        raise BadRequestError("name, courseId, and educatorId are required")

    mode = payload.get("mode") or "online"
    if mode not in BATCH_MODES:
        raise BadRequestError("Invalid batch mode")

    educator = await _verified_educator(repos, educator_id, "Educator")
    sub_org_id = payload.get("sub_org_id") or educator.sub_org_id

    if principal.has_role("subOrgAdmin"):
        if principal.sub_org_id is None:
            raise BadRequestError("SubOrgAdmin must belong to a sub-organization to create batches")
        if educator.sub_org_id is not None and educator.sub_org_id != principal.sub_org_id:
            raise ForbiddenError("Educator does not belong to your sub-organization")
        sub_org_id = principal.sub_org_id
    elif principal.has_role("educator"):
        if educator.id != principal.user_id:
            raise ForbiddenError("Educators can only create batches for themselves")
        sub_org_id = educator.sub_org_id

    batch = Batch.new(
        name=name,
        course_id=str(course_id),
        educator_id=educator.id,
        created_by=principal.user_id,
        code=payload.get("code") or None,
        sub_org_id=sub_org_id,
        mode=mode,
        start_date=payload.get("start_date"),
        end_date=payload.get("end_date"),
        capacity=payload.get("capacity") or 0,
        schedule=dict(payload.get("schedule") or {}),
    )
    await repos.batches.add(batch)
    logger.info(
        "Batch created id=%s educator=%s sub_org=%s by=%s",
        batch.id,
        educator.id,
        sub_org_id,
        principal.user_id,
    )
    return batch


async def update_batch(
    repos: TenantRepos, principal: Principal, batch_id: UUID, changes: Mapping[str, Any]
) -> Batch:
    batch = await _load(repos, batch_id)
    _check_scope(principal, batch)

    fields: dict[str, Any] = {k: changes[k] for k in _UPDATABLE_FIELDS if k in changes}
    if "status" in fields and fields["status"] not in BATCH_STATUSES:
        raise BadRequestError("Invalid batch status")
    if "mode" in fields and fields["mode"] not in BATCH_MODES:
        raise BadRequestError("Invalid batch mode")
    if "capacity" in fields:
        fields["capacity"] = fields["capacity"] or 0
    if "schedule" in fields:
        fields["schedule"] = dict(fields["schedule"] or {})

    new_educator_id = changes.get("educator_id")
    if new_educator_id is not None and principal.has_role("admin"):
        educator = await _verified_educator(repos, new_educator_id, "New educator")
        fields["educator_id"] = educator.id
        if educator.sub_org_id is not None:
            fields["sub_org_id"] = educator.sub_org_id

    batch = replace(batch, **fields, updated_at=utcnow())
    await repos.batches.save(batch)
    return batch


async def change_batch_status(
    repos: TenantRepos, principal: Principal, batch_id: UUID, status: str | None
) -> Batch:
    # Any of the five values may follow any other
    if status not in BATCH_STATUSES:
        raise BadRequestError("Invalid batch status")
    batch = await _load(repos, batch_id)
    _check_scope(principal, batch)

    batch = replace(batch, status=status, updated_at=utcnow())
    await repos.batches.save(batch)
    logger.info("Batch status id=%s status=%s by=%s", batch.id, status, principal.user_id)
    return batch


async def list_enrollments(
    repos: TenantRepos, principal: Principal, batch_id: UUID, paging: PageRequest = PageRequest()
) -> Page[Enrollment]:
    batch = await _load(repos, batch_id)
    _check_scope(principal, batch)
    items, total = await repos.enrollments.list_for_batch(
        batch.id, offset=paging.offset, limit=paging.limit
    )
    return Page(items=items, page=paging.page, limit=paging.limit, total=total)


async def enroll_learner(
    repos: TenantRepos,
    principal: Principal,
    batch_id: UUID,
    learner_id: UUID | None,
    terms: EnrollmentTerms = EnrollmentTerms(),
) -> Enrollment:
    """Enroll one learner on behalf of an admin, sub-org admin or educator."""
    if learner_id is None:
        raise BadRequestError("learnerId is required")
    async with _batch_lock(repos.db_name, batch_id):
        batch = await _load(repos, batch_id, for_update=True)
        _check_scope(principal, batch)
        return await _enroll_one(
            repos, batch, learner_id, terms, source="admin", enrolled_by=principal.user_id
        )


async def self_enroll(
    repos: TenantRepos,
    principal: Principal,
    batch_id: UUID,
    terms: EnrollmentTerms = EnrollmentTerms(),
) -> Enrollment:
    if not principal.has_role("learner"):
        raise ForbiddenError("Forbidden: only learners can self-enroll")
    async with _batch_lock(repos.db_name, batch_id):
        batch = await _load(repos, batch_id, for_update=True)
        return await _enroll_one(
            repos, batch, principal.user_id, terms, source="self", enrolled_by=principal.user_id
        )


async def bulk_enroll(
    repos: TenantRepos,
    principal: Principal,
    batch_id: UUID,
    learner_ids: Sequence[UUID] | None,
    terms: EnrollmentTerms = EnrollmentTerms(),
) -> BulkEnrollResult:
    """Enroll learners one after another against a running seat counter.

    Per-learner failures are reported in the result; only request-level
    problems (unknown batch, scope, batch not open) raise.
    """
    if not learner_ids:
        raise BadRequestError("learnerIds must be a non-empty array")

    async with _batch_lock(repos.db_name, batch_id):
        batch = await _load(repos, batch_id, for_update=True)
        _check_scope(principal, batch)
        _require_open(batch)

        count = batch.enrollment_count
        results: list[BulkItemResult] = []
        for learner_id in learner_ids:
            if batch.capacity and count >= batch.capacity:
                results.append(_failed(learner_id, "Batch is full", "BATCH_FULL"))
                continue
            learner = await repos.users.get(learner_id)
            if learner is None or learner.role != "learner":
                results.append(_failed(learner_id, "Learner not found", "NOT_FOUND"))
                continue
            if await repos.enrollments.find_active(batch.id, learner_id) is not None:
                results.append(
                    _failed(learner_id, "Learner is already enrolled in this batch", "CONFLICT")
                )
                continue

            enrollment = _new_enrollment(batch, learner, terms, "admin", principal.user_id)
            await repos.enrollments.add(enrollment)
            count += 1
            ENROLLMENTS.labels(source="admin", outcome="ok").inc()
            results.append(
                BulkItemResult(learner_id=learner_id, status="success", enrollment_id=enrollment.id)
            )

        await repos.batches.save(replace(batch, enrollment_count=count, updated_at=utcnow()))

    result = BulkEnrollResult(batch_id=batch.id, results=results)
    logger.info(
        "Bulk enroll batch=%s total=%d ok=%d failed=%d by=%s",
        batch.id,
        result.total,
        result.success_count,
        result.failure_count,
        principal.user_id,
    )
    return result


async def _enroll_one(
    repos: TenantRepos,
    batch: Batch,
    learner_id: UUID,
    terms: EnrollmentTerms,
    *,
    source: str,
    enrolled_by: UUID,
) -> Enrollment:
    try:
        if batch.is_full:
            raise BadRequestError("Batch is full", code="BATCH_FULL")
        _require_open(batch)

        learner = await repos.users.get(learner_id)
        if learner is None or learner.role != "learner":
            raise NotFoundError("Learner not found")
        if await repos.enrollments.find_active(batch.id, learner_id) is not None:
            raise ConflictError("Learner is already enrolled in this batch")
    except (BadRequestError, NotFoundError, ConflictError) as exc:
        ENROLLMENTS.labels(source=source, outcome=exc.code).inc()
        raise

    enrollment = _new_enrollment(batch, learner, terms, source, enrolled_by)
    await repos.enrollments.add(enrollment)
    await repos.batches.save(
        replace(batch, enrollment_count=batch.enrollment_count + 1, updated_at=utcnow())
    )
    ENROLLMENTS.labels(source=source, outcome="ok").inc()
    logger.info(
        "Enrollment created id=%s batch=%s learner=%s source=%s",
        enrollment.id,
        batch.id,
        learner_id,
        source,
    )
    return enrollment


def _new_enrollment(
    batch: Batch, learner: OrgUser, terms: EnrollmentTerms, source: str, enrolled_by: UUID
) -> Enrollment:
    return Enrollment.new(
        batch_id=batch.id,
        learner_id=learner.id,
        sub_org_id=batch.sub_org_id or learner.sub_org_id,
        status="confirmed",
        source=source,
        start_date=terms.start_date,
        expiry_date=terms.expiry_date,
        notes=terms.notes or None,
        enrolled_by=enrolled_by,
    )


def _failed(learner_id: UUID, message: str, outcome: str) -> BulkItemResult:
    ENROLLMENTS.labels(source="admin", outcome=outcome).inc()
    return BulkItemResult(learner_id=learner_id, status="error", message=message)


def _require_open(batch: Batch) -> None:
    if batch.status not in ENROLLABLE_BATCH_STATUSES:
        raise BadRequestError("Enrollments are allowed only for published/ongoing batches")


def _check_scope(principal: Principal, batch: Batch) -> None:
    check_sub_org_scope(principal, batch.sub_org_id)
    check_educator_self(principal, batch.educator_id)


async def _verified_educator(repos: TenantRepos, educator_id: UUID, label: str) -> OrgUser:
    educator = await repos.users.get(educator_id)
    if educator is None or educator.role != "educator":
        raise NotFoundError(f"{label} not found")
    if not educator.is_verified_educator:
        raise BadRequestError(
            f"{label} is not verified. Only verified educators can be assigned to a batch."
        )
    return educator


async def _load(repos: TenantRepos, batch_id: UUID, *, for_update: bool = False) -> Batch:
    batch = await repos.batches.get(batch_id, for_update=for_update)
    if batch is None:
        raise NotFoundError("Batch not found")
    return batch
