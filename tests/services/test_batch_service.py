"""Batch rules and enrollment seat accounting."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import uuid4

import pytest

from lms.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from lms.db.tenancy import InMemoryTenantHandle, TenantRepos
from lms.models.batch import Batch
from lms.models.org_user import OrgUser
from lms.models.principal import Principal
from lms.models.sub_org import SubOrg
from lms.services import batch_service


def _repos() -> TenantRepos:
    return InMemoryTenantHandle("acme_tenant")._repos


def _admin() -> Principal:
    return Principal(user_id=uuid4(), role="admin", db_name="acme_tenant")


def _user(repos: TenantRepos, role: str, **fields) -> OrgUser:
    user = replace(OrgUser.new(name=role, role=role, email=f"{uuid4().hex[:8]}@x.test"), **fields)
    asyncio.run(repos.users.add(user))
    return user


def _educator(repos: TenantRepos, **fields) -> OrgUser:
    return _user(repos, "educator", verification_status="approved", **fields)


def _batch(repos: TenantRepos, *, capacity: int = 0, status: str = "published", **fields) -> Batch:
    educator = _educator(repos)
    batch = Batch.new(
        name="Morning",
        course_id="course-1",
        educator_id=educator.id,
        capacity=capacity,
        status=status,
        **fields,
    )
    asyncio.run(repos.batches.add(batch))
    return batch


def _stored(repos: TenantRepos, batch: Batch) -> Batch:
    stored = asyncio.run(repos.batches.get(batch.id))
    assert stored is not None
    return stored


# ---- creation ----


def test_create_batch_requires_verified_educator() -> None:
    repos = _repos()
    pending = _user(repos, "educator", verification_status="pending")

    with pytest.raises(BadRequestError, match="not verified"):
        asyncio.run(
            batch_service.create_batch(
                repos, _admin(), {"name": "B", "course_id": "c1", "educator_id": pending.id}
            )
        )


def test_create_batch_requires_core_fields() -> None:
    with pytest.raises(BadRequestError, match="required"):
        asyncio.run(batch_service.create_batch(_repos(), _admin(), {"name": "B"}))


def test_create_batch_rejects_unknown_educator() -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(
            batch_service.create_batch(
                _repos(), _admin(), {"name": "B", "course_id": "c1", "educator_id": uuid4()}
            )
        )


def test_create_batch_inherits_educator_sub_org() -> None:
    repos = _repos()
    sub_org = SubOrg.new(name="North")
    educator = _educator(repos, sub_org_id=sub_org.id)

    batch = asyncio.run(
        batch_service.create_batch(
            repos, _admin(), {"name": "B", "course_id": "c1", "educator_id": educator.id}
        )
    )

    assert batch.sub_org_id == sub_org.id
    assert batch.status == "draft"
    assert batch.capacity == 0
    assert batch.enrollment_count == 0


def test_sub_org_admin_cannot_use_foreign_educator() -> None:
    repos = _repos()
    educator = _educator(repos, sub_org_id=uuid4())
    principal = Principal(user_id=uuid4(), role="subOrgAdmin", sub_org_id=uuid4())

    with pytest.raises(ForbiddenError):
        asyncio.run(
            batch_service.create_batch(
                repos, principal, {"name": "B", "course_id": "c1", "educator_id": educator.id}
            )
        )


def test_educator_creates_batches_only_for_self() -> None:
    repos = _repos()
    me = _educator(repos)
    other = _educator(repos)
    principal = Principal(user_id=me.id, role="educator")

    with pytest.raises(ForbiddenError):
        asyncio.run(
            batch_service.create_batch(
                repos, principal, {"name": "B", "course_id": "c1", "educator_id": other.id}
            )
        )


def test_change_status_accepts_any_known_status() -> None:
    repos = _repos()
    batch = _batch(repos, status="completed")

    updated = asyncio.run(batch_service.change_batch_status(repos, _admin(), batch.id, "draft"))

    assert updated.status == "draft"


def test_change_status_rejects_unknown_status() -> None:
    repos = _repos()
    batch = _batch(repos)

    with pytest.raises(BadRequestError, match="Invalid batch status"):
        asyncio.run(batch_service.change_batch_status(repos, _admin(), batch.id, "paused"))


def test_educator_list_is_limited_to_own_batches() -> None:
    repos = _repos()
    mine = _batch(repos)
    _batch(repos)
    principal = Principal(user_id=mine.educator_id, role="educator")

    page = asyncio.run(batch_service.list_batches(repos, principal))

    assert [b.id for b in page.items] == [mine.id]
    assert page.total == 1


# ---- enrollment ----


def test_enroll_increments_count() -> None:
    repos = _repos()
    batch = _batch(repos)
    learner = _user(repos, "learner")

    enrollment = asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, learner.id))

    assert enrollment.status == "confirmed"
    assert enrollment.source == "admin"
    assert _stored(repos, batch).enrollment_count == 1


def test_duplicate_enrollment_conflicts_and_keeps_count() -> None:
    repos = _repos()
    batch = _batch(repos)
    learner = _user(repos, "learner")
    asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, learner.id))

    with pytest.raises(ConflictError):
        asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, learner.id))

    assert _stored(repos, batch).enrollment_count == 1


def test_full_batch_rejects_enrollment() -> None:
    repos = _repos()
    batch = _batch(repos, capacity=1)
    first, second = _user(repos, "learner"), _user(repos, "learner")
    asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, first.id))

    with pytest.raises(BadRequestError) as exc_info:
        asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, second.id))

    assert exc_info.value.code == "BATCH_FULL"
    assert _stored(repos, batch).enrollment_count == 1


def test_draft_batch_rejects_enrollment() -> None:
    repos = _repos()
    batch = _batch(repos, status="draft")
    learner = _user(repos, "learner")

    with pytest.raises(BadRequestError, match="published/ongoing"):
        asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, learner.id))


def test_non_learner_cannot_be_enrolled() -> None:
    repos = _repos()
    batch = _batch(repos)
    educator = _educator(repos)

    with pytest.raises(NotFoundError, match="Learner not found"):
        asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, educator.id))


def test_concurrent_enrollments_never_exceed_capacity() -> None:
    repos = _repos()
    batch = _batch(repos, capacity=3)
    learners = [_user(repos, "learner") for _ in range(10)]

    async def _race():
        return await asyncio.gather(
            *(
                batch_service.enroll_learner(repos, _admin(), batch.id, learner.id)
                for learner in learners
            ),
            return_exceptions=True,
        )

    outcomes = asyncio.run(_race())

    succeeded = [o for o in outcomes if not isinstance(o, Exception)]
    rejected = [o for o in outcomes if isinstance(o, BadRequestError)]
    assert len(succeeded) == 3
    assert len(rejected) == 7
    assert _stored(repos, batch).enrollment_count == 3


def test_concurrent_duplicate_enrollment_creates_one_row() -> None:
    repos = _repos()
    batch = _batch(repos)
    learner = _user(repos, "learner")

    async def _race():
        return await asyncio.gather(
            *(batch_service.enroll_learner(repos, _admin(), batch.id, learner.id) for _ in range(5)),
            return_exceptions=True,
        )

    outcomes = asyncio.run(_race())

    assert sum(1 for o in outcomes if not isinstance(o, Exception)) == 1
    assert sum(1 for o in outcomes if isinstance(o, ConflictError)) == 4
    assert _stored(repos, batch).enrollment_count == 1


def test_bulk_enroll_stops_at_capacity() -> None:
    repos = _repos()
    batch = _batch(repos, capacity=2)
    l1, l2, l3 = (_user(repos, "learner") for _ in range(3))

    result = asyncio.run(
        batch_service.bulk_enroll(repos, _admin(), batch.id, [l1.id, l2.id, l3.id])
    )

    assert result.total == 3
    assert result.success_count == 2
    assert result.failure_count == 1
    assert result.results[2].learner_id == l3.id
    assert result.results[2].message == "Batch is full"
    assert _stored(repos, batch).enrollment_count == 2


def test_bulk_enroll_reports_each_failure() -> None:
    repos = _repos()
    batch = _batch(repos)
    enrolled = _user(repos, "learner")
    fresh = _user(repos, "learner")
    asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, enrolled.id))

    result = asyncio.run(
        batch_service.bulk_enroll(repos, _admin(), batch.id, [enrolled.id, uuid4(), fresh.id])
    )

    assert [r.status for r in result.results] == ["error", "error", "success"]
    assert result.results[0].message == "Learner is already enrolled in this batch"
    assert result.results[1].message == "Learner not found"
    assert _stored(repos, batch).enrollment_count == 2


def test_zero_capacity_means_unlimited() -> None:
    repos = _repos()
    batch = _batch(repos, capacity=0, enrollment_count=500)
    learner = _user(repos, "learner")

    asyncio.run(batch_service.enroll_learner(repos, _admin(), batch.id, learner.id))

    assert _stored(repos, batch).enrollment_count == 501


def test_bulk_enroll_with_zero_capacity_admits_everyone() -> None:
    repos = _repos()
    batch = _batch(repos, capacity=0)
    learners = [_user(repos, "learner") for _ in range(25)]

    result = asyncio.run(
        batch_service.bulk_enroll(
            repos, _admin(), batch.id, [learner.id for learner in learners] + [learners[0].id]
        )
    )

    assert result.success_count == 25
    assert result.failure_count == 1
    assert result.results[-1].message == "Learner is already enrolled in this batch"
    assert _stored(repos, batch).enrollment_count == 25


def test_bulk_enroll_requires_learners() -> None:
    repos = _repos()
    batch = _batch(repos)

    with pytest.raises(BadRequestError):
        asyncio.run(batch_service.bulk_enroll(repos, _admin(), batch.id, []))


def test_self_enroll_uses_caller_as_learner() -> None:
    repos = _repos()
    batch = _batch(repos)
    learner = _user(repos, "learner")
    principal = Principal(user_id=learner.id, role="learner")

    enrollment = asyncio.run(batch_service.self_enroll(repos, principal, batch.id))

    assert enrollment.learner_id == learner.id
    assert enrollment.source == "self"
    assert enrollment.enrolled_by == learner.id


def test_sub_org_admin_cannot_enroll_into_other_sub_org() -> None:
    repos = _repos()
    batch = _batch(repos, sub_org_id=uuid4())
    learner = _user(repos, "learner")
    principal = Principal(user_id=uuid4(), role="subOrgAdmin", sub_org_id=uuid4())

    with pytest.raises(ForbiddenError):
        asyncio.run(batch_service.enroll_learner(repos, principal, batch.id, learner.id))
