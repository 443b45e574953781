from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.batch import ACTIVE_ENROLLMENT_STATUSES, Batch, Enrollment
from lms.repos._paging import matches_text, paginate


class BatchRepo(Protocol):
    async def get(self, batch_id: UUID, *, for_update: bool = False) -> Batch | None: ...
    async def add(self, batch: Batch) -> None: ...
    async def save(self, batch: Batch) -> None: ...
    async def search(
        self,
        *,
        status: str | None = None,
        educator_id: UUID | None = None,
        course_id: str | None = None,
        sub_org_id: UUID | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Batch], int]: ...


class EnrollmentRepo(Protocol):
    async def add(self, enrollment: Enrollment) -> None: ...
    async def find_active(self, batch_id: UUID, learner_id: UUID) -> Enrollment | None: ...
    async def list_for_batch(
        self, batch_id: UUID, *, offset: int = 0, limit: int = 20
    ) -> tuple[list[Enrollment], int]: ...


class InMemoryBatchRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Batch] = {}

    async def get(self, batch_id: UUID, *, for_update: bool = False) -> Batch | None:
        # Row locking is the in-process enrollment lock's job here
        return self._by_id.get(batch_id)

    async def add(self, batch: Batch) -> None:
        self._by_id[batch.id] = batch

    async def save(self, batch: Batch) -> None:
        self._by_id[batch.id] = batch

    async def search(
        self,
        *,
        status: str | None = None,
        educator_id: UUID | None = None,
        course_id: str | None = None,
        sub_org_id: UUID | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Batch], int]:
        items = [
            b
            for b in self._by_id.values()
            if (status is None or b.status == status)
            and (educator_id is None or b.educator_id == educator_id)
            and (course_id is None or b.course_id == course_id)
            and (sub_org_id is None or b.sub_org_id == sub_org_id)
            and (not q or matches_text(q, b.name, b.code))
        ]
        items.sort(key=lambda b: b.created_at, reverse=True)
        return paginate(items, offset, limit)


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}

    async def add(self, enrollment: Enrollment) -> None:
        self._by_id[enrollment.id] = enrollment

    async def find_active(self, batch_id: UUID, learner_id: UUID) -> Enrollment | None:
        return next(
            (
                e
                for e in self._by_id.values()
                if e.batch_id == batch_id
                and e.learner_id == learner_id
                and e.status in ACTIVE_ENROLLMENT_STATUSES
            ),
            None,
        )

    async def list_for_batch(
        self, batch_id: UUID, *, offset: int = 0, limit: int = 20
    ) -> tuple[list[Enrollment], int]:
        items = [e for e in self._by_id.values() if e.batch_id == batch_id]
        items.sort(key=lambda e: e.enrolled_at, reverse=True)
        return paginate(items, offset, limit)
