from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from lms.models.organization import utcnow

BATCH_STATUSES = ("draft", "published", "ongoing", "completed", "cancelled")
BATCH_MODES = ("online", "offline", "hybrid")
ENROLLABLE_BATCH_STATUSES = ("published", "ongoing")

ENROLLMENT_STATUSES = ("pending", "confirmed", "cancelled", "completed")
ACTIVE_ENROLLMENT_STATUSES = ("pending", "confirmed")
ENROLLMENT_SOURCES = ("admin", "self", "access_code", "import")


@dataclass(frozen=True, slots=True)
class Batch:
    id: UUID
    name: str
    course_id: str  # loose reference, not checked against courses
    educator_id: UUID
    code: str | None = None
    sub_org_id: UUID | None = None
    mode: str = "online"  # online|offline|hybrid
    start_date: datetime | None = None
    end_date: datetime | None = None
    capacity: int = 0  # 0 = unlimited
    enrollment_count: int = 0
    status: str = "draft"
    schedule: dict[str, Any] = field(default_factory=dict)
    created_by: UUID | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(
        *,
        name: str,
        course_id: str,
        educator_id: UUID,
        created_by: UUID | None = None,
        **fields: Any,
    ) -> Batch:
        return Batch(
            id=uuid4(),
            name=name,
            course_id=course_id,
            educator_id=educator_id,
            created_by=created_by,
            **fields,
        )

    @property
    def is_full(self) -> bool:
        return bool(self.capacity) and self.enrollment_count >= self.capacity


@dataclass(frozen=True, slots=True)
class Enrollment:
    id: UUID
    batch_id: UUID
    learner_id: UUID
    sub_org_id: UUID | None = None
    status: str = "confirmed"
    source: str = "admin"
    start_date: datetime | None = None
    expiry_date: datetime | None = None
    notes: str | None = None
    enrolled_by: UUID | None = None
    enrolled_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(*, batch_id: UUID, learner_id: UUID, **fields: Any) -> Enrollment:
        return Enrollment(id=uuid4(), batch_id=batch_id, learner_id=learner_id, **fields)
