from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from lms.models.organization import utcnow

SUB_ORG_STATUSES = ("active", "inactive")


@dataclass(frozen=True, slots=True)
class SubOrg:
    id: UUID
    name: str
    code: str | None = None
    description: str | None = None
    status: str = "active"  # active|inactive
    created_by: UUID | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new(
        *,
        name: str,
        code: str | None = None,
        description: str | None = None,
        created_by: UUID | None = None,
    ) -> SubOrg:
        return SubOrg(
            id=uuid4(),
            name=name,
            code=code or None,
            description=description or None,
            created_by=created_by,
        )
