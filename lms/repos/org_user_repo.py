from __future__ import annotations

from collections import Counter
from typing import Protocol
from uuid import UUID

from lms.models.org_user import OrgUser
from lms.repos._paging import matches_text, paginate


class OrgUserRepo(Protocol):
    async def get(self, user_id: UUID) -> OrgUser | None: ...
    async def get_by_email(self, email: str) -> OrgUser | None: ...
    async def add(self, user: OrgUser) -> None: ...
    async def save(self, user: OrgUser) -> None: ...
    async def search(
        self,
        *,
        role: str | None = None,
        status: str | None = None,
        verification_status: str | None = None,
        sub_org_id: UUID | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
    ) -> tuple[list[OrgUser], int]: ...
    async def count_by_sub_org(self) -> dict[UUID, int]: ...


class InMemoryOrgUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, OrgUser] = {}

    async def get(self, user_id: UUID) -> OrgUser | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> OrgUser | None:
        email = email.strip().lower()
        return next((u for u in self._by_id.values() if u.email == email), None)

    async def add(self, user: OrgUser) -> None:
        if user.email and await self.get_by_email(user.email) is not None:
            raise ValueError("email already exists")
        self._by_id[user.id] = user

    async def save(self, user: OrgUser) -> None:
        self._by_id[user.id] = user

    async def search(
        self,
        *,
        role: str | None = None,
        status: str | None = None,
        verification_status: str | None = None,
        sub_org_id: UUID | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
    ) -> tuple[list[OrgUser], int]:
        users = [
            u
            for u in self._by_id.values()
            if (role is None or u.role == role)
            and (status is None or u.status == status)
            and (verification_status is None or u.verification_status == verification_status)
            and (sub_org_id is None or u.sub_org_id == sub_org_id)
            and (not q or matches_text(q, u.name, u.email, u.phone))
        ]
        users.sort(key=lambda u: getattr(u, order_by), reverse=True)
        return paginate(users, offset, limit)

    async def count_by_sub_org(self) -> dict[UUID, int]:
        return dict(
            Counter(u.sub_org_id for u in self._by_id.values() if u.sub_org_id is not None)
        )
