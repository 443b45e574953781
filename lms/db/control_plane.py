"""Control-plane store: organizations and super-admins.

Same shape as a tenant handle: ``control_plane.session()`` yields a
``ControlPlaneRepos`` for the length of one unit of work.  PostgreSQL
when DATABASE_URL is configured, in-memory otherwise.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lms.db.engine import async_session_factory
from lms.repos.organization_repo import (
    InMemoryOrganizationRepo,
    InMemorySuperAdminRepo,
    OrganizationRepo,
    SuperAdminRepo,
)
from lms.repos.pg_organization_repo import PgOrganizationRepo, PgSuperAdminRepo


@dataclass(frozen=True, slots=True)
class ControlPlaneRepos:
    organizations: OrganizationRepo
    super_admins: SuperAdminRepo


class ControlPlane(Protocol):
    def session(self) -> AbstractAsyncContextManager[ControlPlaneRepos]: ...
    async def ping(self) -> bool: ...


class InMemoryControlPlane:
    def __init__(self) -> None:
        self._repos = ControlPlaneRepos(
            organizations=InMemoryOrganizationRepo(),
            super_admins=InMemorySuperAdminRepo(),
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[ControlPlaneRepos]:
        yield self._repos

    async def ping(self) -> bool:
        return True


class PgControlPlane:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def session(self) -> AsyncIterator[ControlPlaneRepos]:
        async with self._session_factory() as session:
            try:
                yield ControlPlaneRepos(
                    organizations=PgOrganizationRepo(session),
                    super_admins=PgSuperAdminRepo(session),
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True


if async_session_factory is not None:
    control_plane: ControlPlane = PgControlPlane(async_session_factory)
else:
    control_plane = InMemoryControlPlane()
