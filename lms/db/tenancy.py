"""Tenant connection registry: database name -> live tenant handle.

Every organization owns one tenant database.  A ``TenantHandle`` bundles
the data-access objects for that database's entities; a request borrows
them through ``handle.session()``, which yields a ``TenantRepos``.

``TenantRegistry.resolve(db_name)`` returns the same handle for the same
name for the lifetime of the registry:

  - first call for a name: the connector opens the connection (and, on
    PostgreSQL, creates the database and binds the tenant tables); the
    handle is cached
  - later calls: the cached handle, no reconnect
  - concurrent first calls: serialized on a per-name lock, so exactly
    one connection is opened and every caller gets the same handle
  - connector failures propagate and are not cached; the next call
    retries

Handles are never evicted.  ``close_all()`` disposes them at shutdown.

The registry is created once per process (``tenant_registry``) and
handed to routes through a FastAPI dependency, so tests install their
own isolated registry.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from lms.core.config import SETTINGS
from lms.core.metrics import TENANT_CONNECTIONS_CACHED, TENANT_CONNECTIONS_OPENED
from lms.db.engine import TenantBase, create_engine_for, ensure_database
from lms.repos.batch_repo import (
    BatchRepo,
    EnrollmentRepo,
    InMemoryBatchRepo,
    InMemoryEnrollmentRepo,
)
from lms.repos.course_repo import (
    CourseRepo,
    InMemoryCourseRepo,
    InMemoryLessonRepo,
    InMemorySectionRepo,
    LessonRepo,
    SectionRepo,
)
from lms.repos.org_settings_repo import InMemoryOrgSettingsRepo, OrgSettingsRepo
from lms.repos.org_user_repo import InMemoryOrgUserRepo, OrgUserRepo
from lms.repos.pg_batch_repo import PgBatchRepo, PgEnrollmentRepo
from lms.repos.pg_course_repo import PgCourseRepo, PgLessonRepo, PgSectionRepo
from lms.repos.pg_org_settings_repo import PgOrgSettingsRepo
from lms.repos.pg_org_user_repo import PgOrgUserRepo
from lms.repos.pg_sub_org_repo import PgSubOrgRepo
from lms.repos.sub_org_repo import InMemorySubOrgRepo, SubOrgRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TenantRepos:
    db_name: str
    users: OrgUserRepo
    sub_orgs: SubOrgRepo
    settings: OrgSettingsRepo
    courses: CourseRepo
    sections: SectionRepo
    lessons: LessonRepo
    batches: BatchRepo
    enrollments: EnrollmentRepo


class TenantHandle(Protocol):
    db_name: str

    def session(self) -> AbstractAsyncContextManager[TenantRepos]: ...
    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[TenantHandle]]


class InMemoryTenantHandle:
    """Tenant data held in process memory (dev/test)."""

    def __init__(self, db_name: str) -> None:
        self.db_name = db_name
        self._repos = TenantRepos(
            db_name=db_name,
            users=InMemoryOrgUserRepo(),
            sub_orgs=InMemorySubOrgRepo(),
            settings=InMemoryOrgSettingsRepo(),
            courses=InMemoryCourseRepo(),
            sections=InMemorySectionRepo(),
            lessons=InMemoryLessonRepo(),
            batches=InMemoryBatchRepo(),
            enrollments=InMemoryEnrollmentRepo(),
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[TenantRepos]:
        yield self._repos

    async def close(self) -> None:
        return None


class PgTenantHandle:
    """One engine per tenant database; one transaction per session()."""

    def __init__(self, db_name: str, engine: AsyncEngine) -> None:
        self.db_name = db_name
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[TenantRepos]:
        async with self._session_factory() as session:
            try:
                yield TenantRepos(
                    db_name=self.db_name,
                    users=PgOrgUserRepo(session),
                    sub_orgs=PgSubOrgRepo(session),
                    settings=PgOrgSettingsRepo(session),
                    courses=PgCourseRepo(session),
                    sections=PgSectionRepo(session),
                    lessons=PgLessonRepo(session),
                    batches=PgBatchRepo(session),
                    enrollments=PgEnrollmentRepo(session),
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        await self.engine.dispose()


async def connect_in_memory(db_name: str) -> TenantHandle:
    return InMemoryTenantHandle(db_name)


async def connect_postgres(db_name: str) -> TenantHandle:
    """Open a tenant database, creating it and its tables if missing."""
    await ensure_database(db_name)
    engine = create_engine_for(db_name)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(TenantBase.metadata.create_all)
    except Exception:
        await engine.dispose()
        raise
    return PgTenantHandle(db_name, engine)


class TenantRegistry:
    def __init__(self, connector: Connector) -> None:
        self._connector = connector
        self._handles: dict[str, TenantHandle] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def resolve(self, db_name: str) -> TenantHandle:
        if not db_name:
            raise ValueError("tenant database name is required")

        handle = self._handles.get(db_name)
        if handle is not None:
            return handle

        lock = self._locks.setdefault(db_name, asyncio.Lock())
        async with lock:
            handle = self._handles.get(db_name)
            if handle is not None:
                return handle
            try:
                handle = await self._connector(db_name)
            except Exception:
                TENANT_CONNECTIONS_OPENED.labels(outcome="error").inc()
                logger.warning("Tenant connection failed: %s", db_name)
                raise
            self._handles[db_name] = handle
            TENANT_CONNECTIONS_OPENED.labels(outcome="ok").inc()
            TENANT_CONNECTIONS_CACHED.set(len(self._handles))
            logger.info("Tenant connected: %s", db_name)
            return handle

    def cached_count(self) -> int:
        return len(self._handles)

    async def close_all(self) -> None:
        handles = list(self._handles.values())
        self._handles.clear()
        self._locks.clear()
        TENANT_CONNECTIONS_CACHED.set(0)
        for handle in handles:
            await handle.close()
        if handles:
            logger.info("Closed %d tenant connection(s)", len(handles))


def default_connector() -> Connector:
    return connect_postgres if SETTINGS.database_url else connect_in_memory


tenant_registry = TenantRegistry(default_connector())
