"""PostgreSQL implementation of OrgSettingsRepo (single row, id=1)."""

from __future__ import annotations

from dataclasses import asdict

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import OrgSettingsRow
from lms.models.org_settings import (
    AuthPreferences,
    CourseBuilderSettings,
    NotificationSettings,
    OrgSettings,
)
from lms.models.organization import Branding


class PgOrgSettingsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self) -> OrgSettings | None:
        row = await self._session.get(OrgSettingsRow, 1)
        if row is None:
            return None
        return OrgSettings(
            branding=Branding(**row.branding),
            auth_preferences=AuthPreferences(**row.auth_preferences),
            course_builder=CourseBuilderSettings(**row.course_builder),
            notifications=NotificationSettings(**row.notifications),
            updated_at=row.updated_at,
        )

    async def save(self, settings: OrgSettings) -> None:
        values = {
            "branding": asdict(settings.branding),
            "auth_preferences": asdict(settings.auth_preferences),
            "course_builder": asdict(settings.course_builder),
            "notifications": asdict(settings.notifications),
            "updated_at": settings.updated_at,
        }
        stmt = insert(OrgSettingsRow).values(id=1, **values)
        stmt = stmt.on_conflict_do_update(index_elements=[OrgSettingsRow.id], set_=values)
        await self._session.execute(stmt)
