from __future__ import annotations

from typing import Protocol

from lms.models.org_settings import OrgSettings


class OrgSettingsRepo(Protocol):
    async def get(self) -> OrgSettings | None: ...
    async def save(self, settings: OrgSettings) -> None: ...


class InMemoryOrgSettingsRepo:
    def __init__(self) -> None:
        self._settings: OrgSettings | None = None

    async def get(self) -> OrgSettings | None:
        return self._settings

    async def save(self, settings: OrgSettings) -> None:
        self._settings = settings
