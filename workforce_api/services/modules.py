from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.enums import ModuleKey, PERM_REPORTS_VIEW, PERM_SCHEDULING_ADMIN, PERM_SCHEDULING_MANAGE
from workforce_api.core.errors import NotFoundError
from workforce_api.db.models.tenancy import Module, ModuleInstallation
from workforce_api.repositories.tenancy import ModuleRepository
from workforce_api.services.base import BaseService

logger = logging.getLogger(__name__)

# Built-in catalog, upserted by seeding and on business signup
BUILTIN_MODULES: List[dict] = [
    {
        "key": ModuleKey.SCHEDULING.value,
        "name": "Scheduling",
        "description": "Schedules, shifts, open-shift claiming, availability and shift swaps.",
        "permissions": [PERM_SCHEDULING_ADMIN, PERM_SCHEDULING_MANAGE, PERM_REPORTS_VIEW],
        "manifest": {"routes": ["/scheduling"], "realtime": ["/ws/scheduling"]},
    },
    {
        "key": ModuleKey.DRIVE.value,
        "name": "Drive",
        "description": "Shared file storage.",
        "permissions": ["drive:read", "drive:write"],
        "manifest": {},
    },
    {
        "key": ModuleKey.CHAT.value,
        "name": "Chat",
        "description": "Team messaging.",
        "permissions": ["chat:use"],
        "manifest": {},
    },
    {
        "key": ModuleKey.CALENDAR.value,
        "name": "Calendar",
        "description": "Shared calendars and events.",
        "permissions": ["calendar:read", "calendar:write"],
        "manifest": {},
    },
    {
        "key": ModuleKey.HR.value,
        "name": "HR",
        "description": "Employee records and onboarding.",
        "permissions": ["hr:admin"],
        "manifest": {},
    },
    {
        "key": ModuleKey.TODO.value,
        "name": "To-do",
        "description": "Personal and team task lists.",
        "permissions": ["todo:use"],
        "manifest": {},
    },
]


class ModuleService(BaseService):
    """Module catalog and per-business installations."""

    def __init__(self, session: Optional[AsyncSession], *, modules: Optional[ModuleRepository] = None) -> None:
        super().__init__(session)
        self.modules = modules if modules is not None else ModuleRepository(session)

    async def _module(self, key: str) -> Module:
        module = await self.modules.get_by_key(key)
        if module is None:
            raise NotFoundError("Module", key)
        return module

    # PUBLIC_INTERFACE
    async def ensure_catalog(self) -> List[Module]:
        """Upsert the built-in modules into the global catalog."""
        return [await self.modules.upsert_module(**spec) for spec in BUILTIN_MODULES]

    # PUBLIC_INTERFACE
    async def list_catalog(self) -> List[Module]:
        return await self.modules.list_catalog()

    # PUBLIC_INTERFACE
    async def list_installations(self) -> List[ModuleInstallation]:
        return await self.modules.list_installations()

    # PUBLIC_INTERFACE
    async def install(self, key: str) -> ModuleInstallation:
        """Install a catalog module for the business; installing again re-enables it."""
        module = await self._module(key)
        installation = await self.modules.install(module)
        logger.info("Installed module %s", key)
        return installation

    # PUBLIC_INTERFACE
    async def set_enabled(self, key: str, enabled: bool) -> ModuleInstallation:
        module = await self._module(key)
        installation = await self.modules.get_installation(module.id)
        if installation is None:
            raise NotFoundError("Module installation", key)
        installation = await self.modules.set_enabled(installation, enabled)
        logger.info("Module %s %s", key, "enabled" if enabled else "disabled")
        return installation
