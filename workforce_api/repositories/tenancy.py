from __future__ import annotations

from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import select

from workforce_api.db.models.tenancy import Business, Module, ModuleInstallation
from workforce_api.db.session import set_current_tenant
from .base import BaseRepository


class BusinessRepository(BaseRepository):
    """Business (tenant) rows. Businesses are only visible once app.tenant_id points at them."""

    async def get(self, business_id: UUID) -> Optional[Business]:
        return await self.scalar_one_or_none(select(Business).where(Business.id == business_id))

    async def create(self, *, name: str, slug: str, subscription_tier: str = "free") -> Business:
        """
        Insert a business through RLS.

        The insert policy checks id = app.tenant_id, so the id is generated here and the
        session is scoped to it before the INSERT. The scope stays set for follow-up writes.
        """
        business_id = uuid4()
        await set_current_tenant(self.session, business_id)
        business = Business(id=business_id, name=name, slug=slug, subscription_tier=subscription_tier)
        await self.add(business)
        await self.session.flush()
        return business


class ModuleRepository(BaseRepository):
    """Global module catalog plus the installations of the current business."""

    async def list_catalog(self) -> List[Module]:
        res = await self.scalars(select(Module).order_by(Module.name))
        return list(res)

    async def get_by_key(self, key: str) -> Optional[Module]:
        return await self.scalar_one_or_none(select(Module).where(Module.key == key))

    async def upsert_module(
        self,
        *,
        key: str,
        name: str,
        description: Optional[str] = None,
        permissions: Optional[list[str]] = None,
        manifest: Optional[dict] = None,
    ) -> Module:
        module = await self.get_by_key(key)
        if module is None:
            module = Module(key=key, name=name)
        module.name = name
        module.description = description
        module.permissions = list(permissions or [])
        module.manifest = dict(manifest or {})
        module.is_builtin = True
        return await self.save(module)

    async def list_installations(self) -> List[ModuleInstallation]:
        stmt = select(ModuleInstallation).order_by(ModuleInstallation.created_at)
        res = await self.scalars(stmt)
        return list(res)

    async def get_installation(self, module_id: UUID) -> Optional[ModuleInstallation]:
        stmt = select(ModuleInstallation).where(ModuleInstallation.module_id == module_id)
        return await self.scalar_one_or_none(stmt)

    async def is_installed(self, key: str) -> bool:
        """True when the current business has an enabled installation of the module."""
        stmt = (
            select(ModuleInstallation.id)
            .join(Module, Module.id == ModuleInstallation.module_id)
            .where(Module.key == key, ModuleInstallation.enabled.is_(True))
            .limit(1)
        )
        res = await self.execute(stmt)
        return res.first() is not None

    async def install(self, module: Module) -> ModuleInstallation:
        installation = await self.get_installation(module.id)
        if installation is None:
            installation = ModuleInstallation(module_id=module.id, enabled=True)
        else:
            installation.enabled = True
        await self.save(installation)
        return (await self.get_installation(module.id))  # type: ignore

    async def set_enabled(self, installation: ModuleInstallation, enabled: bool) -> ModuleInstallation:
        installation.enabled = enabled
        return await self.save(installation)
