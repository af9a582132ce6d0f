from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.enums import (
    PERM_REPORTS_VIEW,
    PERM_SCHEDULING_ADMIN,
    PERM_SCHEDULING_MANAGE,
    ROLE_ADMIN,
    ROLE_MANAGER,
)
from workforce_api.core.errors import ConflictError
from workforce_api.core.security import get_password_hash
from workforce_api.db.session import tenant_context
from workforce_api.repositories.security import SecurityRepository
from workforce_api.repositories.tenancy import BusinessRepository, ModuleRepository
from workforce_api.schemas.tenancy import BusinessCreate, BusinessRead, BusinessSignupResult
from workforce_api.services.base import BaseService
from workforce_api.services.modules import ModuleService

logger = logging.getLogger(__name__)

ADMIN_PERMISSIONS: List[str] = [PERM_SCHEDULING_ADMIN, PERM_SCHEDULING_MANAGE, PERM_REPORTS_VIEW]
MANAGER_PERMISSIONS: List[str] = [PERM_SCHEDULING_MANAGE, PERM_REPORTS_VIEW]


class TenancyService(BaseService):
    """
    Business signup.

    Runs on a session without business scope: the business row is inserted first,
    then the session is scoped to it for the roles, admin user and installations.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.businesses = BusinessRepository(session)
        self.modules = ModuleService(session, modules=ModuleRepository(session))
        self.security = SecurityRepository(session)

    # PUBLIC_INTERFACE
    async def create_business(self, payload: BusinessCreate) -> BusinessSignupResult:
        """Create a business with admin/manager roles, its first admin user and the requested modules."""
        try:
            business = await self.businesses.create(
                name=payload.name, slug=payload.slug, subscription_tier=payload.subscription_tier.value
            )
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Business slug is already taken", {"slug": payload.slug})

        async with tenant_context(self.session, business.id):
            await self.session.commit()
            await self.session.refresh(business)
            logger.info("Created business %s (%s)", business.id, business.slug)

            await self.modules.ensure_catalog()
            installed: List[str] = []
            for key in dict.fromkeys(m.value for m in payload.modules):
                installation = await self.modules.install(key)
                installed.append(installation.module_key or key)

            admin_role = await self.security.ensure_role(ROLE_ADMIN, "Business administrator")
            await self.security.grant_permissions(admin_role, ADMIN_PERMISSIONS)
            manager_role = await self.security.ensure_role(ROLE_MANAGER, "Shift manager")
            await self.security.grant_permissions(manager_role, MANAGER_PERMISSIONS)

            admin = await self.security.create_user(
                email=payload.admin_email,
                full_name=payload.admin_full_name,
                hashed_password=get_password_hash(payload.admin_password),
            )
            await self.security.assign_role_to_user(admin.id, admin_role.id)

        return BusinessSignupResult(
            business=BusinessRead.model_validate(business),
            admin_user_id=admin.id,
            installed_modules=installed,
        )
