"""
Database seeding utilities for reference and demo data.

Seeds:
- The built-in module catalog (scheduling, drive, chat, calendar, hr, todo)
- A demo business (slug DEFAULT_TENANT_SLUG) with admin/manager roles, an admin
  user (SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD) and the scheduling module installed
- A few example positions for the demo business

Usage:
  python -m workforce_api.db.run_migrations upgrade head
  python -m workforce_api.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.enums import ModuleKey
from workforce_api.core.settings import get_app_settings
from workforce_api.db.session import get_session_maker, tenant_context
from workforce_api.repositories.employees import PositionRepository
from workforce_api.schemas.tenancy import BusinessCreate
from workforce_api.services.modules import ModuleService
from workforce_api.services.tenancy import TenancyService

logger = logging.getLogger(__name__)

DEMO_POSITIONS = [
    ("Shift Lead", "Operations"),
    ("Cashier", "Front of house"),
    ("Line Cook", "Kitchen"),
]


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database; safe to run repeatedly.

    This function:
      - Upserts the module catalog
      - Creates the demo business with its admin user unless its slug exists
      - Ensures the demo positions exist
    """
    settings = get_app_settings()
    async with get_session_maker()() as session:
        await ModuleService(session).ensure_catalog()

        business_id = await _find_business_id(session, settings.DEFAULT_TENANT_SLUG)
        if business_id is None:
            result = await TenancyService(session).create_business(
                BusinessCreate(
                    name="Demo Business",
                    slug=settings.DEFAULT_TENANT_SLUG,
                    admin_email=settings.SEED_ADMIN_EMAIL,
                    admin_password=settings.SEED_ADMIN_PASSWORD,
                    admin_full_name="Demo Admin",
                    modules=[ModuleKey.SCHEDULING],
                )
            )
            business_id = result.business.id
            logger.info("Seeded demo business %s", business_id)

        async with tenant_context(session, business_id):
            await _seed_positions(session)
        await session.commit()


async def _find_business_id(session: AsyncSession, slug: str) -> Optional[UUID]:
    res = await session.execute(text("SELECT id FROM businesses WHERE slug = :slug"), {"slug": slug})
    row = res.first()
    return row[0] if row else None


async def _seed_positions(session: AsyncSession) -> None:
    positions = PositionRepository(session)
    for title, department in DEMO_POSITIONS:
        if await positions.get_by_title(title) is None:
            await positions.create(title=title, department=department)


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
