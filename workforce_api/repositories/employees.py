from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from workforce_api.db.models.employees import EmployeePosition, Position
from .base import BaseRepository


class PositionRepository(BaseRepository):
    """Positions of the current business."""

    async def list(self, limit: int = 200, offset: int = 0) -> List[Position]:
        stmt = select(Position).order_by(Position.title).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def get(self, position_id: UUID) -> Optional[Position]:
        return await self.scalar_one_or_none(select(Position).where(Position.id == position_id))

    async def get_by_title(self, title: str) -> Optional[Position]:
        return await self.scalar_one_or_none(select(Position).where(Position.title == title))

    async def create(self, *, title: str, department: Optional[str] = None, description: Optional[str] = None) -> Position:
        return await self.save(Position(title=title, department=department, description=description))


class EmployeePositionRepository(BaseRepository):
    """User-to-position assignments (employees) of the current business."""

    async def list(
        self, active_only: bool = True, limit: Optional[int] = 200, offset: int = 0
    ) -> List[EmployeePosition]:
        stmt = select(EmployeePosition).order_by(EmployeePosition.created_at).offset(offset).limit(limit)
        if active_only:
            stmt = stmt.where(EmployeePosition.active.is_(True))
        res = await self.scalars(stmt)
        return list(res)

    async def get(self, employee_position_id: UUID) -> Optional[EmployeePosition]:
        stmt = select(EmployeePosition).where(EmployeePosition.id == employee_position_id)
        return await self.scalar_one_or_none(stmt)

    # PUBLIC_INTERFACE
    async def get_active_for_user(self, user_id: UUID) -> Optional[EmployeePosition]:
        """Return the user's first active employee position, oldest assignment first."""
        stmt = (
            select(EmployeePosition)
            .where(EmployeePosition.user_id == user_id, EmployeePosition.active.is_(True))
            .order_by(EmployeePosition.created_at)
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)

    async def find_active(self, user_id: UUID, position_id: UUID) -> Optional[EmployeePosition]:
        stmt = select(EmployeePosition).where(
            EmployeePosition.user_id == user_id,
            EmployeePosition.position_id == position_id,
            EmployeePosition.active.is_(True),
        )
        return await self.scalar_one_or_none(stmt)

    async def create(self, *, user_id: UUID, position_id: UUID, start_date: Optional[date] = None) -> EmployeePosition:
        entity = EmployeePosition(user_id=user_id, position_id=position_id, active=True, start_date=start_date)
        await self.add(entity)
        await self.commit()
        # reload so position and user are joined in
        return (await self.get(entity.id))  # type: ignore

    async def deactivate(self, entity: EmployeePosition, end_date: date) -> EmployeePosition:
        entity.active = False
        entity.end_date = end_date
        return await self.save(entity)
