from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.errors import ConflictError, NotFoundError
from workforce_api.db.models.employees import EmployeePosition, Position
from workforce_api.repositories.employees import EmployeePositionRepository, PositionRepository
from workforce_api.repositories.security import SecurityRepository
from workforce_api.schemas.employees import EmployeeAssign, PositionCreate
from workforce_api.services.base import BaseService

logger = logging.getLogger(__name__)


class EmployeeService(BaseService):
    """Positions and the employees (user + position) of a business."""

    def __init__(
        self,
        session: Optional[AsyncSession],
        *,
        positions: Optional[PositionRepository] = None,
        employees: Optional[EmployeePositionRepository] = None,
        users: Optional[SecurityRepository] = None,
    ) -> None:
        super().__init__(session)
        self.positions = positions if positions is not None else PositionRepository(session)
        self.employees = employees if employees is not None else EmployeePositionRepository(session)
        self.users = users if users is not None else SecurityRepository(session)

    # PUBLIC_INTERFACE
    async def list_positions(self, limit: int = 200, offset: int = 0) -> List[Position]:
        return await self.positions.list(limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def create_position(self, payload: PositionCreate) -> Position:
        """Create a position; titles are unique within a business."""
        if await self.positions.get_by_title(payload.title) is not None:
            raise ConflictError("Position with this title already exists", {"title": payload.title})
        position = await self.positions.create(
            title=payload.title, department=payload.department, description=payload.description
        )
        logger.info("Created position %s (%s)", position.id, position.title)
        return position

    # PUBLIC_INTERFACE
    async def list_employees(self, active_only: bool = True, limit: int = 200, offset: int = 0) -> List[EmployeePosition]:
        return await self.employees.list(active_only=active_only, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def assign(self, payload: EmployeeAssign) -> EmployeePosition:
        """
        Make a user an employee holding a position.

        The user and position must exist in the business, and the user must not
        already hold the position actively.
        """
        if await self.users.get_user_by_id(payload.user_id) is None:
            raise NotFoundError("User", payload.user_id)
        if await self.positions.get(payload.position_id) is None:
            raise NotFoundError("Position", payload.position_id)
        if await self.employees.find_active(payload.user_id, payload.position_id) is not None:
            raise ConflictError(
                "User already holds this position",
                {"user_id": str(payload.user_id), "position_id": str(payload.position_id)},
            )
        employee = await self.employees.create(
            user_id=payload.user_id, position_id=payload.position_id, start_date=payload.start_date
        )
        logger.info("Assigned user %s to position %s", payload.user_id, payload.position_id)
        return employee

    # PUBLIC_INTERFACE
    async def deactivate(self, employee_position_id: UUID, end_date: Optional[date] = None) -> EmployeePosition:
        employee = await self.employees.get(employee_position_id)
        if employee is None:
            raise NotFoundError("Employee position", employee_position_id)
        if not employee.active:
            return employee
        return await self.employees.deactivate(employee, end_date or date.today())
