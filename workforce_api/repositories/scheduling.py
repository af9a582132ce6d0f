from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update

from workforce_api.core.enums import ScheduleStatus, ShiftStatus
from workforce_api.db.models.employees import EmployeePosition, Position
from workforce_api.db.models.scheduling import (
    EmployeeAvailability,
    Schedule,
    ScheduleShift,
    ShiftSwapRequest,
    Station,
)
from workforce_api.db.models.security import User
from .base import BaseRepository


class ScheduleRepository(BaseRepository):
    """Schedules of the current business."""

    async def list(self, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Schedule]:
        stmt = select(Schedule).order_by(Schedule.start_date.desc()).offset(offset).limit(limit)
        if status:
            stmt = stmt.where(Schedule.status == status)
        res = await self.scalars(stmt)
        return list(res)

    async def get(self, schedule_id: UUID) -> Optional[Schedule]:
        return await self.scalar_one_or_none(select(Schedule).where(Schedule.id == schedule_id))

    async def create(self, **values: Any) -> Schedule:
        return await self.save(Schedule(**values))

    async def update(self, schedule: Schedule, values: dict[str, Any]) -> Schedule:
        for key, value in values.items():
            setattr(schedule, key, value)
        return await self.save(schedule)

    async def delete(self, schedule: Schedule) -> None:
        await self.remove(schedule)

    async def count_shifts(self, schedule_id: UUID) -> int:
        res = await self.execute(select(func.count(ScheduleShift.id)).where(ScheduleShift.schedule_id == schedule_id))
        return int(res.scalar_one())


class ShiftRepository(BaseRepository):
    """Shifts of the current business, including the open-shift claim."""

    async def get(self, shift_id: UUID, refresh: bool = False) -> Optional[ScheduleShift]:
        stmt = select(ScheduleShift).where(ScheduleShift.id == shift_id)
        if refresh:
            # bulk UPDATEs bypass the identity map
            stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def list(
        self,
        *,
        schedule_id: Optional[UUID] = None,
        status: Optional[str] = None,
        open_only: bool = False,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> List[ScheduleShift]:
        conditions = []
        if schedule_id is not None:
            conditions.append(ScheduleShift.schedule_id == schedule_id)
        if status is not None:
            conditions.append(ScheduleShift.status == status)
        if open_only:
            conditions.append(ScheduleShift.is_open_shift.is_(True))
            conditions.append(ScheduleShift.status == ShiftStatus.OPEN.value)
        if start is not None:
            conditions.append(ScheduleShift.start_time >= start)
        if end is not None:
            conditions.append(ScheduleShift.start_time <= end)

        stmt = select(ScheduleShift).order_by(ScheduleShift.start_time.asc()).offset(offset).limit(limit)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        res = await self.scalars(stmt)
        return list(res)

    async def create(self, **values: Any) -> ScheduleShift:
        shift = ScheduleShift(**values)
        await self.add(shift)
        await self.commit()
        return (await self.get(shift.id))  # type: ignore

    async def update(self, shift: ScheduleShift, values: dict[str, Any]) -> ScheduleShift:
        for key, value in values.items():
            setattr(shift, key, value)
        return await self.save(shift)

    async def delete(self, shift: ScheduleShift) -> None:
        await self.remove(shift)

    async def list_for_schedule(self, schedule_id: UUID) -> List[ScheduleShift]:
        stmt = (
            select(ScheduleShift)
            .where(ScheduleShift.schedule_id == schedule_id)
            .order_by(ScheduleShift.start_time.asc())
        )
        res = await self.scalars(stmt)
        return list(res)

    async def count_for_station(self, station_id: UUID) -> int:
        res = await self.execute(select(func.count(ScheduleShift.id)).where(ScheduleShift.station_id == station_id))
        return int(res.scalar_one())

    # PUBLIC_INTERFACE
    async def find_overlapping(
        self,
        employee_position_id: UUID,
        start: datetime,
        end: datetime,
        exclude_shift_id: Optional[UUID] = None,
    ) -> Optional[ScheduleShift]:
        """
        Return one non-cancelled shift of the employee that overlaps [start, end), if any.

        Touching intervals (one ends exactly when the other starts) do not overlap.
        """
        stmt = (
            select(ScheduleShift)
            .where(
                ScheduleShift.employee_position_id == employee_position_id,
                ScheduleShift.status != ShiftStatus.CANCELLED.value,
                ScheduleShift.start_time < end,
                ScheduleShift.end_time > start,
            )
            .order_by(ScheduleShift.start_time)
            .limit(1)
        )
        if exclude_shift_id is not None:
            stmt = stmt.where(ScheduleShift.id != exclude_shift_id)
        return await self.scalar_one_or_none(stmt)

    async def list_for_employee(
        self,
        employee_position_id: UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        published_only: bool = False,
    ) -> List[ScheduleShift]:
        """Non-cancelled shifts assigned to the employee position, ordered by start."""
        stmt = select(ScheduleShift).where(
            ScheduleShift.employee_position_id == employee_position_id,
            ScheduleShift.status != ShiftStatus.CANCELLED.value,
        )
        if start is not None:
            stmt = stmt.where(ScheduleShift.end_time > start)
        if end is not None:
            stmt = stmt.where(ScheduleShift.start_time < end)
        if published_only:
            stmt = stmt.join(Schedule, Schedule.id == ScheduleShift.schedule_id).where(
                Schedule.status == ScheduleStatus.PUBLISHED.value
            )
        res = await self.scalars(stmt.order_by(ScheduleShift.start_time))
        return list(res)

    # PUBLIC_INTERFACE
    async def list_open(
        self,
        *,
        now: datetime,
        position_id: Optional[UUID],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ScheduleShift]:
        """
        Claimable shifts from published schedules starting at or after `now`.

        Shifts without a position requirement are always included; shifts requiring a
        position are included only when it equals `position_id`.
        """
        position_clause = ScheduleShift.position_id.is_(None)
        if position_id is not None:
            position_clause = or_(position_clause, ScheduleShift.position_id == position_id)

        stmt = (
            select(ScheduleShift)
            .join(Schedule, Schedule.id == ScheduleShift.schedule_id)
            .where(
                Schedule.status == ScheduleStatus.PUBLISHED.value,
                ScheduleShift.is_open_shift.is_(True),
                ScheduleShift.status == ShiftStatus.OPEN.value,
                ScheduleShift.start_time >= now,
                position_clause,
            )
            .order_by(ScheduleShift.start_time.asc())
        )
        if start is not None:
            stmt = stmt.where(ScheduleShift.start_time >= start)
        if end is not None:
            stmt = stmt.where(ScheduleShift.start_time <= end)
        res = await self.scalars(stmt)
        return list(res)

    # PUBLIC_INTERFACE
    async def claim_open_shift(self, shift_id: UUID, employee_position_id: UUID) -> bool:
        """
        Assign an open shift with a single conditional UPDATE.

        Returns False when no row matched, i.e. another claim won or the shift is no
        longer open. The database row is the only arbiter; no lock is taken.
        """
        stmt = (
            update(ScheduleShift)
            .where(
                ScheduleShift.id == shift_id,
                ScheduleShift.status == ShiftStatus.OPEN.value,
                ScheduleShift.is_open_shift.is_(True),
                ScheduleShift.employee_position_id.is_(None),
            )
            .values(
                employee_position_id=employee_position_id,
                status=ShiftStatus.SCHEDULED.value,
                is_open_shift=False,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        res = await self.execute(stmt)
        await self.commit()
        return res.rowcount == 1

    async def labor_rows(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Sequence:
        """Assigned, non-cancelled shifts joined to employee, user and position for labor reporting."""
        stmt = (
            select(
                EmployeePosition.id,
                User.email,
                User.full_name,
                Position.title,
                ScheduleShift.start_time,
                ScheduleShift.end_time,
                ScheduleShift.break_minutes,
            )
            .join(EmployeePosition, EmployeePosition.id == ScheduleShift.employee_position_id)
            .join(User, User.id == EmployeePosition.user_id)
            .join(Position, Position.id == EmployeePosition.position_id)
            .where(ScheduleShift.status != ShiftStatus.CANCELLED.value)
            .order_by(User.email, ScheduleShift.start_time)
        )
        if start is not None:
            stmt = stmt.where(ScheduleShift.start_time >= start)
        if end is not None:
            stmt = stmt.where(ScheduleShift.start_time < end)
        res = await self.execute(stmt)
        return list(res.all())


class StationRepository(BaseRepository):
    """Work stations of the current business."""

    async def list(self, active_only: bool = False) -> List[Station]:
        stmt = select(Station).order_by(Station.priority.desc().nulls_last(), Station.name.asc())
        if active_only:
            stmt = stmt.where(Station.is_active.is_(True))
        res = await self.scalars(stmt)
        return list(res)

    async def get(self, station_id: UUID) -> Optional[Station]:
        return await self.scalar_one_or_none(select(Station).where(Station.id == station_id))

    async def get_by_name(self, name: str) -> Optional[Station]:
        return await self.scalar_one_or_none(select(Station).where(Station.name == name))

    async def create(self, **values: Any) -> Station:
        return await self.save(Station(**values))

    async def update(self, station: Station, values: dict[str, Any]) -> Station:
        for key, value in values.items():
            setattr(station, key, value)
        return await self.save(station)

    async def delete(self, station: Station) -> None:
        await self.remove(station)


class AvailabilityRepository(BaseRepository):
    """Employee availability windows."""

    async def list(self, employee_position_id: Optional[UUID] = None) -> List[EmployeeAvailability]:
        stmt = select(EmployeeAvailability).order_by(
            EmployeeAvailability.employee_position_id,
            EmployeeAvailability.day_of_week,
            EmployeeAvailability.start_time,
        )
        if employee_position_id is not None:
            stmt = stmt.where(EmployeeAvailability.employee_position_id == employee_position_id)
        res = await self.scalars(stmt)
        return list(res)

    async def get(self, availability_id: UUID) -> Optional[EmployeeAvailability]:
        stmt = select(EmployeeAvailability).where(EmployeeAvailability.id == availability_id)
        return await self.scalar_one_or_none(stmt)

    async def create(self, **values: Any) -> EmployeeAvailability:
        return await self.save(EmployeeAvailability(**values))

    async def update(self, entity: EmployeeAvailability, values: dict[str, Any]) -> EmployeeAvailability:
        for key, value in values.items():
            setattr(entity, key, value)
        return await self.save(entity)

    async def delete(self, entity: EmployeeAvailability) -> None:
        await self.remove(entity)


class SwapRequestRepository(BaseRepository):
    """Shift swap requests."""

    async def list(
        self,
        *,
        status: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> List[ShiftSwapRequest]:
        stmt = select(ShiftSwapRequest).order_by(ShiftSwapRequest.created_at.desc())
        if status is not None:
            stmt = stmt.where(ShiftSwapRequest.status == status)
        if user_id is not None:
            stmt = stmt.where(
                or_(ShiftSwapRequest.requested_by_id == user_id, ShiftSwapRequest.requested_to_id == user_id)
            )
        res = await self.scalars(stmt)
        return list(res)

    async def get(self, swap_id: UUID) -> Optional[ShiftSwapRequest]:
        return await self.scalar_one_or_none(select(ShiftSwapRequest).where(ShiftSwapRequest.id == swap_id))

    async def create(self, **values: Any) -> ShiftSwapRequest:
        return await self.save(ShiftSwapRequest(**values))

    async def update(self, entity: ShiftSwapRequest, values: dict[str, Any]) -> ShiftSwapRequest:
        for key, value in values.items():
            setattr(entity, key, value)
        return await self.save(entity)
