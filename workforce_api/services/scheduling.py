from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.enums import AvailabilityType, DayOfWeek, ScheduleStatus, ShiftStatus, SwapStatus
from workforce_api.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    UnprocessableError,
    ValidationFailedError,
)
from workforce_api.core.settings import get_app_settings
from workforce_api.db.models.employees import EmployeePosition
from workforce_api.db.models.scheduling import (
    EmployeeAvailability,
    Schedule,
    ScheduleShift,
    ShiftSwapRequest,
    Station,
)
from workforce_api.repositories.employees import EmployeePositionRepository
from workforce_api.repositories.scheduling import (
    AvailabilityRepository,
    ScheduleRepository,
    ShiftRepository,
    StationRepository,
    SwapRequestRepository,
)
from workforce_api.schemas.realtime import SchedulingEvent
from workforce_api.schemas.scheduling import (
    AvailabilityCreate,
    AvailabilityUpdate,
    ScheduleClone,
    ScheduleCreate,
    ScheduleUpdate,
    ShiftCreate,
    ShiftUpdate,
    StationCreate,
    StationUpdate,
    SwapRequestCreate,
)
from workforce_api.services.base import BaseService
from workforce_api.services.realtime import BroadcastManager, broadcast_manager

logger = logging.getLogger(__name__)

_HH_MM = re.compile(r"^(\d{1,2}):(\d{2})$")

MY_SCHEDULE_DEFAULT_DAYS = 14

_UNASSIGNED_STATUSES = frozenset(
    {ShiftStatus.OPEN.value, ShiftStatus.CANCELLED.value, ShiftStatus.COMPLETED.value}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def _normalize_hh_mm(field: str, value: Optional[str]) -> str:
    match = _HH_MM.match((value or "").strip())
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours < 24 and minutes < 60:
            return f"{hours:02d}:{minutes:02d}"
    raise ValidationFailedError(f"{field} must be a 24-hour HH:MM time", {"field": field, "value": value})


def _optional_hh_mm(field: str, value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return _normalize_hh_mm(field, value)


# PUBLIC_INTERFACE
def normalize_availability(
    day_of_week: Optional[str],
    start_time: Optional[str],
    end_time: Optional[str],
    availability_type: Optional[str],
) -> Tuple[str, str, str, str]:
    """
    Validate and canonicalize an availability window.

    Day and type are matched case-insensitively and returned upper-case; times are
    returned zero-padded. Raises ValidationFailedError naming the offending field.
    """
    day = (day_of_week or "").strip().upper()
    if day not in DayOfWeek.__members__:
        raise ValidationFailedError(
            "day_of_week must be one of MONDAY..SUNDAY",
            {"field": "day_of_week", "value": day_of_week, "allowed": [d.value for d in DayOfWeek]},
        )
    start = _normalize_hh_mm("start_time", start_time)
    end = _normalize_hh_mm("end_time", end_time)
    if end <= start:
        raise ValidationFailedError(
            "end_time must be after start_time", {"field": "end_time", "start_time": start, "end_time": end}
        )
    kind = (availability_type or "").strip().upper()
    if kind not in AvailabilityType.__members__:
        raise ValidationFailedError(
            "availability_type must be AVAILABLE, UNAVAILABLE or PREFERRED",
            {"field": "availability_type", "value": availability_type},
        )
    return day, start, end, kind


def _check_schedule_dates(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise UnprocessableError(
            "end_date must not be before start_date",
            {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )


def _check_shift_times(start_time: datetime, end_time: datetime) -> None:
    if end_time <= start_time:
        raise ValidationFailedError(
            "end_time must be after start_time",
            {"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
        )


def _append_manager_notes(reason: Optional[str], notes: Optional[str]) -> Optional[str]:
    if not notes:
        return reason
    return f"{reason or ''}\n\nManager notes: {notes}"


class SchedulingService(BaseService):
    """
    Schedules, shifts, availability and swap requests of one business.

    Admin, manager and employee operations share this service; route-level role
    gates decide who may call what. Every state change that other clients should
    see is pushed on the business's scheduling topic. Broadcast failures are logged
    and never fail the operation.
    """

    def __init__(
        self,
        session: Optional[AsyncSession],
        tenant_id: UUID,
        *,
        schedules: Optional[ScheduleRepository] = None,
        shifts: Optional[ShiftRepository] = None,
        availability: Optional[AvailabilityRepository] = None,
        swaps: Optional[SwapRequestRepository] = None,
        employees: Optional[EmployeePositionRepository] = None,
        stations: Optional[StationRepository] = None,
        broadcaster: Optional[BroadcastManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(session)
        self.tenant_id = tenant_id
        self.schedules = schedules if schedules is not None else ScheduleRepository(session)
        self.shifts = shifts if shifts is not None else ShiftRepository(session)
        self.availability = availability if availability is not None else AvailabilityRepository(session)
        self.swaps = swaps if swaps is not None else SwapRequestRepository(session)
        self.employees = employees if employees is not None else EmployeePositionRepository(session)
        self.stations = stations if stations is not None else StationRepository(session)
        self.broadcaster = broadcaster if broadcaster is not None else broadcast_manager
        self._clock = clock or _utcnow
        self.settings = get_app_settings()

    def now(self) -> datetime:
        return self._clock()

    async def _emit(
        self,
        event: str,
        *,
        user_id: Optional[UUID] = None,
        schedule_id: Optional[UUID] = None,
        shift_id: Optional[UUID] = None,
        **details: Any,
    ) -> None:
        try:
            evt = SchedulingEvent(
                event=event, details=details, schedule_id=schedule_id, shift_id=shift_id, user_id=user_id
            )
            await self.broadcaster.publish_scheduling_event(self.tenant_id, evt)
        except Exception:
            logger.exception("Failed to publish scheduling event %s", event)

    # ------------------------------------------------------------------
    # Schedules (admin)
    # ------------------------------------------------------------------

    # PUBLIC_INTERFACE
    async def list_schedules(self, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Schedule]:
        return await self.schedules.list(status=status, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def get_schedule(self, schedule_id: UUID) -> Schedule:
        schedule = await self.schedules.get(schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule", schedule_id)
        return schedule

    # PUBLIC_INTERFACE
    async def create_schedule(self, payload: ScheduleCreate, created_by_id: Optional[UUID] = None) -> Schedule:
        """Create a DRAFT schedule; end_date must not precede start_date."""
        _check_schedule_dates(payload.start_date, payload.end_date)
        schedule = await self.schedules.create(
            name=payload.name,
            description=payload.description,
            start_date=payload.start_date,
            end_date=payload.end_date,
            timezone=payload.timezone or self.settings.DEFAULT_SCHEDULE_TIMEZONE,
            status=ScheduleStatus.DRAFT.value,
            created_by_id=created_by_id,
            metadata_={},
        )
        logger.info("Created schedule %s (%s..%s)", schedule.id, schedule.start_date, schedule.end_date)
        return schedule

    # PUBLIC_INTERFACE
    async def update_schedule(self, schedule_id: UUID, payload: ScheduleUpdate) -> Schedule:
        schedule = await self.get_schedule(schedule_id)
        values = payload.model_dump(exclude_unset=True)
        for key in ("name", "start_date", "end_date", "timezone", "status"):
            if key in values and values[key] is None:
                values.pop(key)
        if "status" in values:
            values["status"] = ScheduleStatus(values["status"]).value
            if values["status"] == ScheduleStatus.PUBLISHED.value:
                raise ValidationFailedError("Use the publish action to publish a schedule")
        _check_schedule_dates(
            values.get("start_date", schedule.start_date), values.get("end_date", schedule.end_date)
        )
        updated = await self.schedules.update(schedule, values)
        await self._emit("schedule.updated", schedule_id=updated.id, fields=sorted(values))
        return updated

    # PUBLIC_INTERFACE
    async def delete_schedule(self, schedule_id: UUID) -> None:
        schedule = await self.get_schedule(schedule_id)
        await self.schedules.delete(schedule)
        logger.info("Deleted schedule %s", schedule_id)
        await self._emit("schedule.deleted", schedule_id=schedule_id)

    # PUBLIC_INTERFACE
    async def publish_schedule(self, schedule_id: UUID, user_id: Optional[UUID]) -> Schedule:
        """
        Publish a schedule so employees can see its shifts.

        An empty schedule cannot be published. Republishing is allowed and refreshes
        published_at and published_by_id.
        """
        schedule = await self.get_schedule(schedule_id)
        if await self.schedules.count_shifts(schedule.id) == 0:
            raise ValidationFailedError("Cannot publish empty schedule", {"schedule_id": str(schedule.id)})
        published = await self.schedules.update(
            schedule,
            {
                "status": ScheduleStatus.PUBLISHED.value,
                "published_at": self.now(),
                "published_by_id": user_id,
            },
        )
        logger.info("Published schedule %s", published.id)
        await self._emit("schedule.published", user_id=user_id, schedule_id=published.id, name=published.name)
        return published

    # PUBLIC_INTERFACE
    async def clone_schedule(
        self, schedule_id: UUID, payload: ScheduleClone, created_by_id: Optional[UUID] = None
    ) -> Schedule:
        """
        Copy a schedule and its shifts into a new DRAFT schedule.

        Shifts move by the difference between the two start dates. Cancelled shifts are
        not copied. An assignment is kept only while the employee position is active and
        the moved shift does not overlap the employee's other shifts; otherwise the copy
        is created open.
        """
        source = await self.get_schedule(schedule_id)
        _check_schedule_dates(payload.start_date, payload.end_date)
        clone = await self.schedules.create(
            name=payload.name,
            description=source.description,
            start_date=payload.start_date,
            end_date=payload.end_date,
            timezone=source.timezone,
            status=ScheduleStatus.DRAFT.value,
            created_by_id=created_by_id,
            metadata_={"cloned_from": str(source.id)},
        )

        delta = timedelta(days=(payload.start_date - source.start_date).days)
        copied = reopened = 0
        for shift in await self.shifts.list_for_schedule(source.id):
            if shift.status == ShiftStatus.CANCELLED.value:
                continue
            start, end = shift.start_time + delta, shift.end_time + delta
            assignee = shift.employee_position_id
            if assignee is not None:
                employee = await self.employees.get(assignee)
                clash = await self.shifts.find_overlapping(assignee, start, end)
                if employee is None or not employee.active or clash is not None:
                    assignee = None
                    reopened += 1
            await self.shifts.create(
                schedule_id=clone.id,
                employee_position_id=assignee,
                position_id=shift.position_id,
                station_id=shift.station_id,
                title=shift.title,
                start_time=start,
                end_time=end,
                break_minutes=shift.break_minutes,
                station_name=shift.station_name,
                notes=shift.notes,
                color=shift.color,
                is_open_shift=assignee is None,
                status=ShiftStatus.OPEN.value if assignee is None else ShiftStatus.SCHEDULED.value,
            )
            copied += 1

        logger.info(
            "Cloned schedule %s into %s (%d shifts, %d reopened)", source.id, clone.id, copied, reopened
        )
        return clone

    # ------------------------------------------------------------------
    # Shifts (admin / manager)
    # ------------------------------------------------------------------

    # PUBLIC_INTERFACE
    async def list_shifts(
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
        return await self.shifts.list(
            schedule_id=schedule_id,
            status=status,
            open_only=open_only,
            start=start,
            end=end,
            limit=limit,
            offset=offset,
        )

    # PUBLIC_INTERFACE
    async def get_shift(self, shift_id: UUID) -> ScheduleShift:
        shift = await self.shifts.get(shift_id)
        if shift is None:
            raise NotFoundError("Shift", shift_id)
        return shift

    async def _require_employee(self, employee_position_id: UUID) -> EmployeePosition:
        employee = await self.employees.get(employee_position_id)
        if employee is None or not employee.active:
            raise NotFoundError("Employee position", employee_position_id)
        return employee

    async def _require_station(self, station_id: UUID) -> Station:
        station = await self.stations.get(station_id)
        if station is None or not station.is_active:
            raise NotFoundError("Station", station_id)
        return station

    async def _ensure_no_overlap(
        self,
        employee_position_id: UUID,
        start: datetime,
        end: datetime,
        exclude_shift_id: Optional[UUID] = None,
    ) -> None:
        conflict = await self.shifts.find_overlapping(
            employee_position_id, start, end, exclude_shift_id=exclude_shift_id
        )
        if conflict is not None:
            raise ConflictError(
                "Employee already has an overlapping shift",
                {
                    "conflicting_shift_id": str(conflict.id),
                    "start_time": conflict.start_time.isoformat(),
                    "end_time": conflict.end_time.isoformat(),
                },
            )

    # PUBLIC_INTERFACE
    async def create_shift(self, payload: ShiftCreate, user_id: Optional[UUID] = None) -> ScheduleShift:
        """
        Create a shift in an existing schedule.

        Without an assignee the shift is open (is_open_shift, status OPEN); with one it is
        SCHEDULED and must not overlap the assignee's other non-cancelled shifts.
        """
        _check_shift_times(payload.start_time, payload.end_time)
        schedule = await self.get_schedule(payload.schedule_id)
        values = payload.model_dump()
        if payload.station_id is not None:
            station = await self._require_station(payload.station_id)
            values["station_name"] = payload.station_name or station.name
        if payload.employee_position_id is not None:
            await self._require_employee(payload.employee_position_id)
            await self._ensure_no_overlap(payload.employee_position_id, payload.start_time, payload.end_time)
            values.update(is_open_shift=False, status=ShiftStatus.SCHEDULED.value)
        else:
            values.update(is_open_shift=True, status=ShiftStatus.OPEN.value)

        shift = await self.shifts.create(**values)
        logger.info("Created shift %s in schedule %s (open=%s)", shift.id, schedule.id, shift.is_open_shift)
        await self._emit(
            "shift.created", user_id=user_id, schedule_id=schedule.id, shift_id=shift.id, is_open_shift=shift.is_open_shift
        )
        return shift

    # PUBLIC_INTERFACE
    async def update_shift(self, shift_id: UUID, payload: ShiftUpdate, user_id: Optional[UUID] = None) -> ScheduleShift:
        """
        Partial update keeping assignee, status and is_open_shift consistent.

        Clearing the assignee reopens the shift unless the payload names another status;
        assigning an open shift schedules it. An assigned shift can never be OPEN and an
        unassigned one can only be OPEN, CANCELLED or COMPLETED (400 otherwise).
        """
        shift = await self.get_shift(shift_id)
        values = payload.model_dump(exclude_unset=True)
        for key in ("title", "start_time", "end_time", "status"):
            if key in values and values[key] is None:
                values.pop(key)
        if "status" in values:
            values["status"] = ShiftStatus(values["status"]).value

        start = values.get("start_time", shift.start_time)
        end = values.get("end_time", shift.end_time)
        _check_shift_times(start, end)

        assignee = values.get("employee_position_id", shift.employee_position_id)
        if "employee_position_id" in values:
            if assignee is None:
                values.setdefault("status", ShiftStatus.OPEN.value)
            else:
                await self._require_employee(assignee)
                if "status" not in values and shift.status == ShiftStatus.OPEN.value:
                    values["status"] = ShiftStatus.SCHEDULED.value

        new_status = values.get("status", shift.status)
        if assignee is not None and new_status == ShiftStatus.OPEN.value:
            raise ValidationFailedError(
                "An assigned shift cannot be OPEN; clear employee_position_id to reopen it",
                {"field": "status", "employee_position_id": str(assignee)},
            )
        if assignee is None and new_status not in _UNASSIGNED_STATUSES:
            raise ValidationFailedError(
                f"An unassigned shift cannot be {new_status}",
                {"field": "status", "allowed": sorted(_UNASSIGNED_STATUSES)},
            )
        if "employee_position_id" in values or "status" in values:
            values["is_open_shift"] = assignee is None and new_status == ShiftStatus.OPEN.value

        if "station_id" in values and values["station_id"] is not None:
            station = await self._require_station(values["station_id"])
            if not values.get("station_name"):
                values["station_name"] = station.name

        if assignee is not None and new_status != ShiftStatus.CANCELLED.value:
            await self._ensure_no_overlap(assignee, start, end, exclude_shift_id=shift.id)

        updated = await self.shifts.update(shift, values)
        await self._emit(
            "shift.updated", user_id=user_id, schedule_id=updated.schedule_id, shift_id=updated.id, fields=sorted(values)
        )
        return updated

    # PUBLIC_INTERFACE
    async def delete_shift(self, shift_id: UUID, user_id: Optional[UUID] = None) -> None:
        shift = await self.get_shift(shift_id)
        schedule_id = shift.schedule_id
        await self.shifts.delete(shift)
        logger.info("Deleted shift %s", shift_id)
        await self._emit("shift.deleted", user_id=user_id, schedule_id=schedule_id, shift_id=shift_id)

    # PUBLIC_INTERFACE
    async def assign_shift(
        self, shift_id: UUID, employee_position_id: UUID, user_id: Optional[UUID] = None
    ) -> ScheduleShift:
        """Manager assignment: the shift becomes SCHEDULED and stops being open."""
        shift = await self.get_shift(shift_id)
        if shift.status in (ShiftStatus.CANCELLED.value, ShiftStatus.COMPLETED.value):
            raise ValidationFailedError(
                f"Cannot assign a {shift.status.lower()} shift", {"shift_id": str(shift.id), "status": shift.status}
            )
        await self._require_employee(employee_position_id)
        await self._ensure_no_overlap(employee_position_id, shift.start_time, shift.end_time, exclude_shift_id=shift.id)
        updated = await self.shifts.update(
            shift,
            {
                "employee_position_id": employee_position_id,
                "is_open_shift": False,
                "status": ShiftStatus.SCHEDULED.value,
            },
        )
        await self._emit(
            "shift.assigned",
            user_id=user_id,
            schedule_id=updated.schedule_id,
            shift_id=updated.id,
            employee_position_id=str(employee_position_id),
        )
        return updated

    # PUBLIC_INTERFACE
    async def list_team_open_shifts(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[ScheduleShift]:
        """Open shifts of every schedule (drafts included) from `start` (default now)."""
        return await self.shifts.list(open_only=True, start=start or self.now(), end=end)

    # ------------------------------------------------------------------
    # Stations (admin)
    # ------------------------------------------------------------------

    # PUBLIC_INTERFACE
    async def list_stations(self, active_only: bool = False) -> List[Station]:
        return await self.stations.list(active_only=active_only)

    # PUBLIC_INTERFACE
    async def get_station(self, station_id: UUID) -> Station:
        station = await self.stations.get(station_id)
        if station is None:
            raise NotFoundError("Station", station_id)
        return station

    # PUBLIC_INTERFACE
    async def create_station(self, payload: StationCreate) -> Station:
        """Create a station; names are unique per business and default times are HH:MM."""
        name = payload.name.strip()
        if await self.stations.get_by_name(name) is not None:
            raise ConflictError("Station with this name already exists", {"name": name})
        station = await self.stations.create(
            name=name,
            station_type=payload.station_type,
            job_function=payload.job_function,
            description=payload.description,
            color=payload.color,
            is_required=payload.is_required,
            priority=payload.priority,
            is_active=True,
            default_start_time=_optional_hh_mm("default_start_time", payload.default_start_time),
            default_end_time=_optional_hh_mm("default_end_time", payload.default_end_time),
        )
        logger.info("Created station %s (%s)", station.id, station.name)
        return station

    # PUBLIC_INTERFACE
    async def update_station(self, station_id: UUID, payload: StationUpdate) -> Station:
        station = await self.get_station(station_id)
        values = payload.model_dump(exclude_unset=True)
        for key in ("name", "station_type", "is_required", "is_active"):
            if key in values and values[key] is None:
                values.pop(key)
        if "name" in values:
            values["name"] = values["name"].strip()
            if values["name"] != station.name and await self.stations.get_by_name(values["name"]) is not None:
                raise ConflictError("Station with this name already exists", {"name": values["name"]})
        for key in ("default_start_time", "default_end_time"):
            if key in values:
                values[key] = _optional_hh_mm(key, values[key])
        return await self.stations.update(station, values)

    # PUBLIC_INTERFACE
    async def delete_station(self, station_id: UUID) -> None:
        """Delete a station that no shift references (409 otherwise)."""
        station = await self.get_station(station_id)
        in_use = await self.shifts.count_for_station(station.id)
        if in_use:
            raise ConflictError(
                f"Station is assigned to {in_use} shift(s); remove those assignments first",
                {"station_id": str(station.id), "shift_count": in_use},
            )
        await self.stations.delete(station)
        logger.info("Deleted station %s", station_id)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def _active_position(self, user_id: UUID) -> EmployeePosition:
        employee = await self.employees.get_active_for_user(user_id)
        if employee is None:
            raise NotFoundError("Active employee position", user_id)
        return employee

    # PUBLIC_INTERFACE
    async def list_availability(self, employee_position_id: Optional[UUID] = None) -> List[EmployeeAvailability]:
        return await self.availability.list(employee_position_id=employee_position_id)

    # PUBLIC_INTERFACE
    async def list_team_availability(
        self, day_of_week: Optional[str] = None, on: Optional[date] = None
    ) -> List[EmployeeAvailability]:
        """
        Availability of the active employees in effect on `on` (default today).

        `day_of_week` is matched case-insensitively and narrows the result to one weekday.
        """
        day = None
        if day_of_week is not None:
            day = day_of_week.strip().upper()
            if day not in DayOfWeek.__members__:
                raise ValidationFailedError(
                    "day_of_week must be one of MONDAY..SUNDAY", {"field": "day_of_week", "value": day_of_week}
                )
        on = on or self.now().date()
        active = {e.id for e in await self.employees.list(active_only=True, limit=None)}
        return [
            a for a in await self.availability.list()
            if a.employee_position_id in active
            and (day is None or a.day_of_week == day)
            and a.effective_from <= on
            and (a.effective_to is None or a.effective_to >= on)
        ]

    # PUBLIC_INTERFACE
    async def list_my_availability(self, user_id: UUID) -> List[EmployeeAvailability]:
        employee = await self._active_position(user_id)
        return await self.availability.list(employee_position_id=employee.id)

    # PUBLIC_INTERFACE
    async def create_availability(self, user_id: UUID, payload: AvailabilityCreate) -> EmployeeAvailability:
        employee = await self._active_position(user_id)
        day, start, end, kind = normalize_availability(
            payload.day_of_week, payload.start_time, payload.end_time, payload.availability_type
        )
        effective_from = payload.effective_from or self.now().date()
        if payload.effective_to is not None and payload.effective_to < effective_from:
            raise ValidationFailedError("effective_to must not be before effective_from", {"field": "effective_to"})
        return await self.availability.create(
            employee_position_id=employee.id,
            day_of_week=day,
            start_time=start,
            end_time=end,
            availability_type=kind,
            effective_from=effective_from,
            effective_to=payload.effective_to,
            recurring=payload.recurring,
            notes=payload.notes,
        )

    async def _own_availability(self, employee: EmployeePosition, availability_id: UUID) -> EmployeeAvailability:
        entity = await self.availability.get(availability_id)
        if entity is None:
            raise NotFoundError("Availability", availability_id)
        if entity.employee_position_id != employee.id:
            raise PermissionDeniedError("You can only change your own availability", {"id": str(availability_id)})
        return entity

    # PUBLIC_INTERFACE
    async def update_availability(
        self, user_id: UUID, availability_id: UUID, payload: AvailabilityUpdate
    ) -> EmployeeAvailability:
        employee = await self._active_position(user_id)
        entity = await self._own_availability(employee, availability_id)
        values = payload.model_dump(exclude_unset=True)
        for key in ("day_of_week", "start_time", "end_time", "availability_type", "effective_from", "recurring"):
            if key in values and values[key] is None:
                values.pop(key)
        day, start, end, kind = normalize_availability(
            values.get("day_of_week", entity.day_of_week),
            values.get("start_time", entity.start_time),
            values.get("end_time", entity.end_time),
            values.get("availability_type", entity.availability_type),
        )
        values.update(day_of_week=day, start_time=start, end_time=end, availability_type=kind)
        effective_from = values.get("effective_from", entity.effective_from)
        effective_to = values.get("effective_to", entity.effective_to)
        if effective_to is not None and effective_to < effective_from:
            raise ValidationFailedError("effective_to must not be before effective_from", {"field": "effective_to"})
        return await self.availability.update(entity, values)

    # PUBLIC_INTERFACE
    async def delete_availability(self, user_id: UUID, availability_id: UUID) -> None:
        employee = await self._active_position(user_id)
        entity = await self._own_availability(employee, availability_id)
        await self.availability.delete(entity)

    # ------------------------------------------------------------------
    # Employee views and the open-shift claim
    # ------------------------------------------------------------------

    # PUBLIC_INTERFACE
    async def my_schedule(
        self, user_id: UUID, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[ScheduleShift]:
        """The caller's shifts from published schedules; defaults to today plus two weeks."""
        employee = await self._active_position(user_id)
        if start is None:
            start = datetime.combine(self.now().date(), time.min, tzinfo=timezone.utc)
        if end is None:
            end = start + timedelta(days=MY_SCHEDULE_DEFAULT_DAYS)
        return await self.shifts.list_for_employee(employee.id, start=start, end=end, published_only=True)

    # PUBLIC_INTERFACE
    async def list_open_shifts(
        self,
        user_id: UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        position_id: Optional[UUID] = None,
    ) -> List[ScheduleShift]:
        """
        Shifts the caller could claim right now.

        Future open shifts of published schedules that either have no position requirement
        or require the caller's position, minus those overlapping the caller's own
        non-cancelled shifts. `position_id` narrows the result further.
        """
        now = self.now()
        employee = await self.employees.get_active_for_user(user_id)
        candidates = await self.shifts.list_open(
            now=now,
            position_id=employee.position_id if employee is not None else None,
            start=start,
            end=end,
        )
        if position_id is not None:
            candidates = [s for s in candidates if s.position_id == position_id]
        if employee is None or not candidates:
            return candidates

        busy = await self.shifts.list_for_employee(employee.id, start=now)
        return [
            s for s in candidates
            if not any(_overlaps(s.start_time, s.end_time, b.start_time, b.end_time) for b in busy)
        ]

    # PUBLIC_INTERFACE
    async def claim_shift(self, user_id: UUID, shift_id: UUID) -> ScheduleShift:
        """
        Claim an open shift for the caller.

        Checks run in this order: the shift exists (404), is open (409), has not started
        (400), the caller has an active position (404) that the shift accepts (403), and
        the caller has no overlapping shift (409). The write itself is a conditional
        UPDATE; losing a concurrent claim surfaces as 409.
        """
        shift = await self.shifts.get(shift_id)
        if shift is None:
            raise NotFoundError("Shift", shift_id)
        if (
            not shift.is_open_shift
            or shift.status != ShiftStatus.OPEN.value
            or shift.employee_position_id is not None
        ):
            raise ConflictError(
                "Shift has already been claimed or is not open",
                {"shift_id": str(shift.id), "status": shift.status},
            )
        if shift.start_time < self.now():
            raise ValidationFailedError(
                "Cannot claim a shift that has already started",
                {"shift_id": str(shift.id), "start_time": shift.start_time.isoformat()},
            )

        employee = await self._active_position(user_id)
        if shift.position_id is not None and shift.position_id != employee.position_id:
            raise PermissionDeniedError(
                "This shift requires a different position",
                {"shift_id": str(shift.id), "required_position_id": str(shift.position_id)},
            )
        await self._ensure_no_overlap(employee.id, shift.start_time, shift.end_time, exclude_shift_id=shift.id)

        if not await self.shifts.claim_open_shift(shift.id, employee.id):
            logger.info("Claim of shift %s by employee %s lost to a concurrent claim", shift.id, employee.id)
            raise ConflictError("Shift has already been claimed or is not open", {"shift_id": str(shift.id)})

        claimed = await self.shifts.get(shift.id, refresh=True)
        logger.info("Shift %s claimed by employee position %s", shift.id, employee.id)
        await self._emit(
            "shift.claimed",
            user_id=user_id,
            schedule_id=claimed.schedule_id,
            shift_id=claimed.id,
            employee_position_id=str(employee.id),
        )
        return claimed

    # ------------------------------------------------------------------
    # Swap requests
    # ------------------------------------------------------------------

    # PUBLIC_INTERFACE
    async def request_swap(self, user_id: UUID, payload: SwapRequestCreate) -> ShiftSwapRequest:
        shift = await self.get_shift(payload.original_shift_id)
        employee = await self.employees.get_active_for_user(user_id)
        if employee is None or shift.employee_position_id != employee.id:
            raise PermissionDeniedError(
                "You can only request swaps for your own shifts", {"shift_id": str(shift.id)}
            )
        now = self.now()
        if shift.start_time <= now:
            raise ValidationFailedError(
                "Cannot swap a shift that has already started", {"shift_id": str(shift.id)}
            )
        if payload.requested_to_id is not None and payload.requested_to_id == user_id:
            raise ValidationFailedError("Cannot request a swap with yourself", {"field": "requested_to_id"})

        reason = payload.reason
        if not reason and payload.covered_shift_id is not None:
            reason = f"Willing to cover shift {payload.covered_shift_id}"

        swap = await self.swaps.create(
            original_shift_id=shift.id,
            requested_by_id=user_id,
            requested_to_id=payload.requested_to_id,
            reason=reason,
            status=SwapStatus.PENDING.value,
            expires_at=now + timedelta(days=self.settings.SWAP_REQUEST_TTL_DAYS),
        )
        await self._emit("swap.requested", user_id=user_id, shift_id=shift.id, swap_id=str(swap.id))
        return swap

    # PUBLIC_INTERFACE
    async def list_my_swaps(self, user_id: UUID) -> List[ShiftSwapRequest]:
        return await self.swaps.list(user_id=user_id)

    # PUBLIC_INTERFACE
    async def list_swaps(self, status: Optional[str] = None) -> List[ShiftSwapRequest]:
        return await self.swaps.list(status=status)

    # PUBLIC_INTERFACE
    async def cancel_swap(self, user_id: UUID, swap_id: UUID) -> ShiftSwapRequest:
        swap = await self.swaps.get(swap_id)
        if swap is None:
            raise NotFoundError("Swap request", swap_id)
        if swap.requested_by_id != user_id:
            raise PermissionDeniedError("You can only cancel your own swap requests", {"id": str(swap_id)})
        if swap.status != SwapStatus.PENDING.value:
            raise ValidationFailedError("Swap request is not pending", {"status": swap.status})
        cancelled = await self.swaps.update(swap, {"status": SwapStatus.CANCELLED.value})
        await self._emit("swap.cancelled", user_id=user_id, shift_id=swap.original_shift_id, swap_id=str(swap_id))
        return cancelled

    async def _pending_swap(self, swap_id: UUID) -> ShiftSwapRequest:
        swap = await self.swaps.get(swap_id)
        if swap is None:
            raise NotFoundError("Swap request", swap_id)
        if swap.status != SwapStatus.PENDING.value:
            raise ValidationFailedError("Swap request is not pending", {"status": swap.status})
        if swap.expires_at is not None and swap.expires_at <= self.now():
            await self.swaps.update(swap, {"status": SwapStatus.EXPIRED.value})
            logger.info("Swap request %s expired at %s", swap.id, swap.expires_at)
            raise ValidationFailedError(
                "Swap request has expired", {"expires_at": swap.expires_at.isoformat()}
            )
        return swap

    # PUBLIC_INTERFACE
    async def approve_swap(
        self, swap_id: UUID, approver_id: UUID, notes: Optional[str] = None
    ) -> ShiftSwapRequest:
        """
        Approve a pending, unexpired swap request.

        When a target user was named and holds an active position, the shift is
        reassigned to that position with status FILLED.
        """
        swap = await self._pending_swap(swap_id)

        if swap.requested_to_id is not None:
            target = await self.employees.get_active_for_user(swap.requested_to_id)
            shift = await self.shifts.get(swap.original_shift_id)
            if target is not None and shift is not None:
                await self.shifts.update(
                    shift,
                    {
                        "employee_position_id": target.id,
                        "status": ShiftStatus.FILLED.value,
                        "is_open_shift": False,
                    },
                )
                await self._emit(
                    "shift.updated",
                    user_id=approver_id,
                    schedule_id=shift.schedule_id,
                    shift_id=shift.id,
                    employee_position_id=str(target.id),
                )

        approved = await self.swaps.update(
            swap,
            {
                "status": SwapStatus.APPROVED.value,
                "approved_by_id": approver_id,
                "approved_at": self.now(),
                "reason": _append_manager_notes(swap.reason, notes),
            },
        )
        logger.info("Swap request %s approved", swap.id)
        await self._emit("swap.approved", user_id=approver_id, shift_id=swap.original_shift_id, swap_id=str(swap.id))
        return approved

    # PUBLIC_INTERFACE
    async def deny_swap(self, swap_id: UUID, approver_id: UUID, notes: Optional[str] = None) -> ShiftSwapRequest:
        swap = await self._pending_swap(swap_id)
        denied = await self.swaps.update(
            swap,
            {
                "status": SwapStatus.DENIED.value,
                "approved_by_id": approver_id,
                "approved_at": self.now(),
                "reason": _append_manager_notes(swap.reason, notes),
            },
        )
        logger.info("Swap request %s denied", swap.id)
        await self._emit("swap.denied", user_id=approver_id, shift_id=swap.original_shift_id, swap_id=str(swap.id))
        return denied
