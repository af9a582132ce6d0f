"""
Scheduling endpoints, grouped by audience:

- /scheduling/admin/...  schedules, stations, shifts, availability and swap decisions
- /scheduling/team/...   manager views: open shifts, team availability, assignment, pending swaps
- /scheduling/me/...     the caller's own schedule, availability, open shifts and swaps

Every endpoint requires the scheduling module to be installed and enabled for the
business (403 MODULE_NOT_INSTALLED otherwise).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from workforce_api.core.deps import (
    get_current_active_user,
    get_scheduling_service,
    require_module,
    require_scheduling_admin,
    require_scheduling_manager,
)
from workforce_api.core.enums import ModuleKey, ScheduleStatus, ShiftStatus, SwapStatus
from workforce_api.schemas.scheduling import (
    AvailabilityCreate,
    AvailabilityRead,
    AvailabilityUpdate,
    ScheduleClone,
    ScheduleCreate,
    ScheduleRead,
    ScheduleUpdate,
    ShiftAssign,
    ShiftCreate,
    ShiftRead,
    ShiftUpdate,
    StationCreate,
    StationRead,
    StationUpdate,
    SwapDecision,
    SwapRead,
    SwapRequestCreate,
    as_utc,
)
from workforce_api.services.scheduling import SchedulingService

router = APIRouter(
    prefix="/scheduling",
    tags=["Scheduling"],
    dependencies=[Depends(require_module(ModuleKey.SCHEDULING.value))],
)


def _shifts(items) -> List[ShiftRead]:
    return [ShiftRead.model_validate(s) for s in items]


# ----------------------------------------------------------------------
# Admin: schedules
# ----------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.get("/admin/schedules", response_model=List[ScheduleRead], summary="List schedules")
async def list_schedules(
    status_filter: Optional[ScheduleStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[ScheduleRead]:
    items = await service.list_schedules(
        status=status_filter.value if status_filter else None, limit=limit, offset=offset
    )
    return [ScheduleRead.model_validate(s) for s in items]


# PUBLIC_INTERFACE
@router.post(
    "/admin/schedules",
    response_model=ScheduleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create schedule",
    description="Create a DRAFT schedule. end_date must not precede start_date.",
)
async def create_schedule(
    payload: ScheduleCreate,
    user=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ScheduleRead:
    return ScheduleRead.model_validate(await service.create_schedule(payload, created_by_id=user.id))


# PUBLIC_INTERFACE
@router.get("/admin/schedules/{schedule_id}", response_model=ScheduleRead, summary="Get schedule")
async def get_schedule(
    schedule_id: UUID,
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ScheduleRead:
    return ScheduleRead.model_validate(await service.get_schedule(schedule_id))


# PUBLIC_INTERFACE
@router.patch("/admin/schedules/{schedule_id}", response_model=ScheduleRead, summary="Update schedule")
async def update_schedule(
    schedule_id: UUID,
    payload: ScheduleUpdate,
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ScheduleRead:
    return ScheduleRead.model_validate(await service.update_schedule(schedule_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/admin/schedules/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete schedule",
    description="Delete a schedule together with its shifts.",
)
async def delete_schedule(
    schedule_id: UUID,
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> None:
    await service.delete_schedule(schedule_id)


# PUBLIC_INTERFACE
@router.post(
    "/admin/schedules/{schedule_id}/publish",
    response_model=ScheduleRead,
    summary="Publish schedule",
    description="Make the schedule visible to employees. Empty schedules cannot be published; republishing refreshes the stamp.",
)
async def publish_schedule(
    schedule_id: UUID,
    user=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ScheduleRead:
    return ScheduleRead.model_validate(await service.publish_schedule(schedule_id, user.id))


# PUBLIC_INTERFACE
@router.post(
    "/admin/schedules/{schedule_id}/clone",
    response_model=ScheduleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Clone schedule",
    description=(
        "Copy a schedule into a new DRAFT period. Shifts move by the difference between the start dates; "
        "cancelled shifts are skipped and assignments that would overlap or whose employee left become open."
    ),
)
async def clone_schedule(
    schedule_id: UUID,
    payload: ScheduleClone,
    user=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ScheduleRead:
    return ScheduleRead.model_validate(await service.clone_schedule(schedule_id, payload, created_by_id=user.id))


# ----------------------------------------------------------------------
# Admin: stations
# ----------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.get("/admin/stations", response_model=List[StationRead], summary="List stations")
async def list_stations(
    active_only: bool = Query(False),
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[StationRead]:
    return [StationRead.model_validate(s) for s in await service.list_stations(active_only=active_only)]


# PUBLIC_INTERFACE
@router.post(
    "/admin/stations",
    response_model=StationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create station",
    description="Create a station. Names are unique per business (409 otherwise).",
)
async def create_station(
    payload: StationCreate,
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> StationRead:
    return StationRead.model_validate(await service.create_station(payload))


# PUBLIC_INTERFACE
@router.get("/admin/stations/{station_id}", response_model=StationRead, summary="Get station")
async def get_station(
    station_id: UUID,
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> StationRead:
    return StationRead.model_validate(await service.get_station(station_id))


# PUBLIC_INTERFACE
@router.patch("/admin/stations/{station_id}", response_model=StationRead, summary="Update station")
async def update_station(
    station_id: UUID,
    payload: StationUpdate,
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> StationRead:
    return StationRead.model_validate(await service.update_station(station_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/admin/stations/{station_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete station",
    description="Delete a station no shift refers to; 409 while shifts still use it (deactivate it instead).",
)
async def delete_station(
    station_id: UUID,
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> None:
    await service.delete_station(station_id)


# ----------------------------------------------------------------------
# Admin: shifts
# ----------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.get("/admin/shifts", response_model=List[ShiftRead], summary="List shifts")
async def list_shifts(
    schedule_id: Optional[UUID] = Query(None),
    status_filter: Optional[ShiftStatus] = Query(None, alias="status"),
    open_only: bool = Query(False),
    start: Optional[datetime] = Query(None, description="Only shifts ending after this time"),
    end: Optional[datetime] = Query(None, description="Only shifts starting before this time"),
    limit: int = Query(500, ge=1, le=2000),
    offset: int = Query(0, ge=0),
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[ShiftRead]:
    items = await service.list_shifts(
        schedule_id=schedule_id,
        status=status_filter.value if status_filter else None,
        open_only=open_only,
        start=as_utc(start),
        end=as_utc(end),
        limit=limit,
        offset=offset,
    )
    return _shifts(items)


# PUBLIC_INTERFACE
@router.post(
    "/admin/shifts",
    response_model=ShiftRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create shift",
    description="Create a shift. Without employee_position_id the shift is open and claimable.",
)
async def create_shift(
    payload: ShiftCreate,
    user=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ShiftRead:
    return ShiftRead.model_validate(await service.create_shift(payload, user_id=user.id))


# PUBLIC_INTERFACE
@router.get("/admin/shifts/{shift_id}", response_model=ShiftRead, summary="Get shift")
async def get_shift(
    shift_id: UUID,
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ShiftRead:
    return ShiftRead.model_validate(await service.get_shift(shift_id))


# PUBLIC_INTERFACE
@router.patch("/admin/shifts/{shift_id}", response_model=ShiftRead, summary="Update shift")
async def update_shift(
    shift_id: UUID,
    payload: ShiftUpdate,
    user=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ShiftRead:
    return ShiftRead.model_validate(await service.update_shift(shift_id, payload, user_id=user.id))


# PUBLIC_INTERFACE
@router.delete("/admin/shifts/{shift_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete shift")
async def delete_shift(
    shift_id: UUID,
    user=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> None:
    await service.delete_shift(shift_id, user_id=user.id)


# ----------------------------------------------------------------------
# Admin: availability and swaps
# ----------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.get("/admin/availability", response_model=List[AvailabilityRead], summary="List all availability")
async def list_all_availability(
    employee_position_id: Optional[UUID] = Query(None),
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[AvailabilityRead]:
    items = await service.list_availability(employee_position_id=employee_position_id)
    return [AvailabilityRead.model_validate(a) for a in items]


# PUBLIC_INTERFACE
@router.get("/admin/swaps", response_model=List[SwapRead], summary="List swap requests")
async def list_all_swaps(
    status_filter: Optional[SwapStatus] = Query(None, alias="status"),
    _admin=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[SwapRead]:
    items = await service.list_swaps(status=status_filter.value if status_filter else None)
    return [SwapRead.model_validate(s) for s in items]


# PUBLIC_INTERFACE
@router.post(
    "/admin/swaps/{swap_id}/approve",
    response_model=SwapRead,
    summary="Approve swap request",
    description="Approve a pending, unexpired request; a named target with an active position takes over the shift.",
)
async def admin_approve_swap(
    swap_id: UUID,
    decision: Optional[SwapDecision] = None,
    user=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SwapRead:
    swap = await service.approve_swap(swap_id, user.id, notes=decision.notes if decision else None)
    return SwapRead.model_validate(swap)


# PUBLIC_INTERFACE
@router.post("/admin/swaps/{swap_id}/deny", response_model=SwapRead, summary="Deny swap request")
async def admin_deny_swap(
    swap_id: UUID,
    decision: Optional[SwapDecision] = None,
    user=Depends(require_scheduling_admin),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SwapRead:
    swap = await service.deny_swap(swap_id, user.id, notes=decision.notes if decision else None)
    return SwapRead.model_validate(swap)


# ----------------------------------------------------------------------
# Manager (team) views
# ----------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.get("/team/open-shifts", response_model=List[ShiftRead], summary="Team open shifts")
async def team_open_shifts(
    start: Optional[datetime] = Query(None, description="Defaults to now"),
    end: Optional[datetime] = Query(None),
    _manager=Depends(require_scheduling_manager),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[ShiftRead]:
    return _shifts(await service.list_team_open_shifts(start=as_utc(start), end=as_utc(end)))


# PUBLIC_INTERFACE
@router.get(
    "/team/availability",
    response_model=List[AvailabilityRead],
    summary="Team availability",
    description="Availability of active employees in effect on the given date (default today), optionally for one weekday.",
)
async def team_availability(
    day_of_week: Optional[str] = Query(None, description="MONDAY..SUNDAY"),
    on: Optional[date] = Query(None, description="Date the entries must be in effect on"),
    _manager=Depends(require_scheduling_manager),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[AvailabilityRead]:
    items = await service.list_team_availability(day_of_week=day_of_week, on=on)
    return [AvailabilityRead.model_validate(a) for a in items]


# PUBLIC_INTERFACE
@router.post(
    "/team/shifts/{shift_id}/assign",
    response_model=ShiftRead,
    summary="Assign shift",
    description="Assign an employee to a shift; the shift becomes SCHEDULED and is no longer open.",
)
async def team_assign_shift(
    shift_id: UUID,
    payload: ShiftAssign,
    user=Depends(require_scheduling_manager),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ShiftRead:
    shift = await service.assign_shift(shift_id, payload.employee_position_id, user_id=user.id)
    return ShiftRead.model_validate(shift)


# PUBLIC_INTERFACE
@router.get("/team/swaps", response_model=List[SwapRead], summary="Pending swap requests")
async def team_pending_swaps(
    _manager=Depends(require_scheduling_manager),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[SwapRead]:
    items = await service.list_swaps(status=SwapStatus.PENDING.value)
    return [SwapRead.model_validate(s) for s in items]


# PUBLIC_INTERFACE
@router.post("/team/swaps/{swap_id}/approve", response_model=SwapRead, summary="Approve swap request")
async def team_approve_swap(
    swap_id: UUID,
    decision: Optional[SwapDecision] = None,
    user=Depends(require_scheduling_manager),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SwapRead:
    swap = await service.approve_swap(swap_id, user.id, notes=decision.notes if decision else None)
    return SwapRead.model_validate(swap)


# PUBLIC_INTERFACE
@router.post("/team/swaps/{swap_id}/deny", response_model=SwapRead, summary="Deny swap request")
async def team_deny_swap(
    swap_id: UUID,
    decision: Optional[SwapDecision] = None,
    user=Depends(require_scheduling_manager),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SwapRead:
    swap = await service.deny_swap(swap_id, user.id, notes=decision.notes if decision else None)
    return SwapRead.model_validate(swap)


# ----------------------------------------------------------------------
# Employee self-service
# ----------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.get(
    "/me/schedule",
    response_model=List[ShiftRead],
    summary="My schedule",
    description="Shifts assigned to the caller from published schedules; defaults to the next two weeks.",
)
async def my_schedule(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[ShiftRead]:
    return _shifts(await service.my_schedule(user.id, start=as_utc(start), end=as_utc(end)))


# PUBLIC_INTERFACE
@router.get("/me/availability", response_model=List[AvailabilityRead], summary="My availability")
async def my_availability(
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[AvailabilityRead]:
    return [AvailabilityRead.model_validate(a) for a in await service.list_my_availability(user.id)]


# PUBLIC_INTERFACE
@router.post(
    "/me/availability",
    response_model=AvailabilityRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add availability",
)
async def create_my_availability(
    payload: AvailabilityCreate,
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> AvailabilityRead:
    return AvailabilityRead.model_validate(await service.create_availability(user.id, payload))


# PUBLIC_INTERFACE
@router.patch("/me/availability/{availability_id}", response_model=AvailabilityRead, summary="Update availability")
async def update_my_availability(
    availability_id: UUID,
    payload: AvailabilityUpdate,
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> AvailabilityRead:
    entity = await service.update_availability(user.id, availability_id, payload)
    return AvailabilityRead.model_validate(entity)


# PUBLIC_INTERFACE
@router.delete(
    "/me/availability/{availability_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete availability",
)
async def delete_my_availability(
    availability_id: UUID,
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> None:
    await service.delete_availability(user.id, availability_id)


# PUBLIC_INTERFACE
@router.get(
    "/me/open-shifts",
    response_model=List[ShiftRead],
    summary="Claimable open shifts",
    description=(
        "Future open shifts of published schedules that accept the caller's position, "
        "excluding shifts that overlap the caller's own."
    ),
)
async def my_open_shifts(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    position_id: Optional[UUID] = Query(None),
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[ShiftRead]:
    items = await service.list_open_shifts(user.id, start=as_utc(start), end=as_utc(end), position_id=position_id)
    return _shifts(items)


# PUBLIC_INTERFACE
@router.post(
    "/me/shifts/{shift_id}/claim",
    response_model=ShiftRead,
    summary="Claim open shift",
    description=(
        "Assign an open shift to the caller. 404 unknown shift or no active position; "
        "409 already claimed or overlapping; 400 already started; 403 position mismatch."
    ),
)
async def claim_open_shift(
    shift_id: UUID,
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ShiftRead:
    return ShiftRead.model_validate(await service.claim_shift(user.id, shift_id))


# PUBLIC_INTERFACE
@router.get("/me/swaps", response_model=List[SwapRead], summary="My swap requests")
async def my_swaps(
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> List[SwapRead]:
    return [SwapRead.model_validate(s) for s in await service.list_my_swaps(user.id)]


# PUBLIC_INTERFACE
@router.post(
    "/me/swaps",
    response_model=SwapRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request shift swap",
)
async def request_swap(
    payload: SwapRequestCreate,
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SwapRead:
    return SwapRead.model_validate(await service.request_swap(user.id, payload))


# PUBLIC_INTERFACE
@router.post("/me/swaps/{swap_id}/cancel", response_model=SwapRead, summary="Cancel swap request")
async def cancel_swap(
    swap_id: UUID,
    user=Depends(get_current_active_user),
    service: SchedulingService = Depends(get_scheduling_service),
) -> SwapRead:
    return SwapRead.model_validate(await service.cancel_swap(user.id, swap_id))
