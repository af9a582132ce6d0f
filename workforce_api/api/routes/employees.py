from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from workforce_api.core.deps import get_employee_service, require_admin, require_scheduling_manager
from workforce_api.schemas.employees import EmployeeAssign, EmployeePositionRead, PositionCreate, PositionRead
from workforce_api.services.employees import EmployeeService

router = APIRouter(tags=["Employees"])


# PUBLIC_INTERFACE
@router.get(
    "/positions",
    response_model=List[PositionRead],
    summary="List positions",
    dependencies=[Depends(require_scheduling_manager)],
)
async def list_positions(
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: EmployeeService = Depends(get_employee_service),
) -> List[PositionRead]:
    return [PositionRead.model_validate(p) for p in await service.list_positions(limit=limit, offset=offset)]


# PUBLIC_INTERFACE
@router.post(
    "/positions",
    response_model=PositionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create position",
    dependencies=[Depends(require_admin)],
)
async def create_position(
    payload: PositionCreate,
    service: EmployeeService = Depends(get_employee_service),
) -> PositionRead:
    return PositionRead.model_validate(await service.create_position(payload))


# PUBLIC_INTERFACE
@router.get(
    "/employees",
    response_model=List[EmployeePositionRead],
    summary="List employees",
    description="Employees are users holding a position; inactive assignments are included on request.",
    dependencies=[Depends(require_scheduling_manager)],
)
async def list_employees(
    include_inactive: bool = Query(False),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: EmployeeService = Depends(get_employee_service),
) -> List[EmployeePositionRead]:
    items = await service.list_employees(active_only=not include_inactive, limit=limit, offset=offset)
    return [EmployeePositionRead.model_validate(e) for e in items]


# PUBLIC_INTERFACE
@router.post(
    "/employees",
    response_model=EmployeePositionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Assign user to position",
    dependencies=[Depends(require_admin)],
)
async def assign_employee(
    payload: EmployeeAssign,
    service: EmployeeService = Depends(get_employee_service),
) -> EmployeePositionRead:
    return EmployeePositionRead.model_validate(await service.assign(payload))


# PUBLIC_INTERFACE
@router.post(
    "/employees/{employee_position_id}/deactivate",
    response_model=EmployeePositionRead,
    summary="Deactivate employee position",
    dependencies=[Depends(require_admin)],
)
async def deactivate_employee(
    employee_position_id: UUID,
    service: EmployeeService = Depends(get_employee_service),
) -> EmployeePositionRead:
    return EmployeePositionRead.model_validate(await service.deactivate(employee_position_id))
