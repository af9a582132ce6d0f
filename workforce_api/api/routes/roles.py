from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.deps import get_tenant_session, require_admin
from workforce_api.repositories.security import SecurityRepository
from workforce_api.schemas.auth import RoleCreate, RoleRead, RoleUpdate

router = APIRouter(prefix="/admin/roles", tags=["Roles"], dependencies=[Depends(require_admin)])


def _role_to_read(role) -> RoleRead:
    return RoleRead(
        id=role.id,
        name=role.name,
        description=role.description,
        permissions=sorted(p.code for p in role.permissions),
        created_at=role.created_at,
        updated_at=role.updated_at,
    )


# PUBLIC_INTERFACE
@router.get("", response_model=List[RoleRead], summary="List roles")
async def list_roles(
    session: AsyncSession = Depends(get_tenant_session),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[RoleRead]:
    repo = SecurityRepository(session)
    return [_role_to_read(r) for r in await repo.list_roles(limit=limit, offset=offset)]


# PUBLIC_INTERFACE
@router.post("", response_model=RoleRead, status_code=status.HTTP_201_CREATED, summary="Create role")
async def create_role(
    payload: RoleCreate,
    session: AsyncSession = Depends(get_tenant_session),
) -> RoleRead:
    """Create a role and grant it the given permission codes (missing codes are created)."""
    repo = SecurityRepository(session)
    if await repo.get_role_by_name(payload.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Role already exists")
    role = await repo.create_role(payload.name, payload.description)
    await repo.grant_permissions(role, payload.permissions)
    return _role_to_read(await repo.get_role_by_id(role.id, refresh=True))


# PUBLIC_INTERFACE
@router.get("/{role_id}", response_model=RoleRead, summary="Get role")
async def get_role(
    role_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> RoleRead:
    repo = SecurityRepository(session)
    role = await repo.get_role_by_id(role_id)
    if not role:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return _role_to_read(role)


# PUBLIC_INTERFACE
@router.patch("/{role_id}", response_model=RoleRead, summary="Update role")
async def update_role(
    payload: RoleUpdate,
    role_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> RoleRead:
    """Rename or re-describe a role; listed permissions are granted in addition to the current ones."""
    repo = SecurityRepository(session)
    role = await repo.update_role(role_id, name=payload.name, description=payload.description)
    if not role:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    if payload.permissions:
        await repo.grant_permissions(role, payload.permissions)
    return _role_to_read(await repo.get_role_by_id(role_id, refresh=True))


# PUBLIC_INTERFACE
@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete role")
async def delete_role(
    role_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> None:
    repo = SecurityRepository(session)
    if not await repo.get_role_by_id(role_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    await repo.delete_role(role_id)
