from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.api.routes.auth import user_to_read
from workforce_api.core.deps import get_tenant_session, require_admin
from workforce_api.core.security import get_password_hash
from workforce_api.repositories.security import SecurityRepository
from workforce_api.schemas.auth import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/admin/users", tags=["Users"], dependencies=[Depends(require_admin)])


async def _read(repo: SecurityRepository, user) -> UserRead:
    roles = [r.name for r in await repo.list_roles_for_user(user.id)]
    return user_to_read(user, roles)


# PUBLIC_INTERFACE
@router.get("", response_model=List[UserRead], summary="List users", description="List users of the current business.")
async def list_users(
    session: AsyncSession = Depends(get_tenant_session),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[UserRead]:
    repo = SecurityRepository(session)
    return [await _read(repo, u) for u in await repo.list_users(limit=limit, offset=offset)]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user in the business and assign the named roles (which must exist).",
)
async def create_user(
    payload: UserCreate,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    if await repo.get_user_by_email(payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")

    roles = []
    for name in payload.roles:
        role = await repo.get_role_by_name(name)
        if role is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Role '{name}' not found")
        roles.append(role)

    user = await repo.create_user(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
        is_active=payload.is_active if payload.is_active is not None else True,
    )
    for role in roles:
        await repo.assign_role_to_user(user.id, role.id)
    return await _read(repo, user)


# PUBLIC_INTERFACE
@router.get("/{user_id}", response_model=UserRead, summary="Get user")
async def get_user(
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return await _read(repo, user)


# PUBLIC_INTERFACE
@router.patch("/{user_id}", response_model=UserRead, summary="Update user")
async def update_user(
    payload: UserUpdate,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    updated = await repo.update_user(
        user_id,
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password) if payload.password else None,
        is_active=payload.is_active,
    )
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return await _read(repo, updated)


# PUBLIC_INTERFACE
@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete user")
async def delete_user(
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> None:
    repo = SecurityRepository(session)
    if not await repo.get_user_by_id(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    await repo.delete_user(user_id)


# PUBLIC_INTERFACE
@router.post("/{user_id}/roles/{role_id}", response_model=UserRead, summary="Assign role to user")
async def assign_role(
    user_id: UUID,
    role_id: UUID,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(user_id)
    role = await repo.get_role_by_id(role_id)
    if not user or not role:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User or role not found")
    await repo.assign_role_to_user(user_id, role_id)
    return await _read(repo, user)


# PUBLIC_INTERFACE
@router.delete("/{user_id}/roles/{role_id}", response_model=UserRead, summary="Remove role from user")
async def remove_role(
    user_id: UUID,
    role_id: UUID,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    await repo.remove_role_from_user(user_id, role_id)
    return await _read(repo, user)
