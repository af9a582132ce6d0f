from __future__ import annotations

import logging
from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.deps import get_current_active_user, get_tenant_id, get_tenant_session
from workforce_api.core.enums import ROLE_ADMIN
from workforce_api.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from workforce_api.repositories.security import SecurityRepository
from workforce_api.schemas.auth import RefreshRequest, RegisterRequest, TokenPair, UserRead
from workforce_api.schemas.common import MessageResponse
from workforce_api.services.tenancy import ADMIN_PERMISSIONS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def user_to_read(user, roles: List[str]) -> UserRead:
    return UserRead(
        id=user.id,
        tenant_id=user.tenant_id,
        email=user.email,
        full_name=user.full_name,
        is_active=user.is_active,
        is_superadmin=user.is_superadmin,
        created_at=user.created_at,
        updated_at=user.updated_at,
        roles=roles,
    )


async def _issue_tokens(repo: SecurityRepository, user, tenant_id: UUID) -> TokenPair:
    roles = [r.name for r in await repo.list_roles_for_user(user.id)]
    access = create_access_token(subject=str(user.id), tenant_id=str(tenant_id), roles=roles)
    refresh = create_refresh_token(subject=str(user.id), tenant_id=str(tenant_id))
    return TokenPair(access_token=access, refresh_token=refresh)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register user",
    description=(
        "Create a new user in the business named by X-Tenant-ID. "
        "The first user of a business is assigned the 'admin' role."
    ),
)
async def register_user(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    """Register a new user in the business."""
    repo = SecurityRepository(session)
    existing = await repo.get_user_by_email(payload.email)
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")

    user = await repo.create_user(
        email=payload.email, full_name=payload.full_name, hashed_password=get_password_hash(payload.password)
    )

    if await repo.count_users() == 1:
        role = await repo.ensure_role(ROLE_ADMIN, "Business administrator")
        await repo.grant_permissions(role, ADMIN_PERMISSIONS)
        await repo.assign_role_to_user(user.id, role.id)
        logger.info("First user %s of the business became admin", user.id)

    roles = [r.name for r in await repo.list_roles_for_user(user.id)]
    return user_to_read(user, roles)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description="Authenticate using OAuth2 password form (username = email) and receive access/refresh tokens.",
)
async def login_for_tokens(
    form_data: OAuth2PasswordRequestForm = Depends(),
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_tenant_session),
) -> TokenPair:
    """Authenticate user and issue tokens."""
    repo = SecurityRepository(session)
    user = await repo.get_user_by_email(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")
    return await _issue_tokens(repo, user, tenant_id)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Issue a new token pair from a valid refresh token.",
)
async def refresh_token(
    payload: RefreshRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_tenant_session),
) -> TokenPair:
    """Validate refresh token and issue a new access token pair."""
    try:
        claims: Dict[str, Any] = decode_token(payload.refresh_token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    if claims.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    if str(tenant_id) != str(claims.get("tenant_id")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tenant mismatch")

    repo = SecurityRepository(session)
    try:
        user = await repo.get_user_by_id(UUID(str(claims.get("sub"))))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    return await _issue_tokens(repo, user, tenant_id)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
    description="Stateless logout. Clients should discard tokens. No server state maintained.",
)
async def logout() -> MessageResponse:
    """Acknowledge logout in stateless JWT systems."""
    return MessageResponse(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserRead,
    summary="Read current user",
    description="Return the current authenticated user and their roles.",
)
async def read_current_user(user=Depends(get_current_active_user)) -> UserRead:
    """Return current user profile."""
    return user_to_read(user, list(user.role_names))
