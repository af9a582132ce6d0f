from __future__ import annotations

import logging
from typing import AsyncGenerator, Iterable
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.enums import (
    PERM_REPORTS_VIEW,
    PERM_SCHEDULING_ADMIN,
    PERM_SCHEDULING_MANAGE,
    ROLE_ADMIN,
    ROLE_MANAGER,
)
from workforce_api.core.errors import ModuleNotInstalledError
from workforce_api.core.logging import user_id_var
from workforce_api.core.security import decode_token
from workforce_api.db.session import get_async_session, get_session_maker, tenant_context
from workforce_api.repositories.security import SecurityRepository
from workforce_api.repositories.tenancy import ModuleRepository
from workforce_api.services.employees import EmployeeService
from workforce_api.services.modules import ModuleService
from workforce_api.services.reports import ReportService
from workforce_api.services.scheduling import SchedulingService

logger = logging.getLogger(__name__)

# OAuth2 bearer (used by docs); login endpoint path referenced here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


# PUBLIC_INTERFACE
async def get_tenant_id(x_tenant_id: str | None = Header(default=None, alias="X-Tenant-ID")) -> UUID:
    """
    Extract and validate the business id from the X-Tenant-ID header.

    Raises:
        HTTPException: 400 Bad Request if header missing or invalid UUID.
    Returns:
        UUID: business identifier
    """
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required.",
        )
    try:
        return UUID(x_tenant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header must be a valid UUID string.",
        )


# PUBLIC_INTERFACE
async def get_tenant_session(
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession with Row-Level Security (RLS) configured for the given business.

    The Postgres setting `app.tenant_id` points at the business while the session is
    in use and is reset afterwards.
    """
    async with tenant_context(session, tenant_id):
        yield session


# PUBLIC_INTERFACE
async def get_session_no_tenant(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession without setting business context.

    Used by business signup, which creates the business and then scopes the
    session to it itself.
    """
    yield session


# PUBLIC_INTERFACE
async def get_current_user(
    tenant_id: UUID = Depends(get_tenant_id),
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_tenant_session),
):
    """
    Resolve and return the current user from the Authorization bearer token.

    Validates the access token, ensures its business claim matches the X-Tenant-ID
    header, and loads the user via the RLS-scoped session.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")

    tok_tenant = payload.get("tenant_id")
    if not tok_tenant or str(tok_tenant) != str(tenant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tenant mismatch")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    repo = SecurityRepository(session)
    try:
        user = await repo.get_user_by_id(UUID(user_id))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    user_id_var.set(str(user.id))
    return user


# PUBLIC_INTERFACE
async def get_current_active_user(user=Depends(get_current_user)):
    """Ensure user is active."""
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


def user_codes(user) -> set[str]:
    """Role names of the user plus the permission codes granted through them."""
    codes = set(getattr(user, "role_names", None) or [])
    for role in getattr(user, "roles", None) or []:
        codes.add(role.name)
        codes.update(p.code for p in role.permissions)
    return codes


def has_any_code(user, required: Iterable[str]) -> bool:
    if getattr(user, "is_superadmin", False):
        return True
    return not user_codes(user).isdisjoint(required)


# PUBLIC_INTERFACE
def require_roles(*required: str):
    """
    Create a dependency that requires the current user to hold one of the specified
    roles (or matching permission codes). Returns the user.
    """

    async def _dep(user=Depends(get_current_active_user)):
        if not has_any_code(user, required):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return _dep


require_admin = require_roles(ROLE_ADMIN)
require_scheduling_admin = require_roles(ROLE_ADMIN, PERM_SCHEDULING_ADMIN)
require_scheduling_manager = require_roles(ROLE_ADMIN, ROLE_MANAGER, PERM_SCHEDULING_MANAGE)
require_reports_viewer = require_roles(ROLE_ADMIN, PERM_REPORTS_VIEW)


# PUBLIC_INTERFACE
async def get_module_repository(session: AsyncSession = Depends(get_tenant_session)) -> ModuleRepository:
    return ModuleRepository(session)


# PUBLIC_INTERFACE
def require_module(module_key: str):
    """Create a dependency that rejects requests when the business has not enabled the module."""

    async def _dep(
        _user=Depends(get_current_active_user),
        modules: ModuleRepository = Depends(get_module_repository),
    ) -> None:
        if not await modules.is_installed(module_key):
            logger.info("Rejected request: module %s is not installed", module_key)
            raise ModuleNotInstalledError(module_key)

    return _dep


# PUBLIC_INTERFACE
async def is_module_enabled(tenant_id: str, module_key: str) -> bool:
    """Module check for connections outside request scope (WebSockets); opens its own session."""
    async with get_session_maker()() as session:
        async with tenant_context(session, tenant_id):
            return await ModuleRepository(session).is_installed(module_key)


# PUBLIC_INTERFACE
async def get_scheduling_service(
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_tenant_session),
) -> SchedulingService:
    return SchedulingService(session, tenant_id)


# PUBLIC_INTERFACE
async def get_employee_service(session: AsyncSession = Depends(get_tenant_session)) -> EmployeeService:
    return EmployeeService(session)


# PUBLIC_INTERFACE
async def get_module_service(session: AsyncSession = Depends(get_tenant_session)) -> ModuleService:
    return ModuleService(session)


# PUBLIC_INTERFACE
async def get_report_service(session: AsyncSession = Depends(get_tenant_session)) -> ReportService:
    return ReportService(session)
