from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_api.core.deps import (
    get_current_active_user,
    get_module_service,
    get_session_no_tenant,
    get_tenant_id,
    get_tenant_session,
    require_admin,
)
from workforce_api.repositories.tenancy import BusinessRepository
from workforce_api.schemas.tenancy import (
    BusinessCreate,
    BusinessRead,
    BusinessSignupResult,
    ModuleInstallationRead,
    ModuleRead,
)
from workforce_api.services.modules import ModuleService
from workforce_api.services.tenancy import TenancyService

router = APIRouter(tags=["Businesses"])


# PUBLIC_INTERFACE
@router.post(
    "/businesses",
    response_model=BusinessSignupResult,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up a business",
    description=(
        "Create a business together with its first administrator, the admin and manager roles, "
        "and the requested module installations. No X-Tenant-ID header is needed."
    ),
)
async def create_business(
    payload: BusinessCreate,
    session: AsyncSession = Depends(get_session_no_tenant),
) -> BusinessSignupResult:
    return await TenancyService(session).create_business(payload)


# PUBLIC_INTERFACE
@router.get(
    "/businesses/current",
    response_model=BusinessRead,
    summary="Current business",
    dependencies=[Depends(get_current_active_user)],
)
async def read_current_business(
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_tenant_session),
) -> BusinessRead:
    business = await BusinessRepository(session).get(tenant_id)
    if business is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")
    return BusinessRead.model_validate(business)


# PUBLIC_INTERFACE
@router.get(
    "/modules/catalog",
    response_model=List[ModuleRead],
    summary="Module catalog",
    dependencies=[Depends(get_current_active_user)],
)
async def list_module_catalog(service: ModuleService = Depends(get_module_service)) -> List[ModuleRead]:
    return [ModuleRead.model_validate(m) for m in await service.list_catalog()]


# PUBLIC_INTERFACE
@router.get(
    "/modules",
    response_model=List[ModuleInstallationRead],
    summary="Installed modules",
    description="Modules installed for the current business, enabled or not.",
    dependencies=[Depends(get_current_active_user)],
)
async def list_installed_modules(
    service: ModuleService = Depends(get_module_service),
) -> List[ModuleInstallationRead]:
    return [ModuleInstallationRead.model_validate(i) for i in await service.list_installations()]


# PUBLIC_INTERFACE
@router.post(
    "/modules/{module_key}/install",
    response_model=ModuleInstallationRead,
    summary="Install module",
    dependencies=[Depends(require_admin)],
)
async def install_module(
    module_key: str = Path(..., description="Catalog module key, e.g. 'scheduling'"),
    service: ModuleService = Depends(get_module_service),
) -> ModuleInstallationRead:
    return ModuleInstallationRead.model_validate(await service.install(module_key))


# PUBLIC_INTERFACE
@router.post(
    "/modules/{module_key}/enable",
    response_model=ModuleInstallationRead,
    summary="Enable module",
    dependencies=[Depends(require_admin)],
)
async def enable_module(
    module_key: str = Path(...),
    service: ModuleService = Depends(get_module_service),
) -> ModuleInstallationRead:
    return ModuleInstallationRead.model_validate(await service.set_enabled(module_key, True))


# PUBLIC_INTERFACE
@router.post(
    "/modules/{module_key}/disable",
    response_model=ModuleInstallationRead,
    summary="Disable module",
    description="Disable a module; its gated endpoints answer 403 MODULE_NOT_INSTALLED afterwards.",
    dependencies=[Depends(require_admin)],
)
async def disable_module(
    module_key: str = Path(...),
    service: ModuleService = Depends(get_module_service),
) -> ModuleInstallationRead:
    return ModuleInstallationRead.model_validate(await service.set_enabled(module_key, False))
