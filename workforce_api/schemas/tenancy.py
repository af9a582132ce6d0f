from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from workforce_api.core.enums import ModuleKey, SubscriptionTier
from .common import IDModel, Timestamps


class BusinessCreate(BaseModel):
    """Sign-up payload: a new business together with its first administrator."""
    name: str = Field(..., min_length=1, description="Business display name")
    slug: str = Field(..., pattern=r"^[a-z0-9][a-z0-9-]{1,62}$", description="URL-safe unique handle")
    subscription_tier: SubscriptionTier = Field(SubscriptionTier.FREE, description="Subscription tier")
    admin_email: EmailStr = Field(..., description="Email of the first administrator")
    admin_password: str = Field(..., min_length=8, description="Password of the first administrator")
    admin_full_name: Optional[str] = Field(None)
    modules: List[ModuleKey] = Field(
        default_factory=lambda: [ModuleKey.SCHEDULING],
        description="Modules to install right away",
    )


class BusinessRead(IDModel, Timestamps):
    """Business read model."""
    name: str = Field(..., description="Business display name")
    slug: str = Field(..., description="URL-safe unique handle")
    subscription_tier: str = Field(..., description="Subscription tier")

    class Config:
        from_attributes = True


class BusinessSignupResult(BaseModel):
    """Result of a business sign-up."""
    business: BusinessRead
    admin_user_id: UUID = Field(..., description="ID of the administrator created for the business")
    installed_modules: List[str] = Field(default_factory=list)


class ModuleRead(IDModel):
    """Catalog module."""
    key: str = Field(..., description="Stable module key, e.g. 'scheduling'")
    name: str = Field(..., description="Display name")
    description: Optional[str] = Field(None)
    permissions: List[str] = Field(default_factory=list, description="Permission codes the module defines")
    is_builtin: bool = Field(True)

    class Config:
        from_attributes = True


class ModuleInstallationRead(IDModel, Timestamps):
    """Installation of a module for the current business."""
    module_id: UUID = Field(..., description="Installed module")
    module_key: Optional[str] = Field(None)
    module_name: Optional[str] = Field(None)
    enabled: bool = Field(..., description="Whether the module is usable")

    class Config:
        from_attributes = True
