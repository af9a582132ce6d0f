from __future__ import annotations

from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import Boolean, ForeignKey, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce_api.db.base import Base, UUIDPkMixin, TimestampMixin, TenantMixin


class Business(UUIDPkMixin, TimestampMixin, Base):
    """Tenant organization owning users, employees, positions and schedules."""
    __tablename__ = "businesses"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    subscription_tier: Mapped[str] = mapped_column(
        Text, nullable=False, default="free", server_default=text("'free'")
    )


class Module(UUIDPkMixin, TimestampMixin, Base):
    """Installable feature unit. The catalog is global, not tenant-scoped."""
    __tablename__ = "modules"

    key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    manifest: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    permissions: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    is_builtin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")


class ModuleInstallation(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """A module installed for one business."""
    __tablename__ = "module_installations"
    __table_args__ = (
        UniqueConstraint("tenant_id", "module_id", name="uq_module_installations_tenant_module"),
    )

    module_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("modules.id", ondelete="CASCADE"), nullable=False
    )
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    module: Mapped["Module"] = relationship("Module", lazy="joined")

    @property
    def module_key(self) -> Optional[str]:
        return self.module.key if self.module is not None else None

    @property
    def module_name(self) -> Optional[str]:
        return self.module.name if self.module is not None else None
