from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import Boolean, Date, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce_api.db.base import Base, UUIDPkMixin, TimestampMixin, TenantMixin


class Position(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Job position in the business org chart (e.g. Cashier, Line Cook)."""
    __tablename__ = "positions"
    __table_args__ = (
        UniqueConstraint("tenant_id", "title", name="uq_positions_tenant_title"),
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    department: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class EmployeePosition(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Assignment of a user to a position; the unit shifts are scheduled against."""
    __tablename__ = "employee_positions"

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("positions.id", ondelete="CASCADE"), nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    position: Mapped["Position"] = relationship("Position", lazy="joined")
    user: Mapped["User"] = relationship("User", lazy="joined")

    @property
    def position_title(self) -> Optional[str]:
        return self.position.title if self.position is not None else None

    @property
    def user_email(self) -> Optional[str]:
        return self.user.email if self.user is not None else None

    @property
    def user_full_name(self) -> Optional[str]:
        return self.user.full_name if self.user is not None else None
