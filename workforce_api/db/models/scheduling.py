from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workforce_api.db.base import Base, UUIDPkMixin, TimestampMixin, TenantMixin


class Schedule(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """A named schedule period holding shifts; DRAFT until published."""
    __tablename__ = "schedules"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    timezone: Mapped[str] = mapped_column(
        Text, nullable=False, default="America/New_York", server_default=text("'America/New_York'")
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="DRAFT", server_default=text("'DRAFT'"))
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    published_by_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_by_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    metadata_: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, default=dict)


class Station(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """A work station of the business (grill, register, front desk) that shifts are staffed at."""
    __tablename__ = "stations"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_stations_tenant_name"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    station_type: Mapped[str] = mapped_column(Text, nullable=False)
    job_function: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    priority: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    default_start_time: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # HH:MM
    default_end_time: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # HH:MM


class ScheduleShift(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """
    One shift slot. Unassigned slots are open (is_open_shift, status OPEN) and
    can be claimed by employees holding the required position.
    """
    __tablename__ = "schedule_shifts"
    __table_args__ = (
        Index("ix_schedule_shifts_tenant_start_time", "tenant_id", "start_time"),
        Index("ix_schedule_shifts_employee_start_time", "employee_position_id", "start_time"),
    )

    schedule_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    employee_position_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employee_positions.id", ondelete="SET NULL"), nullable=True
    )
    position_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("positions.id", ondelete="SET NULL"), nullable=True
    )
    station_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("stations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    break_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    station_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_open_shift: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="SCHEDULED", server_default=text("'SCHEDULED'"))

    schedule: Mapped["Schedule"] = relationship("Schedule", lazy="joined")


class EmployeeAvailability(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Weekly availability window declared by an employee."""
    __tablename__ = "employee_availability"

    employee_position_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employee_positions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[str] = mapped_column(Text, nullable=False)
    start_time: Mapped[str] = mapped_column(Text, nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(Text, nullable=False)  # HH:MM
    availability_type: Mapped[str] = mapped_column(
        Text, nullable=False, default="AVAILABLE", server_default=text("'AVAILABLE'")
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ShiftSwapRequest(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Request by a shift owner to hand the shift to someone else."""
    __tablename__ = "shift_swap_requests"

    original_shift_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schedule_shifts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    requested_by_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    requested_to_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING", server_default=text("'PENDING'"))
    approved_by_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
