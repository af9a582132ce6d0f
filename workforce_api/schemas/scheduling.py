from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from workforce_api.core.enums import ScheduleStatus, ShiftStatus
from .common import IDModel, Timestamps


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with timestamptz columns."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Schedules

class ScheduleCreate(BaseModel):
    """Create schedule payload."""
    name: str = Field(..., min_length=1, description="Schedule name, e.g. 'Week 12'")
    description: Optional[str] = Field(None)
    start_date: date = Field(..., description="First day covered")
    end_date: date = Field(..., description="Last day covered; not before start_date")
    timezone: Optional[str] = Field(None, description="IANA timezone; defaults to the service default")


class ScheduleUpdate(BaseModel):
    """Partial schedule update."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None)
    start_date: Optional[date] = Field(None)
    end_date: Optional[date] = Field(None)
    timezone: Optional[str] = Field(None)
    status: Optional[ScheduleStatus] = Field(None, description="DRAFT or ARCHIVED; use publish to publish")


class ScheduleClone(BaseModel):
    """Copy a schedule into a new period; shifts move by the start-date difference."""
    name: str = Field(..., min_length=1, description="Name of the new schedule")
    start_date: date = Field(..., description="First day of the new schedule")
    end_date: date = Field(..., description="Last day of the new schedule; not before start_date")


class ScheduleRead(IDModel, Timestamps):
    """Schedule read model."""
    name: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    timezone: str
    status: str
    published_at: Optional[datetime] = None
    published_by_id: Optional[UUID] = None
    created_by_id: Optional[UUID] = None

    class Config:
        from_attributes = True


# Shifts

class ShiftCreate(BaseModel):
    """Create shift payload. Without employee_position_id the shift is created open."""
    schedule_id: UUID = Field(..., description="Owning schedule")
    title: str = Field(..., min_length=1)
    start_time: datetime = Field(..., description="Shift start (timezone-aware; naive values are UTC)")
    end_time: datetime = Field(..., description="Shift end; after start_time")
    employee_position_id: Optional[UUID] = Field(None, description="Assignee; omit for an open shift")
    position_id: Optional[UUID] = Field(None, description="Position required to work/claim the shift")
    station_id: Optional[UUID] = Field(None, description="Station the shift is staffed at")
    break_minutes: Optional[int] = Field(None, ge=0)
    station_name: Optional[str] = Field(None, description="Defaults to the station's name")
    notes: Optional[str] = Field(None)
    color: Optional[str] = Field(None)

    @field_validator("start_time", "end_time")
    @classmethod
    def _times_as_utc(cls, v):
        return as_utc(v)


class ShiftUpdate(BaseModel):
    """Partial shift update. Setting employee_position_id to null reopens the shift."""
    title: Optional[str] = Field(None, min_length=1)
    start_time: Optional[datetime] = Field(None)
    end_time: Optional[datetime] = Field(None)
    employee_position_id: Optional[UUID] = Field(None)
    position_id: Optional[UUID] = Field(None)
    station_id: Optional[UUID] = Field(None)
    break_minutes: Optional[int] = Field(None, ge=0)
    station_name: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    color: Optional[str] = Field(None)
    status: Optional[ShiftStatus] = Field(None, description="OPEN only while unassigned; SCHEDULED/FILLED only while assigned")

    @field_validator("start_time", "end_time")
    @classmethod
    def _times_as_utc(cls, v):
        return as_utc(v)


class ShiftAssign(BaseModel):
    """Manager assignment of an employee to a shift."""
    employee_position_id: UUID = Field(..., description="Employee position to assign")


class ShiftRead(IDModel, Timestamps):
    """Shift read model."""
    schedule_id: UUID
    employee_position_id: Optional[UUID] = None
    position_id: Optional[UUID] = None
    station_id: Optional[UUID] = None
    title: str
    start_time: datetime
    end_time: datetime
    break_minutes: Optional[int] = None
    station_name: Optional[str] = None
    notes: Optional[str] = None
    color: Optional[str] = None
    is_open_shift: bool
    status: str

    class Config:
        from_attributes = True


# Stations

class StationCreate(BaseModel):
    """Create station payload. Default times are validated as HH:MM by the service."""
    name: str = Field(..., min_length=1, description="Unique within the business")
    station_type: str = Field(..., min_length=1, description="e.g. BOH, FOH, REGISTER")
    job_function: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    color: Optional[str] = Field(None)
    is_required: bool = Field(False, description="Station must be staffed on every shift day")
    priority: Optional[int] = Field(None, description="Higher values are listed first")
    default_start_time: Optional[str] = Field(None, description="HH:MM, 24-hour")
    default_end_time: Optional[str] = Field(None, description="HH:MM, 24-hour")


class StationUpdate(BaseModel):
    """Partial station update; empty default times clear them."""
    name: Optional[str] = Field(None, min_length=1)
    station_type: Optional[str] = Field(None, min_length=1)
    job_function: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    color: Optional[str] = Field(None)
    is_required: Optional[bool] = Field(None)
    priority: Optional[int] = Field(None)
    is_active: Optional[bool] = Field(None)
    default_start_time: Optional[str] = Field(None)
    default_end_time: Optional[str] = Field(None)


class StationRead(IDModel, Timestamps):
    """Station read model."""
    name: str
    station_type: str
    job_function: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    is_required: bool
    priority: Optional[int] = None
    is_active: bool
    default_start_time: Optional[str] = None
    default_end_time: Optional[str] = None

    class Config:
        from_attributes = True


# Availability

class AvailabilityCreate(BaseModel):
    """
    Availability window for the caller.

    Day and type are validated case-insensitively by the service so that a
    bad value yields the standard 400 error envelope with the offending field.
    """
    day_of_week: str = Field(..., description="MONDAY..SUNDAY")
    start_time: str = Field(..., description="HH:MM, 24-hour")
    end_time: str = Field(..., description="HH:MM, 24-hour; after start_time")
    availability_type: str = Field("AVAILABLE", description="AVAILABLE | UNAVAILABLE | PREFERRED")
    effective_from: Optional[date] = Field(None, description="Defaults to today")
    effective_to: Optional[date] = Field(None)
    recurring: bool = Field(True)
    notes: Optional[str] = Field(None)


class AvailabilityUpdate(BaseModel):
    """Partial availability update."""
    day_of_week: Optional[str] = Field(None)
    start_time: Optional[str] = Field(None)
    end_time: Optional[str] = Field(None)
    availability_type: Optional[str] = Field(None)
    effective_from: Optional[date] = Field(None)
    effective_to: Optional[date] = Field(None)
    recurring: Optional[bool] = Field(None)
    notes: Optional[str] = Field(None)


class AvailabilityRead(IDModel, Timestamps):
    """Availability read model."""
    employee_position_id: UUID
    day_of_week: str
    start_time: str
    end_time: str
    availability_type: str
    effective_from: date
    effective_to: Optional[date] = None
    recurring: bool
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# Swaps

class SwapRequestCreate(BaseModel):
    """Request to hand one of the caller's shifts to someone else."""
    original_shift_id: UUID = Field(..., description="Caller's shift to give away")
    requested_to_id: Optional[UUID] = Field(None, description="User asked to take the shift")
    covered_shift_id: Optional[UUID] = Field(None, description="Shift the caller offers to cover in return")
    reason: Optional[str] = Field(None)


class SwapDecision(BaseModel):
    """Manager decision on a swap request."""
    notes: Optional[str] = Field(None, description="Appended to the request reason")


class SwapRead(IDModel, Timestamps):
    """Swap request read model."""
    original_shift_id: UUID
    requested_by_id: UUID
    requested_to_id: Optional[UUID] = None
    reason: Optional[str] = None
    status: str
    approved_by_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True
