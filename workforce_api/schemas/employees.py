from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import IDModel, Timestamps


class PositionCreate(BaseModel):
    """Create position payload."""
    title: str = Field(..., min_length=1, description="Position title, unique per business")
    department: Optional[str] = Field(None, description="Department name")
    description: Optional[str] = Field(None)


class PositionRead(IDModel, Timestamps):
    """Position read model."""
    title: str = Field(...)
    department: Optional[str] = Field(None)
    description: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class EmployeeAssign(BaseModel):
    """Assign a user of the business to a position."""
    user_id: UUID = Field(..., description="User to assign")
    position_id: UUID = Field(..., description="Position to hold")
    start_date: Optional[date] = Field(None, description="First day in the position")


class EmployeePositionRead(IDModel, Timestamps):
    """Employee (user holding a position) read model."""
    user_id: UUID = Field(...)
    position_id: UUID = Field(...)
    position_title: Optional[str] = Field(None)
    user_email: Optional[str] = Field(None)
    user_full_name: Optional[str] = Field(None)
    active: bool = Field(...)
    start_date: Optional[date] = Field(None)
    end_date: Optional[date] = Field(None)

    class Config:
        from_attributes = True
