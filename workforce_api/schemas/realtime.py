from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WsEnvelope(BaseModel):
    """Envelope for WebSocket messages."""
    type: str = Field(..., description="Message type (e.g., 'scheduling.shift.claimed').")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Message payload.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp (UTC).")
    user_id: Optional[UUID] = Field(default=None, description="Sender user id, if applicable.")
    channel: Optional[str] = Field(default=None, description="Optional sub-channel.")


class SchedulingEvent(BaseModel):
    """Scheduling change pushed to the business's subscribers."""
    event: str = Field(..., description="Event type (e.g., 'shift.created', 'shift.claimed', 'schedule.published').")
    details: Dict[str, Any] = Field(default_factory=dict, description="Event details.")
    schedule_id: Optional[UUID] = Field(default=None, description="Related schedule id, if applicable.")
    shift_id: Optional[UUID] = Field(default=None, description="Related shift id, if applicable.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Event timestamp (UTC).")
    user_id: Optional[UUID] = Field(default=None, description="Initiating user id, if known.")
