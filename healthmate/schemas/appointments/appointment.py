# healthmate/schemas/appointments/appointment.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from ...scheduling.lifecycle import Action

class AppointmentCreate(BaseModel):
    provider_id: str
    scheduled_at: datetime
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)

class AppointmentResponse(BaseModel):
    id: int
    requester_id: str
    provider_id: str
    scheduled_at: datetime
    ends_at: datetime
    duration_minutes: int
    status: str
    requested_by: Optional[str] = None
    requested_date_change: Optional[datetime] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    report_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    canceled_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class TransitionRequest(BaseModel):
    action: Action
    notes: Optional[str] = Field(default=None, max_length=2000)
    reason: Optional[str] = Field(default=None, max_length=500)
    proposed_at: Optional[datetime] = None

class RescheduleRequest(BaseModel):
    proposed_at: datetime

class LifecycleEventResponse(BaseModel):
    id: Optional[int] = None
    appointment_id: int
    action: str
    from_status: Optional[str] = None
    to_status: str
    actor_id: str
    timestamp: datetime
