# healthmate/db/models/scheduling/event.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime

class AppointmentEvent(SQLModel, table=True):
    """Outbox row written in the same transaction as the appointment change."""
    __tablename__ = "appointment_events"
    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: int = Field(foreign_key="appointments.id", index=True)
    action: str = Field(max_length=32)
    from_status: Optional[str] = Field(default=None, max_length=32)
    to_status: str = Field(max_length=32)
    actor_id: str = Field(max_length=64)
    occurred_at: datetime
    dispatched: bool = Field(default=False, index=True)
