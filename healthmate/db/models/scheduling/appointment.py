# healthmate/db/models/scheduling/appointment.py
from typing import Optional
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field
from datetime import datetime

# Statuses that release the provider's slot
_ACTIVE_SLOT = "status NOT IN ('cancelled', 'rejected')"

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "uq_appointments_active_provider_slot",
            "provider_id",
            "scheduled_at",
            unique=True,
            sqlite_where=text(_ACTIVE_SLOT),
            postgresql_where=text(_ACTIVE_SLOT),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    requester_id: str = Field(index=True, max_length=64)
    provider_id: str = Field(foreign_key="providers.id", index=True)
    scheduled_at: datetime = Field(index=True)
    duration_minutes: int
    status: str = Field(default="pending", index=True, max_length=32)
    requested_by: Optional[str] = Field(default=None, max_length=64)
    requested_date_change: Optional[datetime] = Field(default=None)
    notes: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=255)
    report_notes: Optional[str] = Field(default=None)
    cancellation_reason: Optional[str] = Field(default=None)
    canceled_by: Optional[str] = Field(default=None, max_length=64)
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
