# healthmate/db/models/scheduling/availability.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, date, time

class AvailabilityRule(SQLModel, table=True):
    __tablename__ = "availability_rules"
    id: Optional[int] = Field(default=None, primary_key=True)
    provider_id: str = Field(foreign_key="providers.id", index=True)
    kind: str = Field(max_length=16)  # "recurring" | "exception"
    weekday: Optional[int] = Field(default=None, index=True)  # 0 = Monday
    exception_date: Optional[date] = Field(default=None, index=True)
    start_time: Optional[time] = Field(default=None)
    end_time: Optional[time] = Field(default=None)
    is_available: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
