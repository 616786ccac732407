# healthmate/db/models/scheduling/provider.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime

class Provider(SQLModel, table=True):
    __tablename__ = "providers"
    id: str = Field(primary_key=True, max_length=64)
    name: str = Field(max_length=100)
    specialization: Optional[str] = Field(default=None, max_length=100)
    slot_duration_minutes: int = Field(default=30)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
