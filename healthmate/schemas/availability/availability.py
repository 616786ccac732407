# healthmate/schemas/availability/availability.py
from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import date, datetime, time
from enum import Enum

class RuleKindEnum(str, Enum):
    recurring = "recurring"
    exception = "exception"

class ProviderUpsert(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    specialization: Optional[str] = Field(default=None, max_length=100)
    slot_duration_minutes: Optional[int] = Field(default=None, gt=0)
    is_active: bool = True

class ProviderResponse(BaseModel):
    id: str
    name: str
    specialization: Optional[str] = None
    slot_duration_minutes: int
    is_active: bool

class AvailabilityRuleCreate(BaseModel):
    kind: RuleKindEnum
    weekday: Optional[int] = Field(default=None, ge=0, le=6)  # 0 = Monday
    exception_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_available: bool = True
    replace: bool = True  # recurring only: replace the weekday's windows

    @model_validator(mode="after")
    def check_kind_fields(self):
        if self.kind == RuleKindEnum.recurring and self.weekday is None:
            raise ValueError("weekday is required for recurring rules")
        if self.kind == RuleKindEnum.exception and self.exception_date is None:
            raise ValueError("exception_date is required for exceptions")
        return self

class AvailabilityRuleResponse(BaseModel):
    id: int
    provider_id: str
    kind: str
    weekday: Optional[int] = None
    exception_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_available: bool

class WindowResponse(BaseModel):
    start: datetime
    end: datetime

class SlotResponse(BaseModel):
    provider_id: str
    start: datetime
    end: datetime
    duration_minutes: int
