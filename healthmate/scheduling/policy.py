"""
Booking policy

Global business-hours rules and the rejection reasons produced when a
proposed slot fails validation.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple

from ..exceptions import APIException, AvailabilityError, ConflictError, ValidationError


def require_local(value: Optional[datetime], what: str = "Appointment time") -> None:
    """Times are naive clinic-local; an offset cannot be compared with the clock."""
    if value is not None and value.tzinfo is not None:
        raise ValidationError(f"{what} must be a local time without a timezone offset")


class RejectionCode(str, Enum):
    WEEKEND = "weekend"
    OUTSIDE_BUSINESS_HOURS = "outside_business_hours"
    INSUFFICIENT_LEAD_TIME = "insufficient_lead_time"
    OUTSIDE_AVAILABILITY = "outside_availability"
    SLOT_TAKEN = "slot_taken"
    REQUESTER_BUSY = "requester_has_appointment"


_ERRORS = {
    RejectionCode.WEEKEND: ValidationError,
    RejectionCode.OUTSIDE_BUSINESS_HOURS: ValidationError,
    RejectionCode.INSUFFICIENT_LEAD_TIME: ValidationError,
    RejectionCode.OUTSIDE_AVAILABILITY: AvailabilityError,
    RejectionCode.SLOT_TAKEN: ConflictError,
    RejectionCode.REQUESTER_BUSY: ValidationError,
}


@dataclass(frozen=True)
class Rejection:
    code: RejectionCode
    message: str

    def to_error(self) -> APIException:
        return _ERRORS[self.code](self.message)


@dataclass(frozen=True)
class BusinessHoursPolicy:
    open_hour: int = 8
    close_hour: int = 18
    weekend_days: Tuple[int, ...] = (5, 6)
    min_lead_time_hours: int = 24

    @classmethod
    def from_settings(cls, settings) -> "BusinessHoursPolicy":
        return cls(
            open_hour=settings.BUSINESS_HOURS_START,
            close_hour=settings.BUSINESS_HOURS_END,
            weekend_days=tuple(settings.WEEKEND_DAYS),
            min_lead_time_hours=settings.MIN_LEAD_TIME_HOURS,
        )

    def check_hours(self, start: datetime) -> Optional[Rejection]:
        if start.weekday() in self.weekend_days:
            return Rejection(RejectionCode.WEEKEND, "Appointments cannot be scheduled on weekends")
        if not (self.open_hour <= start.hour < self.close_hour):
            return Rejection(
                RejectionCode.OUTSIDE_BUSINESS_HOURS,
                f"Appointments must start between {self.open_hour:02d}:00 and {self.close_hour:02d}:00",
            )
        return None

    def check(self, start: datetime, now: datetime) -> Optional[Rejection]:
        rejection = self.check_hours(start)
        if rejection:
            return rejection
        if start < now + timedelta(hours=self.min_lead_time_hours):
            return Rejection(
                RejectionCode.INSUFFICIENT_LEAD_TIME,
                f"Appointments must be booked at least {self.min_lead_time_hours} hours in advance",
            )
        return None
