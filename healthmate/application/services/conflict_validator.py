from dataclasses import dataclass
from typing import Optional
from datetime import datetime, timedelta

from ..ports.appointments_repo import AppointmentsRepository
from .availability_service import AvailabilityService
from ...scheduling.lifecycle import DAY_BLOCKING_STATUSES
from ...scheduling.policy import BusinessHoursPolicy, Rejection, RejectionCode


@dataclass
class ConflictValidator:
    """Commit-time check of a chosen slot.

    Checks run in a fixed order and stop at the first failure:
        1. business hours and lead time
        2. provider availability windows
        3. overlap with the provider's active appointments
        4. one pending/approved appointment per requester per day
    """
    availability: AvailabilityService
    repo: AppointmentsRepository
    policy: BusinessHoursPolicy

    def validate(
        self,
        provider_id: str,
        requester_id: str,
        start: datetime,
        duration_minutes: int,
        now: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> Optional[Rejection]:
        end = start + timedelta(minutes=duration_minutes)

        rejection = self.policy.check(start, now)
        if rejection:
            return rejection

        windows = self.availability.windows_for(provider_id, start.date())
        if not any(w.contains(start, end) for w in windows):
            return Rejection(
                RejectionCode.OUTSIDE_AVAILABILITY,
                "The provider is not available at the requested time",
            )

        if self.repo.list_active_for_provider(provider_id, start, end, exclude_id=exclude_appointment_id):
            return Rejection(RejectionCode.SLOT_TAKEN, "This time slot is already booked")

        same_day = self.repo.list_active_for_requester_on(
            requester_id,
            start.date(),
            [s.value for s in DAY_BLOCKING_STATUSES],
            exclude_id=exclude_appointment_id,
        )
        if same_day:
            return Rejection(RejectionCode.REQUESTER_BUSY, "You already have an appointment on this day")

        return None

    def ensure_valid(self, provider_id: str, requester_id: str, start: datetime, duration_minutes: int, now: datetime, exclude_appointment_id: Optional[int] = None) -> None:
        rejection = self.validate(provider_id, requester_id, start, duration_minutes, now, exclude_appointment_id)
        if rejection:
            raise rejection.to_error()
