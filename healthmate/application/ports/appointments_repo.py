from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol
from datetime import datetime, date, timedelta


@dataclass
class AppointmentDto:
    id: int
    requester_id: str
    provider_id: str
    scheduled_at: datetime
    duration_minutes: int
    status: str
    requested_by: Optional[str]
    requested_date_change: Optional[datetime]
    notes: Optional[str]
    location: Optional[str]
    report_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    canceled_by: Optional[str] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)


@dataclass
class LifecycleEvent:
    appointment_id: int
    action: str
    from_status: Optional[str]
    to_status: str
    actor_id: str
    timestamp: datetime
    id: Optional[int] = None
    dispatched: bool = False


@dataclass
class NewAppointment:
    requester_id: str
    provider_id: str
    scheduled_at: datetime
    duration_minutes: int
    requested_by: str
    notes: Optional[str]
    location: Optional[str]


class AppointmentsRepository(Protocol):
    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        ...

    def list_active_for_provider(self, provider_id: str, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> List[AppointmentDto]:
        """Non-cancelled, non-rejected appointments intersecting [start, end)."""
        ...

    def list_active_for_requester_on(self, requester_id: str, day: date, statuses: List[str], exclude_id: Optional[int] = None) -> List[AppointmentDto]:
        ...

    def list_for_requester(self, requester_id: str, status: Optional[str] = None) -> List[AppointmentDto]:
        ...

    def list_for_provider(self, provider_id: str, status: Optional[str] = None, day: Optional[date] = None) -> List[AppointmentDto]:
        ...

    def list_by_status_before(self, status: str, scheduled_before: datetime) -> List[AppointmentDto]:
        ...

    def create(self, data: NewAppointment, status: str, event: LifecycleEvent) -> AppointmentDto:
        """Insert the appointment and its creation event atomically.

        Raises ConflictError when the storage uniqueness guarantee rejects the slot.
        """
        ...

    def apply_transition(self, appointment_id: int, expected_version: int, changes: Dict[str, Any], event: LifecycleEvent) -> AppointmentDto:
        """Update the appointment and append event atomically.

        Raises ConflictError on a uniqueness violation or when the row no
        longer has expected_version.
        """
        ...

    def list_events(self, appointment_id: int) -> List[LifecycleEvent]:
        ...

    def list_undispatched_events(self, limit: int = 100) -> List[LifecycleEvent]:
        ...

    def mark_event_dispatched(self, event_id: int) -> None:
        ...
