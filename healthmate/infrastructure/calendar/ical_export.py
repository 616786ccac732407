"""
Calendar export

Read-only mirror of committed appointments into iCalendar documents.
"""

from datetime import datetime
from typing import Iterable

from icalendar import Calendar, Event

from ...application.ports.appointments_repo import AppointmentDto
from ...core.config import settings
from ...scheduling.lifecycle import AppointmentStatus

EXPORTABLE_STATUSES = frozenset({
    AppointmentStatus.APPROVED.value,
    AppointmentStatus.RESCHEDULE_REQUESTED.value,
    AppointmentStatus.COMPLETED.value,
})


def is_exportable(appointment: AppointmentDto) -> bool:
    return appointment.status in EXPORTABLE_STATUSES


def _new_calendar() -> Calendar:
    cal = Calendar()
    cal.add('prodid', settings.CALENDAR_PRODID)
    cal.add('version', '2.0')
    cal.add('calscale', 'GREGORIAN')
    cal.add('method', 'PUBLISH')
    return cal


def _event_for(appointment: AppointmentDto, provider_name: str = None) -> Event:
    event = Event()
    event.add('uid', f"appointment-{appointment.id}@{settings.CALENDAR_UID_DOMAIN}")
    event.add('dtstamp', datetime.utcnow())
    event.add('dtstart', appointment.scheduled_at)
    event.add('dtend', appointment.ends_at)
    event.add('summary', f"Appointment with {provider_name}" if provider_name else "Medical appointment")
    if appointment.notes:
        event.add('description', appointment.notes)
    if appointment.location:
        event.add('location', appointment.location)
    return event


def export_appointments(appointments: Iterable[AppointmentDto], provider_names: dict = None) -> str:
    """Render the exportable appointments as one iCalendar document."""
    provider_names = provider_names or {}
    cal = _new_calendar()
    for appointment in appointments:
        if not is_exportable(appointment):
            continue
        cal.add_component(_event_for(appointment, provider_names.get(appointment.provider_id)))
    return cal.to_ical().decode('utf-8')
