from datetime import datetime

from icalendar import Calendar

from healthmate.application.ports.appointments_repo import AppointmentDto
from healthmate.infrastructure.calendar.ical_export import export_appointments


def appt(id, status, **kw):
    fields = dict(
        id=id,
        requester_id="r1",
        provider_id="p1",
        scheduled_at=datetime(2024, 1, 1, 10, 0),
        duration_minutes=45,
        status=status,
        requested_by="r1",
        requested_date_change=None,
        notes=None,
        location=None,
    )
    fields.update(kw)
    return AppointmentDto(**fields)


def test_exports_committed_appointments_only():
    body = export_appointments([
        appt(1, "approved", notes="Bring x-rays", location="Main clinic, room 4"),
        appt(2, "pending"),
        appt(3, "cancelled"),
        appt(4, "completed"),
    ], {"p1": "Dr. Silva"})

    cal = Calendar.from_ical(body)
    events = cal.walk("VEVENT")
    assert [str(e["uid"]).split("@")[0] for e in events] == ["appointment-1", "appointment-4"]

    first = events[0]
    assert first.decoded("dtstart") == datetime(2024, 1, 1, 10, 0)
    assert first.decoded("dtend") == datetime(2024, 1, 1, 10, 45)
    assert str(first["summary"]) == "Appointment with Dr. Silva"
    assert str(first["description"]) == "Bring x-rays"
    assert str(first["location"]) == "Main clinic, room 4"


def test_empty_calendar_is_still_a_document():
    body = export_appointments([appt(2, "rejected")])
    assert body.startswith("BEGIN:VCALENDAR")
    assert Calendar.from_ical(body).walk("VEVENT") == []
