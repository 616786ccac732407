from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone

import pytest

from healthmate.application.ports.appointments_repo import AppointmentDto
from healthmate.application.ports.availability_repo import AvailabilityRuleDto, ProviderDto
from healthmate.application.services.appointments_service import AppointmentsService
from healthmate.application.services.availability_service import AvailabilityService
from healthmate.application.services.conflict_validator import ConflictValidator
from healthmate.exceptions import (
    AvailabilityError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from healthmate.scheduling.lifecycle import Action, Actor, Role, TransitionPayload
from healthmate.scheduling.policy import BusinessHoursPolicy

MONDAY = date(2024, 1, 1)
FRIDAY_BEFORE = datetime(2023, 12, 29, 9, 0)

PROVIDER = Actor("p1", Role.PROVIDER)
REQUESTER = Actor("r1", Role.REQUESTER)


def at(hour, minute=0, day=MONDAY):
    return datetime.combine(day, time(hour, minute))


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class FakeAvailabilityRepo:
    def __init__(self):
        self.providers = {}
        self.rules = []

    def get_provider(self, provider_id):
        return self.providers.get(provider_id)

    def save_provider(self, provider):
        self.providers[provider.id] = provider
        return provider

    def list_rules(self, provider_id):
        return [r for r in self.rules if r.provider_id == provider_id]

    def rules_for_date(self, provider_id, target_date):
        return [
            r for r in self.list_rules(provider_id)
            if r.kind == "recurring" and r.weekday == target_date.weekday()
        ]

    def replace_rules(self, remove_ids, rule):
        self.rules = [r for r in self.rules if r.id not in remove_ids]
        saved = replace(rule, id=len(self.rules) + 100)
        self.rules.append(saved)
        return saved


class FakeAppointmentsRepo:
    def __init__(self):
        self._id = 1
        self.appts = {}
        self.events = []

    def get_by_id(self, appointment_id):
        a = self.appts.get(appointment_id)
        return replace(a) if a else None

    def _active(self):
        return [a for a in self.appts.values() if a.status not in ("cancelled", "rejected")]

    def list_active_for_provider(self, provider_id, start, end, exclude_id=None):
        return [
            replace(a) for a in self._active()
            if a.provider_id == provider_id and a.id != exclude_id
            and a.scheduled_at < end and start < a.ends_at
        ]

    def list_active_for_requester_on(self, requester_id, day, statuses, exclude_id=None):
        return [
            replace(a) for a in self.appts.values()
            if a.requester_id == requester_id and a.status in statuses
            and a.scheduled_at.date() == day and a.id != exclude_id
        ]

    def list_for_requester(self, requester_id, status=None):
        return [replace(a) for a in self.appts.values() if a.requester_id == requester_id and (not status or a.status == status)]

    def list_for_provider(self, provider_id, status=None, day=None):
        return [
            replace(a) for a in self.appts.values()
            if a.provider_id == provider_id and (not status or a.status == status)
            and (not day or a.scheduled_at.date() == day)
        ]

    def list_by_status_before(self, status, scheduled_before):
        return [replace(a) for a in self.appts.values() if a.status == status and a.scheduled_at <= scheduled_before]

    def create(self, data, status, event):
        a = AppointmentDto(
            id=self._id,
            requester_id=data.requester_id,
            provider_id=data.provider_id,
            scheduled_at=data.scheduled_at,
            duration_minutes=data.duration_minutes,
            status=status,
            requested_by=data.requested_by,
            requested_date_change=None,
            notes=data.notes,
            location=data.location,
        )
        self.appts[a.id] = a
        self._id += 1
        self._record(a.id, event)
        return replace(a)

    def apply_transition(self, appointment_id, expected_version, changes, event):
        a = self.appts[appointment_id]
        if a.version != expected_version:
            raise ConflictError("The appointment was changed by someone else; reload and retry")
        self.appts[appointment_id] = replace(a, version=a.version + 1, **changes)
        self._record(appointment_id, event)
        return replace(self.appts[appointment_id])

    def _record(self, appointment_id, event):
        self.events.append(replace(event, appointment_id=appointment_id, id=len(self.events) + 1))

    def list_events(self, appointment_id):
        return [e for e in self.events if e.appointment_id == appointment_id]

    def list_undispatched_events(self, limit=100):
        return [e for e in self.events if not e.dispatched][:limit]

    def mark_event_dispatched(self, event_id):
        for e in self.events:
            if e.id == event_id:
                e.dispatched = True


class RecordingNotifier:
    def __init__(self, fail=False):
        self.fail = fail
        self.published = []

    def publish(self, event):
        if self.fail:
            raise RuntimeError("broker down")
        self.published.append(event)


def make_service(now=FRIDAY_BEFORE, notifier=None):
    availability = AvailabilityService(repo=FakeAvailabilityRepo())
    availability.repo.save_provider(ProviderDto("p1", "Dr. Silva", None, 30, True))
    for weekday in range(5):
        availability.repo.rules.append(
            AvailabilityRuleDto(weekday, "p1", "recurring", weekday, None, time(8), time(18), True)
        )
    repo = FakeAppointmentsRepo()
    validator = ConflictValidator(availability=availability, repo=repo, policy=BusinessHoursPolicy())
    return AppointmentsService(
        repo=repo,
        availability=availability,
        validator=validator,
        notifier=notifier or RecordingNotifier(),
        clock=Clock(now),
    )


def test_slots_empty_when_every_slot_is_inside_lead_time():
    svc = make_service(now=at(7))
    assert svc.get_slots("p1", MONDAY) == []


def test_slots_use_provider_duration():
    svc = make_service()
    slots = svc.get_slots("p1", MONDAY)
    assert len(slots) == 20
    assert slots[0].start == at(8)
    assert slots[-1].end == at(18)


def test_slots_for_unknown_provider_not_found():
    with pytest.raises(NotFoundError):
        make_service().get_slots("nobody", MONDAY)


def test_request_creates_pending_and_hides_slot():
    svc = make_service()
    appt = svc.request_appointment("r1", "p1", at(10), notes="Tooth ache", location="Main clinic")
    assert appt.status == "pending"
    assert appt.requested_by == "r1"
    assert appt.duration_minutes == 30
    assert at(10) not in [s.start for s in svc.get_slots("p1", MONDAY)]


def test_request_validation():
    svc = make_service()
    with pytest.raises(ValidationError):
        svc.request_appointment("r1", "p1", at(10), notes="x" * 501)
    with pytest.raises(ValidationError):
        svc.request_appointment("r1", "p1", at(10), location="  ab  ")
    with pytest.raises(ValidationError):
        svc.request_appointment("r1", "p1", at(10), duration_minutes=481)
    with pytest.raises(AvailabilityError):
        svc.request_appointment("r1", "p1", at(17, 45), duration_minutes=60)


def test_double_booking_rejected():
    svc = make_service()
    svc.request_appointment("r1", "p1", at(10))
    with pytest.raises(ConflictError):
        svc.request_appointment("r2", "p1", at(10))
    with pytest.raises(ConflictError):
        svc.request_appointment("r3", "p1", at(9, 45))


def test_rejected_slot_offered_again():
    svc = make_service()
    appt = svc.request_appointment("r1", "p1", at(10))
    svc.transition(appt.id, Action.REJECT, PROVIDER)
    assert at(10) in [s.start for s in svc.get_slots("p1", MONDAY)]
    again = svc.request_appointment("r2", "p1", at(10))
    assert again.status == "pending"


def test_cancelled_slot_offered_again():
    svc = make_service()
    appt = svc.request_appointment("r1", "p1", at(10))
    svc.transition(appt.id, Action.APPROVE, PROVIDER)
    svc.transition(appt.id, "cancel", REQUESTER, TransitionPayload(reason="Feeling better"))
    assert at(10) in [s.start for s in svc.get_slots("p1", MONDAY)]


def test_failed_transition_leaves_state_unchanged():
    svc = make_service()
    appt = svc.request_appointment("r1", "p1", at(10))
    before = svc.get_appointment(appt.id)
    with pytest.raises(InvalidTransitionError):
        svc.transition(appt.id, Action.COMPLETE, PROVIDER, TransitionPayload(notes="done"))
    with pytest.raises(InvalidTransitionError):
        svc.transition(appt.id, "bogus", PROVIDER)
    assert svc.get_appointment(appt.id) == before
    assert len(svc.events_for(appt.id)) == 1


def test_complete_after_start():
    svc = make_service()
    appt = svc.request_appointment("r1", "p1", at(10))
    svc.transition(appt.id, Action.APPROVE, PROVIDER)
    svc.clock.now = at(10, 40)
    done = svc.transition(appt.id, Action.COMPLETE, PROVIDER, TransitionPayload(notes="Filling placed"))
    assert done.status == "completed"
    assert done.report_notes == "Filling placed"


def test_every_transition_emits_an_event():
    notifier = RecordingNotifier()
    svc = make_service(notifier=notifier)
    appt = svc.request_appointment("r1", "p1", at(10))
    svc.transition(appt.id, Action.APPROVE, PROVIDER)
    events = svc.events_for(appt.id)
    assert [(e.from_status, e.to_status, e.actor_id) for e in events] == [
        (None, "pending", "r1"),
        ("pending", "approved", "p1"),
    ]
    assert [e.action for e in notifier.published] == ["request", "approve"]


def test_notifier_failure_keeps_event_for_replay():
    notifier = RecordingNotifier(fail=True)
    svc = make_service(notifier=notifier)
    appt = svc.request_appointment("r1", "p1", at(10))
    assert appt.status == "pending"
    assert len(svc.repo.list_undispatched_events()) == 1

    notifier.fail = False
    assert svc.dispatch_pending_events() == 1
    assert svc.repo.list_undispatched_events() == []


def test_list_for_actor():
    svc = make_service()
    svc.request_appointment("r1", "p1", at(10))
    svc.request_appointment("r2", "p1", at(11))
    assert len(svc.list_for_actor(PROVIDER)) == 2
    assert len(svc.list_for_actor(REQUESTER)) == 1
    assert svc.list_for_actor(REQUESTER, day=MONDAY + timedelta(days=1)) == []


def test_find_overdue_respects_grace_and_notes():
    svc = make_service()
    appt = svc.request_appointment("r1", "p1", at(10))
    svc.transition(appt.id, Action.APPROVE, PROVIDER)
    assert svc.find_overdue(at(15, 29), 5) == []
    assert [a.id for a in svc.find_overdue(at(15, 30), 5)] == [appt.id]


def test_request_with_offset_rejected():
    svc = make_service()
    with pytest.raises(ValidationError):
        svc.request_appointment("r1", "p1", at(10).replace(tzinfo=timezone.utc))
    assert svc.list_for_requester("r1") == []
