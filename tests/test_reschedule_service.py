from datetime import date, datetime, time

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from healthmate.application.factory import build_appointments_service
from healthmate.core.config import Settings
from healthmate.database import create_db_and_tables
from healthmate.exceptions import ConflictError, InvalidTransitionError, ValidationError
from healthmate.scheduling.lifecycle import Action, Actor, Role, TransitionPayload

MONDAY = date(2024, 1, 1)
TUESDAY = date(2024, 1, 2)
NOW = datetime(2023, 12, 29, 9, 0)

PROVIDER = Actor("p1", Role.PROVIDER)
REQUESTER = Actor("r1", Role.REQUESTER)


def at(hour, minute=0, day=MONDAY):
    return datetime.combine(day, time(hour, minute))


@pytest.fixture
def svc():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(bind=engine)
    with Session(engine) as session:
        service = build_appointments_service(session, Settings())
        service.clock = lambda: NOW
        service.availability.register_provider("p1", "Dr. Silva")
        for weekday in range(5):
            service.availability.set_recurring_rule("p1", weekday, time(8), time(18))
        yield service


def approved(svc, requester="r1", start=None):
    appt = svc.request_appointment(requester, "p1", start or at(10))
    return svc.transition(appt.id, Action.APPROVE, PROVIDER)


def test_propose_and_accept_moves_appointment(svc):
    appt = approved(svc)
    proposed = svc.reschedule.request_change(appt.id, at(11, day=TUESDAY), PROVIDER)
    assert proposed.status == "reschedule_requested"
    assert proposed.requested_date_change == at(11, day=TUESDAY)
    assert proposed.requested_by == "p1"

    accepted = svc.reschedule.accept_change(appt.id, REQUESTER)
    assert accepted.status == "approved"
    assert accepted.scheduled_at == at(11, day=TUESDAY)
    assert accepted.requested_date_change is None
    assert at(10) in [s.start for s in svc.get_slots("p1", MONDAY)]


def test_propose_checks_business_hours_only(svc):
    appt = approved(svc)
    with pytest.raises(ValidationError):
        svc.reschedule.request_change(appt.id, datetime(2024, 1, 6, 10, 0), REQUESTER)
    with pytest.raises(ValidationError):
        svc.reschedule.request_change(appt.id, at(10), REQUESTER)
    # an occupied slot is accepted at proposal time
    approved(svc, requester="r2", start=at(14, day=TUESDAY))
    proposed = svc.reschedule.request_change(appt.id, at(14, day=TUESDAY), REQUESTER)
    assert proposed.status == "reschedule_requested"


def test_propose_requires_approved(svc):
    appt = svc.request_appointment("r1", "p1", at(10))
    with pytest.raises(InvalidTransitionError):
        svc.reschedule.request_change(appt.id, at(11, day=TUESDAY), REQUESTER)


def test_accept_fails_when_slot_taken_since_proposal(svc):
    appt = approved(svc)
    svc.reschedule.request_change(appt.id, at(14, day=TUESDAY), REQUESTER)
    approved(svc, requester="r2", start=at(14, day=TUESDAY))

    with pytest.raises(ConflictError):
        svc.reschedule.accept_change(appt.id, PROVIDER)

    current = svc.get_appointment(appt.id)
    assert current.status == "reschedule_requested"
    assert current.scheduled_at == at(10)
    assert current.requested_date_change == at(14, day=TUESDAY)


def test_proposer_cannot_accept_own_change(svc):
    appt = approved(svc)
    svc.reschedule.request_change(appt.id, at(11, day=TUESDAY), REQUESTER)
    with pytest.raises(InvalidTransitionError):
        svc.reschedule.accept_change(appt.id, REQUESTER)


def test_accept_ignores_the_appointment_being_moved(svc):
    appt = approved(svc)
    svc.reschedule.request_change(appt.id, at(10, 15), PROVIDER)
    moved = svc.reschedule.accept_change(appt.id, REQUESTER)
    assert moved.scheduled_at == at(10, 15)


def test_reject_keeps_original_time(svc):
    appt = approved(svc)
    svc.transition(appt.id, Action.PROPOSE_RESCHEDULE, REQUESTER, TransitionPayload(proposed_at=at(11, day=TUESDAY)))
    rejected = svc.transition(appt.id, Action.REJECT_RESCHEDULE, PROVIDER)
    assert rejected.status == "approved"
    assert rejected.scheduled_at == at(10)
    assert rejected.requested_date_change is None
    assert [e.action for e in svc.events_for(appt.id)] == [
        "request", "approve", "propose_reschedule", "reject_reschedule",
    ]
