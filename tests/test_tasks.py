from datetime import date, datetime, time

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from healthmate.application.factory import build_appointments_service
from healthmate.core.config import Settings
from healthmate.database import create_db_and_tables
from healthmate.scheduling.lifecycle import Action, Actor, Role, TransitionPayload
from healthmate.scheduling.tasks import sweep_no_shows

MONDAY = date(2024, 1, 1)
PROVIDER = Actor("p1", Role.PROVIDER)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def at(hour, minute=0, day=MONDAY):
    return datetime.combine(day, time(hour, minute))


def make_service(session, clock):
    svc = build_appointments_service(session, Settings())
    svc.clock = clock
    svc.availability.register_provider("p1", "Dr. Silva")
    svc.availability.set_recurring_rule("p1", 0, time(8), time(18))
    return svc


def memory_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(bind=engine)
    return Session(engine)


def test_sweep_marks_overdue_and_is_idempotent():
    clock = Clock(datetime(2023, 12, 29, 9, 0))
    with memory_session() as session:
        svc = make_service(session, clock)
        appt = svc.request_appointment("r1", "p1", at(10))
        svc.transition(appt.id, Action.APPROVE, PROVIDER)

        clock.now = at(15, 30)
        assert sweep_no_shows(svc, grace_hours=5) == 1
        swept = svc.get_appointment(appt.id)
        assert swept.status == "no_show"
        assert svc.events_for(appt.id)[-1].actor_id == "system"

        assert sweep_no_shows(svc, grace_hours=5) == 0
        assert svc.get_appointment(appt.id) == swept


def test_sweep_waits_for_grace_window():
    clock = Clock(datetime(2023, 12, 29, 9, 0))
    with memory_session() as session:
        svc = make_service(session, clock)
        appt = svc.request_appointment("r1", "p1", at(10))
        svc.transition(appt.id, Action.APPROVE, PROVIDER)

        clock.now = at(15, 0)
        assert sweep_no_shows(svc, grace_hours=5) == 0
        assert svc.get_appointment(appt.id).status == "approved"


def test_sweep_leaves_other_statuses_alone():
    clock = Clock(datetime(2023, 12, 29, 9, 0))
    with memory_session() as session:
        svc = make_service(session, clock)
        pending = svc.request_appointment("r1", "p1", at(10))
        done = svc.request_appointment("r2", "p1", at(11))
        svc.transition(done.id, Action.APPROVE, PROVIDER)

        clock.now = at(11, 45)
        svc.transition(done.id, Action.COMPLETE, PROVIDER, TransitionPayload(notes="Checked"))

        clock.now = at(23, 0)
        assert sweep_no_shows(svc, grace_hours=5) == 0
        assert svc.get_appointment(pending.id).status == "pending"
        assert svc.get_appointment(done.id).status == "completed"
