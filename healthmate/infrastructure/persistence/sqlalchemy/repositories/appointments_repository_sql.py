from typing import Any, Dict, List, Optional
from datetime import date, datetime, time, timedelta
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import Appointment, AppointmentEvent
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    LifecycleEvent,
    NewAppointment,
)
from .....exceptions import ConflictError
from .....scheduling.lifecycle import SLOT_RELEASING_STATUSES

logger = logging.getLogger(__name__)

_RELEASED = [s.value for s in SLOT_RELEASING_STATUSES]
# Appointments never last longer than this; bounds the overlap query
_MAX_LOOKBACK = timedelta(days=1)


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            requester_id=a.requester_id,
            provider_id=a.provider_id,
            scheduled_at=a.scheduled_at,
            duration_minutes=a.duration_minutes,
            status=a.status,
            requested_by=a.requested_by,
            requested_date_change=a.requested_date_change,
            notes=a.notes,
            location=a.location,
            report_notes=a.report_notes,
            cancellation_reason=a.cancellation_reason,
            canceled_by=a.canceled_by,
            version=a.version,
            created_at=a.created_at,
            updated_at=a.updated_at,
        )

    def _event_to_dto(self, e: AppointmentEvent) -> LifecycleEvent:
        return LifecycleEvent(
            id=e.id,
            appointment_id=e.appointment_id,
            action=e.action,
            from_status=e.from_status,
            to_status=e.to_status,
            actor_id=e.actor_id,
            timestamp=e.occurred_at,
            dispatched=bool(e.dispatched),
        )

    def _event_row(self, appointment_id: int, event: LifecycleEvent) -> AppointmentEvent:
        return AppointmentEvent(
            appointment_id=appointment_id,
            action=event.action,
            from_status=event.from_status,
            to_status=event.to_status,
            actor_id=event.actor_id,
            occurred_at=event.timestamp,
        )

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
        return self._appt_to_dto(a) if a else None

    def list_active_for_provider(self, provider_id: str, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> List[AppointmentDto]:
        query = (
            select(Appointment)
            .where(Appointment.provider_id == provider_id)
            .where(Appointment.status.not_in(_RELEASED))
            .where(Appointment.scheduled_at < end)
            .where(Appointment.scheduled_at >= start - _MAX_LOOKBACK)
        )
        if exclude_id is not None:
            query = query.where(Appointment.id != exclude_id)
        rows = self.session.exec(query.order_by(Appointment.scheduled_at)).all()
        appts = [self._appt_to_dto(r) for r in rows]
        return [a for a in appts if a.ends_at > start]

    def list_active_for_requester_on(self, requester_id: str, day: date, statuses: List[str], exclude_id: Optional[int] = None) -> List[AppointmentDto]:
        day_start = datetime.combine(day, time.min)
        query = (
            select(Appointment)
            .where(Appointment.requester_id == requester_id)
            .where(Appointment.status.in_(statuses))
            .where(Appointment.scheduled_at >= day_start)
            .where(Appointment.scheduled_at < day_start + timedelta(days=1))
        )
        if exclude_id is not None:
            query = query.where(Appointment.id != exclude_id)
        return [self._appt_to_dto(r) for r in self.session.exec(query).all()]

    def list_for_requester(self, requester_id: str, status: Optional[str] = None) -> List[AppointmentDto]:
        query = select(Appointment).where(Appointment.requester_id == requester_id)
        if status:
            query = query.where(Appointment.status == status)
        rows = self.session.exec(query.order_by(Appointment.scheduled_at)).all()
        return [self._appt_to_dto(r) for r in rows]

    def list_for_provider(self, provider_id: str, status: Optional[str] = None, day: Optional[date] = None) -> List[AppointmentDto]:
        query = select(Appointment).where(Appointment.provider_id == provider_id)
        if status:
            query = query.where(Appointment.status == status)
        if day:
            day_start = datetime.combine(day, time.min)
            query = (
                query.where(Appointment.scheduled_at >= day_start)
                .where(Appointment.scheduled_at < day_start + timedelta(days=1))
            )
        rows = self.session.exec(query.order_by(Appointment.scheduled_at)).all()
        return [self._appt_to_dto(r) for r in rows]

    def list_by_status_before(self, status: str, scheduled_before: datetime) -> List[AppointmentDto]:
        rows = self.session.exec(
            select(Appointment)
            .where(Appointment.status == status)
            .where(Appointment.scheduled_at <= scheduled_before)
            .order_by(Appointment.scheduled_at)
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def create(self, data: NewAppointment, status: str, event: LifecycleEvent) -> AppointmentDto:
        appt = Appointment(
            requester_id=data.requester_id,
            provider_id=data.provider_id,
            scheduled_at=data.scheduled_at,
            duration_minutes=data.duration_minutes,
            status=status,
            requested_by=data.requested_by,
            notes=data.notes,
            location=data.location,
            created_at=event.timestamp,
            updated_at=event.timestamp,
        )
        try:
            self.session.add(appt)
            self.session.flush()
            self.session.add(self._event_row(appt.id, event))
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Slot {data.provider_id}@{data.scheduled_at} taken concurrently: {e.orig}")
            raise ConflictError("This time slot is already booked")
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def apply_transition(self, appointment_id: int, expected_version: int, changes: Dict[str, Any], event: LifecycleEvent) -> AppointmentDto:
        values = dict(changes)
        values["version"] = expected_version + 1
        values["updated_at"] = event.timestamp
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.version == expected_version)
            .values(**values)
        )
        try:
            result = self.session.connection().execute(stmt)
            if result.rowcount != 1:
                self.session.rollback()
                raise ConflictError("The appointment was changed by someone else; reload and retry")
            self.session.add(self._event_row(appointment_id, event))
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Transition of appointment {appointment_id} hit the slot guarantee: {e.orig}")
            raise ConflictError("This time slot is already booked")
        self.session.expire_all()
        return self.get_by_id(appointment_id)

    def list_events(self, appointment_id: int) -> List[LifecycleEvent]:
        rows = self.session.exec(
            select(AppointmentEvent)
            .where(AppointmentEvent.appointment_id == appointment_id)
            .order_by(AppointmentEvent.id)
        ).all()
        return [self._event_to_dto(r) for r in rows]

    def list_undispatched_events(self, limit: int = 100) -> List[LifecycleEvent]:
        rows = self.session.exec(
            select(AppointmentEvent)
            .where(AppointmentEvent.dispatched == False)  # noqa: E712
            .order_by(AppointmentEvent.id)
            .limit(limit)
        ).all()
        return [self._event_to_dto(r) for r in rows]

    def mark_event_dispatched(self, event_id: int) -> None:
        e = self.session.get(AppointmentEvent, event_id)
        if not e:
            return
        e.dispatched = True
        self.session.add(e)
        self.session.commit()
