from dataclasses import dataclass
from typing import Callable, List, Optional
from datetime import datetime, date, time, timedelta
import logging

from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, LifecycleEvent, NewAppointment
from ..ports.notifier import LifecycleNotifier
from .availability_service import AvailabilityService
from .conflict_validator import ConflictValidator
from .reschedule_service import RescheduleCoordinator
from ...exceptions import InvalidTransitionError, NotFoundError, ValidationError
from ...scheduling.lifecycle import (
    Action,
    Actor,
    AppointmentStatus,
    Role,
    TransitionPayload,
    TransitionPlan,
    plan_transition,
)
from ...scheduling.locks import provider_lock
from ...scheduling.policy import require_local
from ...scheduling.slots import Slot, generate_slots

logger = logging.getLogger(__name__)


@dataclass
class AppointmentsService:
    repo: AppointmentsRepository
    availability: AvailabilityService
    validator: ConflictValidator
    notifier: LifecycleNotifier
    default_lead_time_hours: int = 24
    max_notes_length: int = 500
    min_location_length: int = 5
    clock: Callable[[], datetime] = datetime.now

    def __post_init__(self):
        self.reschedule = RescheduleCoordinator(self)

    def get_slots(self, provider_id: str, target_date: date, duration_minutes: Optional[int] = None, lead_time_hours: Optional[float] = None) -> List[Slot]:
        provider = self.availability.get_provider(provider_id)
        duration = duration_minutes or provider.slot_duration_minutes
        self.availability.check_duration(duration)
        lead = self.default_lead_time_hours if lead_time_hours is None else lead_time_hours

        day_start = datetime.combine(target_date, time.min)
        day_end = day_start + timedelta(days=1)
        booked = [
            (a.scheduled_at, a.ends_at)
            for a in self.repo.list_active_for_provider(provider_id, day_start, day_end)
        ]
        windows = self.availability.windows_for(provider_id, target_date)
        slots = generate_slots(provider_id, windows, duration, lead, self.clock(), booked)
        # Offer only slots that can pass the business-hours check at commit time
        return [s for s in slots if self.validator.policy.check_hours(s.start) is None]

    def request_appointment(self, requester_id: str, provider_id: str, start: datetime, notes: Optional[str] = None, location: Optional[str] = None, duration_minutes: Optional[int] = None) -> AppointmentDto:
        if not requester_id:
            raise ValidationError("Requester id is required")
        if notes and len(notes) > self.max_notes_length:
            raise ValidationError(f"Notes cannot exceed {self.max_notes_length} characters")
        if location is not None and len(location.strip()) < self.min_location_length:
            raise ValidationError(f"Location must have at least {self.min_location_length} characters")
        require_local(start)

        provider = self.availability.get_provider(provider_id)
        duration = duration_minutes or provider.slot_duration_minutes
        self.availability.check_duration(duration)

        with provider_lock(provider_id):
            now = self.clock()
            self.validator.ensure_valid(provider_id, requester_id, start, duration, now)
            event = LifecycleEvent(
                appointment_id=0,
                action=Action.REQUEST.value,
                from_status=None,
                to_status=AppointmentStatus.PENDING.value,
                actor_id=requester_id,
                timestamp=now,
            )
            appt = self.repo.create(
                NewAppointment(
                    requester_id=requester_id,
                    provider_id=provider_id,
                    scheduled_at=start,
                    duration_minutes=duration,
                    requested_by=requester_id,
                    notes=notes,
                    location=location.strip() if location else None,
                ),
                AppointmentStatus.PENDING.value,
                event,
            )

        logger.info(f"Appointment {appt.id} requested by {requester_id} with provider {provider_id} at {start}")
        self.dispatch_pending_events()
        return appt

    def transition(self, appointment_id: int, action, actor: Actor, payload: Optional[TransitionPayload] = None) -> AppointmentDto:
        try:
            action = Action(action)
        except ValueError:
            raise InvalidTransitionError(f"Unknown action: {action!r}")
        payload = payload or TransitionPayload()

        if action == Action.PROPOSE_RESCHEDULE:
            return self.reschedule.request_change(appointment_id, payload.proposed_at, actor)
        if action == Action.ACCEPT_RESCHEDULE:
            return self.reschedule.accept_change(appointment_id, actor)
        if action == Action.REJECT_RESCHEDULE:
            return self.reschedule.reject_change(appointment_id, actor)

        now = self.clock()
        appt = self.get_appointment(appointment_id)
        plan = plan_transition(appt, action, actor, payload, now)
        return self.commit(appt, plan, actor, now)

    def commit(self, appt: AppointmentDto, plan: TransitionPlan, actor: Actor, now: datetime) -> AppointmentDto:
        event = LifecycleEvent(
            appointment_id=appt.id,
            action=plan.action.value,
            from_status=plan.from_status.value,
            to_status=plan.to_status.value,
            actor_id=actor.actor_id,
            timestamp=now,
        )
        updated = self.repo.apply_transition(appt.id, appt.version, plan.changes, event)
        logger.info(
            f"Appointment {appt.id}: {plan.from_status.value} -> {plan.to_status.value} "
            f"({plan.action.value} by {actor.actor_id})"
        )
        self.dispatch_pending_events()
        return updated

    def dispatch_pending_events(self) -> int:
        """Publish outbox events in order; a failure leaves the rest for the next call."""
        dispatched = 0
        for event in self.repo.list_undispatched_events():
            try:
                self.notifier.publish(event)
            except Exception as e:
                logger.error(f"Error publishing lifecycle event {event.id}: {e}")
                break
            self.repo.mark_event_dispatched(event.id)
            dispatched += 1
        return dispatched

    def get_appointment(self, appointment_id: int) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFoundError("Appointment not found")
        return appt

    def list_for_requester(self, requester_id: str, status: Optional[str] = None) -> List[AppointmentDto]:
        return self.repo.list_for_requester(requester_id, status)

    def list_for_provider(self, provider_id: str, status: Optional[str] = None, day: Optional[date] = None) -> List[AppointmentDto]:
        return self.repo.list_for_provider(provider_id, status, day)

    def list_for_actor(self, actor: Actor, status: Optional[str] = None, day: Optional[date] = None) -> List[AppointmentDto]:
        if actor.role == Role.PROVIDER:
            return self.list_for_provider(actor.actor_id, status, day)
        appts = self.list_for_requester(actor.actor_id, status)
        if day:
            appts = [a for a in appts if a.scheduled_at.date() == day]
        return appts

    def events_for(self, appointment_id: int) -> List[LifecycleEvent]:
        self.get_appointment(appointment_id)
        return self.repo.list_events(appointment_id)

    def find_overdue(self, now: datetime, grace_hours: float) -> List[AppointmentDto]:
        """Approved appointments past end + grace with no outcome notes."""
        grace = timedelta(hours=grace_hours)
        candidates = self.repo.list_by_status_before(AppointmentStatus.APPROVED.value, now - grace)
        return [a for a in candidates if a.ends_at + grace <= now and not a.report_notes]
