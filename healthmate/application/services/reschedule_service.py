from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
from datetime import datetime
import logging

from ..ports.appointments_repo import AppointmentDto
from ...exceptions import ConflictError, ValidationError
from ...scheduling.lifecycle import Action, Actor, TransitionPayload, plan_transition
from ...scheduling.locks import provider_lock
from ...scheduling.policy import require_local

if TYPE_CHECKING:
    from .appointments_service import AppointmentsService

logger = logging.getLogger(__name__)


@dataclass
class RescheduleCoordinator:
    """Two-phase negotiation for moving an approved appointment.

    One party proposes a new time (cheap policy check only, since the other
    party has not agreed yet), the counterpart accepts (full validation
    against current bookings) or rejects (original time kept).
    """
    appointments: "AppointmentsService"

    def request_change(self, appointment_id: int, proposed_at: Optional[datetime], actor: Actor) -> AppointmentDto:
        require_local(proposed_at, "Proposed time")
        svc = self.appointments
        now = svc.clock()
        appt = svc.get_appointment(appointment_id)
        plan = plan_transition(appt, Action.PROPOSE_RESCHEDULE, actor, TransitionPayload(proposed_at=proposed_at), now)

        if proposed_at == appt.scheduled_at:
            raise ValidationError("The proposed date matches the current appointment date")
        rejection = svc.validator.policy.check(proposed_at, now)
        if rejection:
            raise rejection.to_error()

        logger.info(f"Reschedule of appointment {appointment_id} to {proposed_at} proposed by {actor.actor_id}")
        return svc.commit(appt, plan, actor, now)

    def accept_change(self, appointment_id: int, actor: Actor) -> AppointmentDto:
        svc = self.appointments
        appt = svc.get_appointment(appointment_id)

        with provider_lock(appt.provider_id):
            now = svc.clock()
            # Bookings may have changed since the proposal; re-read and re-validate
            appt = svc.get_appointment(appointment_id)
            plan = plan_transition(appt, Action.ACCEPT_RESCHEDULE, actor, None, now)
            rejection = svc.validator.validate(
                appt.provider_id,
                appt.requester_id,
                appt.requested_date_change,
                appt.duration_minutes,
                now,
                exclude_appointment_id=appt.id,
            )
            if rejection:
                logger.warning(f"Reschedule of appointment {appointment_id} rejected at acceptance: {rejection.message}")
                raise ConflictError(rejection.message)
            return svc.commit(appt, plan, actor, now)

    def reject_change(self, appointment_id: int, actor: Actor) -> AppointmentDto:
        svc = self.appointments
        now = svc.clock()
        appt = svc.get_appointment(appointment_id)
        plan = plan_transition(appt, Action.REJECT_RESCHEDULE, actor, None, now)
        return svc.commit(appt, plan, actor, now)