"""
Appointment lifecycle

The status state machine. TRANSITIONS is the only place status edges are
defined; plan_transition checks an action against it, against who is acting,
and against the per-edge preconditions, and returns the field changes to
commit. Nothing here touches storage.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import InvalidTransitionError, ValidationError


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"
    RESCHEDULE_REQUESTED = "reschedule_requested"


class Action(str, Enum):
    REQUEST = "request"
    APPROVE = "approve"
    REJECT = "reject"
    COMPLETE = "complete"
    MARK_NO_SHOW = "mark_no_show"
    CANCEL = "cancel"
    PROPOSE_RESCHEDULE = "propose_reschedule"
    ACCEPT_RESCHEDULE = "accept_reschedule"
    REJECT_RESCHEDULE = "reject_reschedule"


class Role(str, Enum):
    REQUESTER = "requester"
    PROVIDER = "provider"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    actor_id: str
    role: Role


SYSTEM_ACTOR = Actor("system", Role.SYSTEM)

TERMINAL_STATUSES = frozenset({
    AppointmentStatus.REJECTED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
    AppointmentStatus.CANCELLED,
})

# Statuses whose slot is free for new bookings
SLOT_RELEASING_STATUSES = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.REJECTED,
})

# One of these per requester per calendar day
DAY_BLOCKING_STATUSES = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.APPROVED,
})

TRANSITIONS: Dict[tuple, AppointmentStatus] = {
    (AppointmentStatus.PENDING, Action.APPROVE): AppointmentStatus.APPROVED,
    (AppointmentStatus.PENDING, Action.REJECT): AppointmentStatus.REJECTED,
    (AppointmentStatus.APPROVED, Action.COMPLETE): AppointmentStatus.COMPLETED,
    (AppointmentStatus.APPROVED, Action.MARK_NO_SHOW): AppointmentStatus.NO_SHOW,
    (AppointmentStatus.APPROVED, Action.CANCEL): AppointmentStatus.CANCELLED,
    (AppointmentStatus.APPROVED, Action.PROPOSE_RESCHEDULE): AppointmentStatus.RESCHEDULE_REQUESTED,
    (AppointmentStatus.RESCHEDULE_REQUESTED, Action.ACCEPT_RESCHEDULE): AppointmentStatus.APPROVED,
    (AppointmentStatus.RESCHEDULE_REQUESTED, Action.REJECT_RESCHEDULE): AppointmentStatus.APPROVED,
}

_PROVIDER_ONLY = frozenset({Action.APPROVE, Action.REJECT, Action.COMPLETE})


@dataclass
class TransitionPayload:
    notes: Optional[str] = None
    reason: Optional[str] = None
    proposed_at: Optional[datetime] = None


@dataclass
class TransitionPlan:
    action: Action
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    changes: Dict[str, Any] = field(default_factory=dict)


def next_status(current: str, action: Action) -> AppointmentStatus:
    try:
        key = (AppointmentStatus(current), Action(action))
    except ValueError:
        raise InvalidTransitionError(f"Unknown status or action: {current!r}, {action!r}")
    if key not in TRANSITIONS:
        raise InvalidTransitionError(f"Cannot {key[1].value} an appointment that is {key[0].value}")
    return TRANSITIONS[key]


def check_actor(appointment, action: Action, actor: Actor) -> None:
    if actor.role == Role.SYSTEM:
        if action != Action.MARK_NO_SHOW:
            raise InvalidTransitionError(f"System actor cannot {action.value}")
        return

    if actor.role == Role.PROVIDER:
        is_party = actor.actor_id == appointment.provider_id
    else:
        is_party = actor.actor_id == appointment.requester_id
    if not is_party:
        raise InvalidTransitionError("Actor is not a party to this appointment")

    if (action in _PROVIDER_ONLY or action == Action.MARK_NO_SHOW) and actor.role != Role.PROVIDER:
        raise InvalidTransitionError(f"Only the provider can {action.value}")

    if action == Action.ACCEPT_RESCHEDULE and actor.actor_id == appointment.requested_by:
        raise InvalidTransitionError("A reschedule must be accepted by the other party")


def _require_text(value: Optional[str], what: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{what} is required")
    return value.strip()


def plan_transition(
    appointment,
    action: Action,
    actor: Actor,
    payload: Optional[TransitionPayload],
    now: datetime,
) -> TransitionPlan:
    """
    Validate an action and compute its field changes.

    Raises InvalidTransitionError for an edge missing from TRANSITIONS, a
    disallowed actor, or a precondition on time; ValidationError for a
    missing payload field. The appointment itself is never modified.
    """
    try:
        action = Action(action)
    except ValueError:
        raise InvalidTransitionError(f"Unknown action: {action!r}")
    payload = payload or TransitionPayload()
    to_status = next_status(appointment.status, action)
    check_actor(appointment, action, actor)

    changes: Dict[str, Any] = {"status": to_status.value}

    if action in (Action.COMPLETE, Action.MARK_NO_SHOW):
        if now < appointment.scheduled_at:
            raise InvalidTransitionError(f"Cannot {action.value} before the appointment starts")
        if action == Action.COMPLETE:
            changes["report_notes"] = _require_text(payload.notes, "Report notes")
        elif payload.notes:
            changes["report_notes"] = payload.notes.strip()

    elif action == Action.CANCEL:
        changes["cancellation_reason"] = _require_text(payload.reason, "Cancellation reason")
        changes["canceled_by"] = actor.actor_id

    elif action == Action.PROPOSE_RESCHEDULE:
        if payload.proposed_at is None:
            raise ValidationError("A proposed date is required")
        changes["requested_date_change"] = payload.proposed_at
        changes["requested_by"] = actor.actor_id

    elif action == Action.ACCEPT_RESCHEDULE:
        if appointment.requested_date_change is None:
            raise InvalidTransitionError("No reschedule has been proposed")
        changes["scheduled_at"] = appointment.requested_date_change
        changes["requested_date_change"] = None

    elif action == Action.REJECT_RESCHEDULE:
        changes["requested_date_change"] = None

    return TransitionPlan(
        action=action,
        from_status=AppointmentStatus(appointment.status),
        to_status=to_status,
        changes=changes,
    )
