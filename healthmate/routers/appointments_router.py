from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from datetime import date
import logging

from ..application.ports.appointments_repo import AppointmentDto
from ..application.services.appointments_service import AppointmentsService
from ..exceptions import NotFoundError, ValidationError
from ..infrastructure.calendar.ical_export import export_appointments
from ..schemas.appointments.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    LifecycleEventResponse,
    RescheduleRequest,
    TransitionRequest,
)
from ..schemas.common.common import ErrorResponse
from ..scheduling.lifecycle import Action, Actor, Role, TransitionPayload
from .dependencies import get_actor, get_appointments_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)

ICS_MEDIA_TYPE = "text/calendar"


def _to_response(a: AppointmentDto) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        requester_id=a.requester_id,
        provider_id=a.provider_id,
        scheduled_at=a.scheduled_at,
        ends_at=a.ends_at,
        duration_minutes=a.duration_minutes,
        status=a.status,
        requested_by=a.requested_by,
        requested_date_change=a.requested_date_change,
        notes=a.notes,
        location=a.location,
        report_notes=a.report_notes,
        cancellation_reason=a.cancellation_reason,
        canceled_by=a.canceled_by,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


def _visible_appointment(appt_service: AppointmentsService, appointment_id: int, actor: Actor) -> AppointmentDto:
    appt = appt_service.get_appointment(appointment_id)
    party = appt.provider_id if actor.role == Role.PROVIDER else appt.requester_id
    if party != actor.actor_id:
        raise NotFoundError("Appointment not found")
    return appt


@router.post("", response_model=AppointmentResponse)
def request_appointment(
    appointment_data: AppointmentCreate,
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    if actor.role != Role.REQUESTER:
        raise ValidationError("Only requesters can request appointments")
    appt = appt_service.request_appointment(
        actor.actor_id,
        appointment_data.provider_id,
        appointment_data.scheduled_at,
        notes=appointment_data.notes,
        location=appointment_data.location,
        duration_minutes=appointment_data.duration_minutes,
    )
    return _to_response(appt)


@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    status: Optional[str] = Query(default=None),
    day: Optional[date] = Query(default=None, alias="date"),
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return [_to_response(a) for a in appt_service.list_for_actor(actor, status, day)]


@router.get("/calendar.ics")
def export_calendar(
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appts = appt_service.list_for_actor(actor)
    body = export_appointments(appts, _provider_names(appt_service, appts))
    return Response(content=body, media_type=ICS_MEDIA_TYPE)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return _to_response(_visible_appointment(appt_service, appointment_id, actor))


@router.post("/{appointment_id}/transitions", response_model=AppointmentResponse)
def transition_appointment(
    appointment_id: int,
    transition: TransitionRequest,
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    payload = TransitionPayload(
        notes=transition.notes,
        reason=transition.reason,
        proposed_at=transition.proposed_at,
    )
    appt = appt_service.transition(appointment_id, transition.action, actor, payload)
    return _to_response(appt)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def propose_reschedule(
    appointment_id: int,
    reschedule: RescheduleRequest,
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.transition(
        appointment_id,
        Action.PROPOSE_RESCHEDULE,
        actor,
        TransitionPayload(proposed_at=reschedule.proposed_at),
    )
    return _to_response(appt)


@router.post("/{appointment_id}/reschedule/accept", response_model=AppointmentResponse)
def accept_reschedule(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return _to_response(appt_service.transition(appointment_id, Action.ACCEPT_RESCHEDULE, actor))


@router.post("/{appointment_id}/reschedule/reject", response_model=AppointmentResponse)
def reject_reschedule(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return _to_response(appt_service.transition(appointment_id, Action.REJECT_RESCHEDULE, actor))


@router.get("/{appointment_id}/events", response_model=List[LifecycleEventResponse])
def list_events(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    _visible_appointment(appt_service, appointment_id, actor)
    return [
        LifecycleEventResponse(
            id=e.id,
            appointment_id=e.appointment_id,
            action=e.action,
            from_status=e.from_status,
            to_status=e.to_status,
            actor_id=e.actor_id,
            timestamp=e.timestamp,
        )
        for e in appt_service.events_for(appointment_id)
    ]


@router.get("/{appointment_id}/calendar.ics")
def export_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = _visible_appointment(appt_service, appointment_id, actor)
    body = export_appointments([appt], _provider_names(appt_service, [appt]))
    return Response(content=body, media_type=ICS_MEDIA_TYPE)


def _provider_names(appt_service: AppointmentsService, appts: List[AppointmentDto]) -> dict:
    names = {}
    for provider_id in {a.provider_id for a in appts}:
        provider = appt_service.availability.repo.get_provider(provider_id)
        if provider:
            names[provider_id] = provider.name
    return names
