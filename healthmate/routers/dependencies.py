from fastapi import Depends, Header
from sqlmodel import Session

from ..application.factory import build_appointments_service, build_availability_service
from ..application.services.appointments_service import AppointmentsService
from ..application.services.availability_service import AvailabilityService
from ..database import get_session
from ..exceptions import ValidationError
from ..scheduling.lifecycle import Actor, Role

# Roles a caller may claim over HTTP; the system role belongs to the sweep
_HTTP_ROLES = {Role.REQUESTER.value, Role.PROVIDER.value}


def get_actor(
    x_actor_id: str = Header(..., alias="X-Actor-Id"),
    x_actor_role: str = Header(..., alias="X-Actor-Role"),
) -> Actor:
    """Resolve the caller from headers set by the authenticating gateway."""
    actor_id = x_actor_id.strip()
    role = x_actor_role.strip().lower()
    if not actor_id:
        raise ValidationError("X-Actor-Id header is empty")
    if role not in _HTTP_ROLES:
        raise ValidationError(f"Invalid X-Actor-Role: {x_actor_role}")
    return Actor(actor_id, Role(role))


def get_availability_service(session: Session = Depends(get_session)) -> AvailabilityService:
    return build_availability_service(session)


def get_appointments_service(session: Session = Depends(get_session)) -> AppointmentsService:
    return build_appointments_service(session)
