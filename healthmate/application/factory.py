from sqlmodel import Session

from .ports.notifier import LifecycleNotifier
from .services.appointments_service import AppointmentsService
from .services.availability_service import AvailabilityService
from .services.conflict_validator import ConflictValidator
from ..core.config import Settings, settings as default_settings
from ..infrastructure.notifications.log_notifier import LogLifecycleNotifier
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.availability_repository_sql import SqlAvailabilityRepository
from ..scheduling.policy import BusinessHoursPolicy


def build_availability_service(session: Session, settings: Settings = None) -> AvailabilityService:
    settings = settings or default_settings
    return AvailabilityService(
        repo=SqlAvailabilityRepository(session),
        default_slot_duration_minutes=settings.DEFAULT_SLOT_DURATION_MINUTES,
        max_slot_duration_minutes=settings.MAX_SLOT_DURATION_MINUTES,
    )


def build_appointments_service(session: Session, settings: Settings = None, notifier: LifecycleNotifier = None) -> AppointmentsService:
    settings = settings or default_settings
    availability = build_availability_service(session, settings)
    repo = SqlAppointmentsRepository(session)
    validator = ConflictValidator(
        availability=availability,
        repo=repo,
        policy=BusinessHoursPolicy.from_settings(settings),
    )
    return AppointmentsService(
        repo=repo,
        availability=availability,
        validator=validator,
        notifier=notifier or LogLifecycleNotifier(),
        default_lead_time_hours=settings.MIN_LEAD_TIME_HOURS,
        max_notes_length=settings.MAX_NOTES_LENGTH,
        min_location_length=settings.MIN_LOCATION_LENGTH,
    )
