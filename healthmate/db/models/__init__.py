# Models package (re-export feature modules for stable imports)
from .scheduling.provider import Provider
from .scheduling.availability import AvailabilityRule
from .scheduling.appointment import Appointment
from .scheduling.event import AppointmentEvent

__all__ = [
    "Provider",
    "AvailabilityRule",
    "Appointment",
    "AppointmentEvent",
]
