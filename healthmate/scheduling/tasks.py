"""
Scheduled Tasks

Background tasks that run periodically:
- sweep_no_shows: marks overdue approved appointments as no_show
"""

import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session

from ..exceptions import ConflictError, InvalidTransitionError
from .lifecycle import Action, SYSTEM_ACTOR, TransitionPayload

logger = logging.getLogger(__name__)


def sweep_no_shows(service, now: Optional[datetime] = None, grace_hours: float = 5) -> int:
    """
    Transition approved appointments nobody reported on to no_show.

    Algorithm:
        1. Find approved appointments with scheduled_at + duration + grace <= now
           and no report notes
        2. Transition each through the lifecycle as the system actor
        3. Skip (and log) appointments changed concurrently

    Only approved appointments are selected, so running the sweep again
    leaves already-swept appointments alone.

    Returns:
        int: number of appointments marked no_show
    """
    now = now or service.clock()
    swept = 0

    for appointment in service.find_overdue(now, grace_hours):
        try:
            service.transition(
                appointment.id,
                Action.MARK_NO_SHOW,
                SYSTEM_ACTOR,
                TransitionPayload(),
            )
            swept += 1
        except (ConflictError, InvalidTransitionError) as e:
            logger.warning(f"Skipping no-show sweep for appointment {appointment.id}: {e.detail}")
            continue

    if swept > 0:
        logger.info(f"sweep_no_shows: {swept} appointments marked no_show")

    return swept


def run_no_show_sweep() -> int:
    """Entry point for the periodic runner: one session, one sweep."""
    from ..application.factory import build_appointments_service
    from ..core.config import settings
    from ..database import engine

    with Session(engine) as session:
        service = build_appointments_service(session, settings)
        return sweep_no_shows(service, grace_hours=settings.NO_SHOW_GRACE_HOURS)
