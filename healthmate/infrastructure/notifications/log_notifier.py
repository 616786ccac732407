import json
import logging

from ...application.ports.appointments_repo import LifecycleEvent
from ...application.ports.notifier import LifecycleNotifier


class LogLifecycleNotifier(LifecycleNotifier):
    """Default notifier: writes each lifecycle event as one JSON log line.

    Message delivery (push, e-mail) belongs to an external consumer reading
    these events; nothing here talks to users.
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def publish(self, event: LifecycleEvent) -> None:
        entry = {
            "event_id": event.id,
            "appointment_id": event.appointment_id,
            "action": event.action,
            "from_status": event.from_status,
            "to_status": event.to_status,
            "actor_id": event.actor_id,
            "timestamp": event.timestamp.isoformat(),
        }
        self._logger.info(f"LIFECYCLE: {json.dumps(entry)}")
