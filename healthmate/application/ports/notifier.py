from typing import Protocol

from .appointments_repo import LifecycleEvent


class LifecycleNotifier(Protocol):
    def publish(self, event: LifecycleEvent) -> None:
        ...
