import threading
from typing import Dict

_locks_guard = threading.Lock()
_provider_locks: Dict[str, threading.Lock] = {}


def provider_lock(provider_id: str) -> threading.Lock:
    """Serializes the validate-then-write commit path per provider in this process.

    Locks are never evicted; the registry holds one entry per provider seen
    by the process, so it is bounded by the number of providers.
    """
    with _locks_guard:
        return _provider_locks.setdefault(provider_id, threading.Lock())
