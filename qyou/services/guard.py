import threading
from contextlib import contextmanager
from typing import Set

from qyou.services.errors import ActionInProgress


class ActionGuard:
    """
    Process-local set of keys with an action in flight.

    A second ``hold`` on the same key while the first is still running is
    rejected instead of queued, so a double-submitted save cannot race itself.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: Set[str] = set()

    @contextmanager
    def hold(self, key: str):
        key = str(key)
        with self._lock:
            if key in self._keys:
                raise ActionInProgress()
            self._keys.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._keys.discard(key)

    def busy(self, key: str) -> bool:
        with self._lock:
            return str(key) in self._keys


profile_saves = ActionGuard()
registrations = ActionGuard()
