from __future__ import annotations

import threading
from typing import Dict, Optional


class _InMemoryJobCancellationFlags:
    """Set-once cancel flags keyed by job id. Callers hold the registry lock."""

    def __init__(self, *, event_factory=threading.Event):
        self._event_factory = event_factory
        self._events: Dict[str, threading.Event] = {}

    def create(self, job_id: str) -> threading.Event:
        ev = self._events.get(job_id)
        if ev is None:
            ev = self._event_factory()
            self._events[job_id] = ev
        return ev

    def get(self, job_id: str) -> Optional[threading.Event]:
        return self._events.get(job_id)

    def request_cancel(self, job_id: str) -> bool:
        ev = self._events.get(job_id)
        if not ev:
            return False
        ev.set()
        return True

    def discard(self, job_id: str) -> Optional[threading.Event]:
        return self._events.pop(job_id, None)

    def active_ids(self):
        return list(self._events)
