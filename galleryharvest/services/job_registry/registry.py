from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .cancellation import _InMemoryJobCancellationFlags


@dataclass(frozen=True)
class JobHandle:
    job_id: str
    cancel_event: threading.Event

    def should_cancel(self) -> bool:
        return self.cancel_event.is_set()


class InMemoryJobRegistry:
    """Thread-safe registry of cancel flags for the jobs running in this process.

    The flag is the only state shared between the request threads that cancel
    a job and the worker thread running it. Workers that already hold a
    handle keep observing their event after `finish` drops the mapping.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._flags = _InMemoryJobCancellationFlags()

    def register(self, job_id: str) -> JobHandle:
        with self._lock:
            return JobHandle(job_id=job_id, cancel_event=self._flags.create(job_id))

    def is_registered(self, job_id: str) -> bool:
        with self._lock:
            return self._flags.get(job_id) is not None

    def is_cancelled(self, job_id: str) -> bool:
        with self._lock:
            ev = self._flags.get(job_id)
            return bool(ev and ev.is_set())

    def cancel(self, job_id: str) -> bool:
        """Set the job's cancel flag. Returns False for jobs not running here."""
        with self._lock:
            return self._flags.request_cancel(job_id)

    def should_cancel(self, job_id: str) -> Callable[[], bool]:
        with self._lock:
            ev = self._flags.create(job_id)
        return ev.is_set

    def finish(self, job_id: str) -> None:
        with self._lock:
            self._flags.discard(job_id)

    def cancel_all(self) -> List[str]:
        with self._lock:
            ids = self._flags.active_ids()
            for job_id in ids:
                self._flags.request_cancel(job_id)
            return ids

    def list_active(self) -> List[str]:
        with self._lock:
            return self._flags.active_ids()

    def get_event(self, job_id: str) -> Optional[threading.Event]:
        with self._lock:
            return self._flags.get(job_id)
