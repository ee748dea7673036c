import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from galleryharvest.services.staging_cache import StagingCache

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "staging_cache_sweep"


class CacheSweeper:
    """Periodically removes staged images older than `max_age_hours`."""

    def __init__(self, staging_cache: StagingCache, interval_seconds: int = 3600, max_age_hours: float = 24):
        self.staging_cache = staging_cache
        self.interval_seconds = interval_seconds
        self.max_age_hours = max_age_hours
        self._sched: Optional[BackgroundScheduler] = None

    def start(self):
        if self._sched is not None:
            return
        if self.interval_seconds <= 0:
            logger.info("Staging cache sweep disabled (interval=%s)", self.interval_seconds)
            return
        self._sched = BackgroundScheduler()
        self._sched.start()
        self._sched.add_job(
            self.sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=SWEEP_JOB_ID,
            replace_existing=True,
        )
        logger.info(
            "Sweeping staged images older than %sh every %s seconds",
            self.max_age_hours, self.interval_seconds,
        )

    def sweep(self, max_age_hours: Optional[float] = None) -> int:
        age = self.max_age_hours if max_age_hours is None else max_age_hours
        try:
            return self.staging_cache.cleanup_old_cache(max_age_hours=age)
        except Exception:
            logger.exception("Staging cache sweep failed")
            return 0

    def shutdown(self, wait: bool = True):
        if not self._sched:
            return
        try:
            self._sched.shutdown(wait=wait)
            logger.info("Cache sweeper shut down")
        finally:
            self._sched = None
