"""
Recurring background jobs.

A :class:`RecurringJob` runs its callable on a single daemon thread, so
two runs of the same job never overlap.  A failing run is logged and the
next one is still scheduled.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

from django.conf import settings

logger = logging.getLogger(__name__)

SELF_DISCLOSURE_JOB_ID = "self-disclosure-export"

_jobs: Dict[str, "RecurringJob"] = {}
_jobs_lock = threading.Lock()


class RecurringJob:
    def __init__(self, job_id: str, interval_seconds: float, func: Callable[[], object]):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job_id = job_id
        self.interval_seconds = interval_seconds
        self.func = func
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> bool:
        """Run the job a single time; returns ``False`` if it raised."""
        try:
            self.func()
        except Exception:
            logger.exception("Recurring job '%s' failed", self.job_id)
            return False
        return True

    def _loop(self):
        while not self._stop.wait(self.interval_seconds):
            self.run_once()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"job-{self.job_id}", daemon=True)
        self._thread.start()
        logger.info("Scheduled recurring job '%s' every %ss", self.job_id, self.interval_seconds)

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def schedule_self_disclosure_export(export_service=None) -> RecurringJob:
    """Register and start the self disclosure export (idempotent per process)."""
    from erezept.services.self_disclosure_export import SelfDisclosureExportService

    with _jobs_lock:
        job = _jobs.get(SELF_DISCLOSURE_JOB_ID)
        if job is None:
            export_service = export_service or SelfDisclosureExportService()
            job = RecurringJob(
                SELF_DISCLOSURE_JOB_ID,
                export_service.export_interval_seconds,
                export_service.export_self_disclosure,
            )
            _jobs[SELF_DISCLOSURE_JOB_ID] = job
        job.start()
        return job


def start_scheduler():
    if not getattr(settings, "SELF_DISCLOSURE_SCHEDULER_ENABLED", True):
        logger.info("Self disclosure scheduler disabled")
        return None
    return schedule_self_disclosure_export()
