"""Periodic background tasks backed by APScheduler.

Task handlers are plain callables defined per process with ``define_task``.
The job store only records *which* task runs and how often, so registrations
persisted in the SQLAlchemy job store survive restarts and are picked up
again by whichever handler the new process defines.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler as APBackgroundScheduler

from .exceptions import TaskNotDefined


logger = logging.getLogger(__name__)


class BackgroundFetchResult(enum.Enum):
    NEW_DATA = "new_data"
    NO_DATA = "no_data"
    FAILED = "failed"


class BackgroundFetchStatus(enum.Enum):
    AVAILABLE = "available"
    RESTRICTED = "restricted"
    DENIED = "denied"


@dataclass(frozen=True)
class RegistrationStatus:
    available: BackgroundFetchStatus
    is_registered: bool


TaskHandler = Callable[[], BackgroundFetchResult]

_task_handlers: Dict[str, TaskHandler] = {}


def define_task(task_id: str, handler: TaskHandler) -> None:
    _task_handlers[task_id] = handler


def is_task_defined(task_id: str) -> bool:
    return task_id in _task_handlers


def clear_tasks() -> None:
    _task_handlers.clear()


def run_registered_task(task_id: str) -> BackgroundFetchResult:
    """Job entry point; referenced by name from persisted jobs."""
    handler = _task_handlers.get(task_id)
    if handler is None:
        logger.error("Background task %s fired but no handler is defined", task_id)
        return BackgroundFetchResult.FAILED
    try:
        result = handler()
    except Exception:
        logger.exception("Background task %s failed", task_id)
        return BackgroundFetchResult.FAILED
    logger.info("Background task %s finished: %s", task_id, result.value)
    return result


class BackgroundScheduler:
    def __init__(self, jobstore_url: Optional[str] = None, enabled: bool = True):
        if jobstore_url:
            jobstore = SQLAlchemyJobStore(url=jobstore_url)
        else:
            jobstore = MemoryJobStore()
        self.enabled = enabled
        self._scheduler = APBackgroundScheduler(
            jobstores={"default": jobstore},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
        )

    # --- lifecycle ---
    def start(self, paused: bool = False) -> None:
        if not self._scheduler.running:
            self._scheduler.start(paused=paused)
            logger.info("Background scheduler started (%d registered task(s))", len(self.job_ids()))

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    # --- tasks ---
    def define_task(self, task_id: str, handler: TaskHandler) -> None:
        define_task(task_id, handler)

    def register(self, task_id: str, minimum_interval_seconds: int) -> None:
        """Run ``task_id`` at least every ``minimum_interval_seconds``.

        Registering an already registered task keeps a single job; a changed
        interval reschedules it.
        """
        if not is_task_defined(task_id):
            raise TaskNotDefined(f"Task {task_id!r} has no handler; call define_task first")
        if not self.enabled:
            logger.warning("Background fetch is disabled; %s not registered", task_id)
            return

        job = self._scheduler.get_job(task_id)
        if job is not None:
            current = int(job.trigger.interval.total_seconds())
            if current == minimum_interval_seconds:
                logger.debug("Task %s already registered", task_id)
                return
            self._scheduler.reschedule_job(task_id, trigger="interval", seconds=minimum_interval_seconds)
            logger.info("Task %s rescheduled every %ss", task_id, minimum_interval_seconds)
            return

        self._scheduler.add_job(
            "locator.scheduler:run_registered_task",
            trigger="interval",
            seconds=minimum_interval_seconds,
            id=task_id,
            name=task_id,
            args=[task_id],
            replace_existing=True,
        )
        logger.info("Task %s registered every %ss", task_id, minimum_interval_seconds)

    def unregister(self, task_id: str) -> None:
        if self._scheduler.get_job(task_id) is None:
            logger.debug("Task %s was not registered", task_id)
            return
        self._scheduler.remove_job(task_id)
        logger.info("Task %s unregistered", task_id)

    def job_ids(self):
        return [job.id for job in self._scheduler.get_jobs()]

    def is_registered(self, task_id: str) -> bool:
        return self._scheduler.get_job(task_id) is not None

    def get_registration_status(self, task_id: str) -> RegistrationStatus:
        if not self.enabled:
            available = BackgroundFetchStatus.DENIED
        elif not self._scheduler.running:
            available = BackgroundFetchStatus.RESTRICTED
        else:
            available = BackgroundFetchStatus.AVAILABLE
        return RegistrationStatus(available=available, is_registered=self.is_registered(task_id))

    def run_task(self, task_id: str) -> BackgroundFetchResult:
        """Invoke the task's handler immediately, as a wake-up would."""
        return run_registered_task(task_id)
