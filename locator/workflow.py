"""The location reporting workflow.

One run reads the settings, checks (foreground) or verifies (background) the
location permission, takes a single fix and reports it. Runs never overlap:
a trigger that arrives while another run is in flight returns ``BUSY``.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .exceptions import FixUnavailable, PermissionDenied, StorageWriteError
from .location import LocationProvider, LocationSample
from .reporter import Reporter, ReportOutcome
from .scheduler import BackgroundFetchResult, BackgroundScheduler, RegistrationStatus
from .settings_store import Settings, SettingsStore


logger = logging.getLogger(__name__)

TASK_ID = "share-location"
MINIMUM_INTERVAL_SECONDS = 60 * 10

STATUS_LOCATING = "Locating you..."
STATUS_DISABLED = "Location sharing is disabled"
STATUS_PERMISSION_DENIED = (
    "Permission to access location was denied! "
    "Please go to settings and enable location sharing for this app."
)
STATUS_FIX_UNAVAILABLE = "Could not determine your location. Please try again."
STATUS_BUSY = "Already locating you..."
STATUS_SAVE_FAILED = "Could not save your settings. Please check the app's storage."


def coordinates_status(sample: LocationSample) -> str:
    return f"Latitude: {sample.latitude}, Longitude: {sample.longitude}"


class WorkflowState(enum.Enum):
    IDLE = "idle"
    AWAITING_PERMISSION = "awaiting_permission"
    AWAITING_FIX = "awaiting_fix"
    REPORTING = "reporting"
    DISABLED = "disabled"
    PERMISSION_DENIED = "permission_denied"
    FIX_UNAVAILABLE = "fix_unavailable"
    BUSY = "busy"


@dataclass(frozen=True)
class WorkflowResult:
    state: WorkflowState
    status_text: str
    sample: Optional[LocationSample] = None
    outcome: Optional[ReportOutcome] = None


StateListener = Callable[[WorkflowState, str], None]


class ReportingWorkflow:
    def __init__(
        self,
        settings_store: SettingsStore,
        provider: LocationProvider,
        reporter: Reporter,
        scheduler: Optional[BackgroundScheduler] = None,
        task_id: str = TASK_ID,
        minimum_interval_seconds: int = MINIMUM_INTERVAL_SECONDS,
        fix_timeout: Optional[float] = None,
        deadline_seconds: Optional[float] = None,
    ):
        self.settings_store = settings_store
        self.provider = provider
        self.reporter = reporter
        self.scheduler = scheduler
        self.task_id = task_id
        self.minimum_interval_seconds = minimum_interval_seconds
        self.fix_timeout = fix_timeout
        self.deadline_seconds = deadline_seconds

        self.state = WorkflowState.IDLE
        self.status_text = STATUS_LOCATING
        self.last_outcome: Optional[ReportOutcome] = None
        self._listeners: List[StateListener] = []
        self._in_flight = threading.Lock()

    # --- observers ---
    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _transition(self, state: WorkflowState, status_text: Optional[str] = None) -> None:
        self.state = state
        if status_text is not None:
            self.status_text = status_text
        logger.debug("Workflow -> %s", state.value)
        for listener in list(self._listeners):
            try:
                listener(state, self.status_text)
            except Exception:
                logger.exception("Workflow listener failed")

    # --- runs ---
    def run(self, background: bool = False) -> WorkflowResult:
        if not self._in_flight.acquire(blocking=False):
            logger.info("Report already in progress; trigger ignored")
            return WorkflowResult(WorkflowState.BUSY, STATUS_BUSY)
        try:
            return self._run(background)
        finally:
            self._in_flight.release()

    def _run(self, background: bool) -> WorkflowResult:
        settings = self.settings_store.get()
        if not settings.enabled:
            self._transition(WorkflowState.DISABLED, STATUS_DISABLED)
            return WorkflowResult(WorkflowState.DISABLED, STATUS_DISABLED)

        self._transition(WorkflowState.AWAITING_PERMISSION, STATUS_LOCATING)
        try:
            if background:
                # No prompt outside the foreground
                if not self.provider.has_permission():
                    raise PermissionDenied("Location permission not held")
            else:
                self.provider.ensure_permission()
        except PermissionDenied:
            logger.info("Location permission not granted (background=%s)", background)
            self._transition(WorkflowState.PERMISSION_DENIED, STATUS_PERMISSION_DENIED)
            return WorkflowResult(WorkflowState.PERMISSION_DENIED, STATUS_PERMISSION_DENIED)

        # The prompt may wait on the user indefinitely; the deadline covers fix and send only
        started = time.monotonic()
        self._transition(WorkflowState.AWAITING_FIX)
        try:
            timeout = self._timeout(self.fix_timeout, started)
            if timeout is not None and timeout <= 0:
                raise FixUnavailable("Report deadline exceeded before a fix was requested")
            sample = self.provider.get_current_fix(timeout=timeout)
        except FixUnavailable as exc:
            logger.warning("No location fix: %s", exc)
            self._transition(WorkflowState.FIX_UNAVAILABLE, STATUS_FIX_UNAVAILABLE)
            return WorkflowResult(WorkflowState.FIX_UNAVAILABLE, STATUS_FIX_UNAVAILABLE)

        status = coordinates_status(sample)
        self._transition(WorkflowState.REPORTING, status)
        outcome = self.reporter.send(sample, settings.url, timeout=self._timeout(None, started))
        self.last_outcome = outcome

        self._transition(WorkflowState.IDLE)
        return WorkflowResult(WorkflowState.IDLE, status, sample=sample, outcome=outcome)

    def _timeout(self, limit: Optional[float], started: float) -> Optional[float]:
        if self.deadline_seconds is None:
            return limit
        remaining = max(self.deadline_seconds - (time.monotonic() - started), 0.0)
        return remaining if limit is None else min(limit, remaining)

    # --- user actions ---
    def apply_enabled(self, value: bool) -> bool:
        """Persist the share switch and (un)register the periodic task.

        Returns False, leaving the task untouched, when the setting could not be saved.
        """
        previous = self.settings_store.get().enabled
        try:
            self.settings_store.set(enabled=value)
        except StorageWriteError as exc:
            logger.error("Could not save share switch: %s", exc)
            self._transition(self.state, STATUS_SAVE_FAILED)
            return False
        if self.scheduler is not None:
            if value:
                self.scheduler.register(self.task_id, self.minimum_interval_seconds)
            else:
                self.scheduler.unregister(self.task_id)
        if previous != value:
            logger.info("Location sharing %s", "enabled" if value else "disabled")
        return True

    def set_enabled(self, value: bool) -> WorkflowResult:
        """Apply the share switch, then locate."""
        if not self.apply_enabled(value):
            return WorkflowResult(self.state, STATUS_SAVE_FAILED)
        return self.run()

    def set_url(self, url: str) -> Settings:
        """Persist the server URL; raises ``StorageWriteError`` when it cannot be saved."""
        return self.settings_store.set(url=(url or "").strip())

    def refresh_status(self) -> Optional[RegistrationStatus]:
        if self.scheduler is None:
            return None
        return self.scheduler.get_registration_status(self.task_id)

    # --- background ---
    def background_task(self) -> BackgroundFetchResult:
        result = self.run(background=True)
        if result.state is WorkflowState.IDLE:
            return BackgroundFetchResult.NEW_DATA
        if result.state is WorkflowState.FIX_UNAVAILABLE:
            return BackgroundFetchResult.FAILED
        return BackgroundFetchResult.NO_DATA
