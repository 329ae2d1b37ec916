import threading

import pytest
import requests

from locator import scheduler as scheduler_module
from locator.exceptions import FixUnavailable
from locator.location import LocationProvider, LocationSample, PermissionStatus
from locator.reporter import Reporter
from locator.scheduler import BackgroundScheduler
from locator.settings_store import MemoryStorage, SettingsStore
from locator.workflow import ReportingWorkflow

SEND_TIME = 1_700_000_000_000


class FakeProvider(LocationProvider):
    """Counts permission requests and fix attempts."""

    def __init__(self, permission=PermissionStatus.GRANTED, fix=None, background_permission=True):
        self.permission = permission
        self.fix = fix if fix is not None else {"lat": 1.0, "lon": 2.0}
        self.background_permission = background_permission
        self.permission_requests = 0
        self.fix_attempts = 0
        self.fix_timeouts = []
        self.fail_fix = False
        self.on_permission = None
        # Set both to make get_current_fix block until release is set
        self.entered = None
        self.release = None

    def request_permission(self):
        self.permission_requests += 1
        if self.on_permission is not None:
            self.on_permission()
        return self.permission

    def has_permission(self):
        return self.background_permission

    def get_current_fix(self, timeout=None):
        self.fix_attempts += 1
        self.fix_timeouts.append(timeout)
        if self.entered is not None:
            self.entered.set()
            self.release.wait(5)
        if self.fail_fix:
            raise FixUnavailable("no satellites")
        return LocationSample(self.fix)


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code


class FakeSession:
    """Stands in for requests.Session; records every POST."""

    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status_code)


@pytest.fixture(autouse=True)
def clear_task_handlers():
    yield
    scheduler_module.clear_tasks()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return SettingsStore(storage)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def reporter(session):
    return Reporter(session=session, timeout=3, clock=lambda: SEND_TIME)


@pytest.fixture
def scheduler():
    sched = BackgroundScheduler()
    sched.start(paused=True)
    yield sched
    sched.shutdown()


@pytest.fixture
def workflow(store, provider, reporter, scheduler):
    wf = ReportingWorkflow(store, provider, reporter, scheduler=scheduler, fix_timeout=2)
    scheduler.define_task(wf.task_id, wf.background_task)
    return wf


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")


@pytest.fixture
def blocking_provider(provider):
    provider.entered = threading.Event()
    provider.release = threading.Event()
    return provider


class ReadOnlyStorage:
    """Storage whose writes fail like a full or read-only data dir."""

    def get_item(self, key):
        return None

    def set_item(self, key, value):
        raise PermissionError(13, "Read-only file system")

    def remove_item(self, key):
        pass
