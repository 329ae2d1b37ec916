import pytest

from locator.exceptions import TaskNotDefined
from locator.scheduler import (
    BackgroundFetchResult,
    BackgroundFetchStatus,
    BackgroundScheduler,
    RegistrationStatus,
)

TASK = "share-location"


def test_register_requires_defined_task(scheduler):
    with pytest.raises(TaskNotDefined):
        scheduler.register(TASK, 600)


def test_register_is_idempotent(scheduler):
    scheduler.define_task(TASK, lambda: BackgroundFetchResult.NO_DATA)
    scheduler.register(TASK, 600)
    scheduler.register(TASK, 600)
    assert scheduler.job_ids() == [TASK]
    assert scheduler.get_registration_status(TASK) == RegistrationStatus(BackgroundFetchStatus.AVAILABLE, True)


def test_register_with_new_interval_reschedules(scheduler):
    scheduler.define_task(TASK, lambda: BackgroundFetchResult.NO_DATA)
    scheduler.register(TASK, 600)
    scheduler.register(TASK, 900)
    job = scheduler._scheduler.get_job(TASK)
    assert job.trigger.interval.total_seconds() == 900
    assert scheduler.job_ids() == [TASK]


def test_unregister(scheduler):
    scheduler.define_task(TASK, lambda: BackgroundFetchResult.NO_DATA)
    scheduler.unregister(TASK)
    scheduler.register(TASK, 600)
    scheduler.unregister(TASK)
    assert not scheduler.is_registered(TASK)
    assert scheduler.job_ids() == []


def test_status_when_not_running_or_disabled():
    stopped = BackgroundScheduler()
    assert stopped.get_registration_status(TASK).available is BackgroundFetchStatus.RESTRICTED

    disabled = BackgroundScheduler(enabled=False)
    disabled.define_task(TASK, lambda: BackgroundFetchResult.NO_DATA)
    disabled.start(paused=True)
    try:
        disabled.register(TASK, 600)
        assert disabled.get_registration_status(TASK) == RegistrationStatus(BackgroundFetchStatus.DENIED, False)
    finally:
        disabled.shutdown()


def test_run_task_invokes_handler(scheduler):
    calls = []

    def handler():
        calls.append(1)
        return BackgroundFetchResult.NEW_DATA

    scheduler.define_task(TASK, handler)
    assert scheduler.run_task(TASK) is BackgroundFetchResult.NEW_DATA
    assert calls == [1]


def test_run_task_failures_are_reported_as_failed(scheduler):
    def handler():
        raise RuntimeError("boom")

    scheduler.define_task(TASK, handler)
    assert scheduler.run_task(TASK) is BackgroundFetchResult.FAILED
    assert scheduler.run_task("unknown") is BackgroundFetchResult.FAILED


def test_registration_survives_restart(tmp_path):
    url = f"sqlite:///{tmp_path / 'jobs.sqlite'}"

    first = BackgroundScheduler(url)
    first.define_task(TASK, lambda: BackgroundFetchResult.NO_DATA)
    first.start(paused=True)
    first.register(TASK, 600)
    first.shutdown()

    second = BackgroundScheduler(url)
    second.start(paused=True)
    try:
        assert second.is_registered(TASK)
        second.define_task(TASK, lambda: BackgroundFetchResult.NEW_DATA)
        second.register(TASK, 600)
        assert second.job_ids() == [TASK]
    finally:
        second.shutdown()
