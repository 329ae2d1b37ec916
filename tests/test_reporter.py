import pytest
import requests

from locator.location import LocationSample
from locator.reporter import Reporter, ReportStatus, build_payload

from .conftest import SEND_TIME, FakeSession


@pytest.fixture
def sample():
    return LocationSample({"lat": 1.0, "lon": 2.0})


def test_posts_json_payload_once(reporter, session, sample):
    outcome = reporter.send(sample, "https://x.test/r")

    assert outcome.ok
    assert outcome.status_code == 200
    assert len(session.posts) == 1
    post = session.posts[0]
    assert post["url"] == "https://x.test/r"
    assert post["json"] == {"location": {"lat": 1.0, "lon": 2.0}, "timestamp": SEND_TIME}
    assert post["headers"] == {"Content-Type": "application/json"}
    assert post["timeout"] == 3


def test_timestamp_is_taken_at_send_time(session):
    ticks = iter([100, 200])
    reporter = Reporter(session=session, clock=lambda: next(ticks))
    sample = LocationSample({"lat": 1.0, "lon": 2.0, "timestamp": 5})

    reporter.send(sample, "http://x.test")
    reporter.send(sample, "http://x.test")

    assert [p["json"]["timestamp"] for p in session.posts] == [100, 200]
    assert all(p["json"]["location"]["timestamp"] == 5 for p in session.posts)


def test_explicit_timeout_overrides_default(reporter, session, sample):
    reporter.send(sample, "http://x.test", timeout=0.5)
    assert session.posts[0]["timeout"] == 0.5


@pytest.mark.parametrize("url", ["", "   ", "x.test/r", "ftp://x.test/r"])
def test_unusable_url_is_skipped(reporter, session, sample, url):
    outcome = reporter.send(sample, url)
    assert outcome.status is ReportStatus.SKIPPED
    assert session.posts == []


def test_network_error_becomes_failed_outcome(connection_error, sample, caplog):
    session = FakeSession(error=connection_error)
    reporter = Reporter(session=session, clock=lambda: SEND_TIME)
    with caplog.at_level("WARNING", logger="locator.reporter"):
        outcome = reporter.send(sample, "https://x.test/r")
    assert outcome.status is ReportStatus.FAILED
    assert "ConnectionError" in outcome.error
    assert "failed" in caplog.text


def test_non_2xx_becomes_failed_outcome(sample):
    reporter = Reporter(session=FakeSession(status_code=503), clock=lambda: SEND_TIME)
    outcome = reporter.send(sample, "https://x.test/r")
    assert outcome.status is ReportStatus.FAILED
    assert outcome.status_code == 503
    assert not outcome.ok


def test_build_payload(sample):
    assert build_payload(sample, 7) == {"location": {"lat": 1.0, "lon": 2.0}, "timestamp": 7}


def test_exhausted_timeout_is_not_sent(sample):
    reporter = Reporter(session=requests.Session(), clock=lambda: SEND_TIME)
    outcome = reporter.send(sample, "https://x.test/r", timeout=0.0)
    assert outcome.status is ReportStatus.FAILED
    assert outcome.error == "Deadline exceeded"


def test_invalid_request_arguments_become_failed_outcome(sample):
    reporter = Reporter(session=FakeSession(error=ValueError("bad timeout")), clock=lambda: SEND_TIME)
    outcome = reporter.send(sample, "https://x.test/r")
    assert outcome.status is ReportStatus.FAILED
    assert "bad timeout" in outcome.error
