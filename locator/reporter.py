"""Delivery of location reports to the configured endpoint."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

import requests

from .exceptions import NetworkSendFailure
from .location import LocationSample


logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class ReportStatus(enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ReportOutcome:
    status: ReportStatus
    url: str
    timestamp: int
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ReportStatus.SENT


def build_payload(sample: LocationSample, timestamp: int) -> Dict[str, Any]:
    return {"location": sample.to_dict(), "timestamp": timestamp}


def _usable_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class Reporter:
    """POSTs one JSON report per call. No retries; the outcome is returned and logged."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 15,
                 clock: Callable[[], int] = now_ms):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.clock = clock

    def send(self, sample: LocationSample, url: str, timeout: Optional[float] = None) -> ReportOutcome:
        url = (url or "").strip()
        timestamp = self.clock()
        if not url or not _usable_url(url):
            logger.warning("Report skipped: no usable server URL configured (%r)", url)
            return ReportOutcome(ReportStatus.SKIPPED, url, timestamp, error="No usable server URL")

        if timeout is not None and timeout <= 0:
            logger.warning("Report to %s not attempted: deadline exceeded", url)
            return ReportOutcome(ReportStatus.FAILED, url, timestamp, error="Deadline exceeded")

        payload = build_payload(sample, timestamp)
        try:
            status_code = self._post(url, payload, timeout if timeout is not None else self.timeout)
        except NetworkSendFailure as exc:
            logger.warning("Report to %s failed: %s", url, exc)
            return ReportOutcome(ReportStatus.FAILED, url, timestamp, status_code=exc.status_code, error=str(exc))

        logger.info("Report sent to %s (HTTP %s)", url, status_code)
        return ReportOutcome(ReportStatus.SENT, url, timestamp, status_code=status_code)

    def _post(self, url: str, payload: Dict[str, Any], timeout: float) -> int:
        try:
            resp = self.session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=timeout,
            )
        except (requests.RequestException, ValueError) as exc:
            raise NetworkSendFailure(f"{type(exc).__name__}: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise NetworkSendFailure(f"HTTP {resp.status_code}", status_code=resp.status_code)
        return resp.status_code
