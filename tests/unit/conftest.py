"""Unit test fixtures: fake clock, backend and wake-up provider.

These replace every external collaborator of the monitor so that each
transition rule can be exercised synchronously and deterministically.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from diskmon.core.disk_monitor import DiskMonitor
from diskmon.core.monitor_config import MonitorConfig
from diskmon.core.scheduler import ScheduleRequest

START_TIME = 1_000_000.0


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """Disk backend that counts checks and replays canned results."""

    def __init__(
        self,
        results: Sequence[Tuple[str, int]] = (),
        error: Optional[Exception] = None,
    ):
        self.calls = 0
        self.results = list(results)
        self.error = error
        self._on_result: Optional[Callable[[str, int], None]] = None

    def set_result_callback(self, callback: Callable[[str, int], None]) -> None:
        self._on_result = callback

    def check_now(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        for path, percent in self.results:
            if self._on_result:
                self._on_result(path, percent)


class RecordingProvider:
    """Wake-up provider that only records arm-timer commands."""

    def __init__(self):
        self.requests: List[ScheduleRequest] = []
        self.cancelled = False

    def arm(self, request: ScheduleRequest) -> float:
        self.requests.append(request)
        return request.min_delay

    def cancel_all(self) -> None:
        self.cancelled = True

    @property
    def last(self) -> ScheduleRequest:
        return self.requests[-1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def config() -> MonitorConfig:
    return MonitorConfig(wakeup_align_interval=0)


@pytest.fixture
def monitor(config, backend, provider, clock) -> DiskMonitor:
    """A DiskMonitor whose dispatcher is not running; drive handlers directly."""
    return DiskMonitor(config, backend, clock=clock, provider=provider)
