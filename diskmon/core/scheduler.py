"""
Scheduler - owns the disk check cadence.

The cadence depends on the device activity mode: short while the device is
in use, long while it is idle. Every call to ``schedule_next_wakeup`` emits
exactly one ScheduleRequest; a newer request supersedes the outstanding one
for the same tag.
"""

from dataclasses import dataclass
from typing import Callable

from .logging_utils import get_module_logger
from .monitor_config import MonitorConfig
from .monitor_state import MonitorState

DEFAULT_TAG = "diskmonitor"


@dataclass(frozen=True)
class ScheduleRequest:
    """Arm-timer command: fire once somewhere in [min_delay, max_delay] seconds."""
    min_delay: float
    max_delay: float
    tag: str = DEFAULT_TAG
    generation: int = 0


# Sink that hands a request to the wake-up provider
ScheduleSink = Callable[[ScheduleRequest], None]


def interval_for_mode(active: bool, config: MonitorConfig) -> float:
    """Seconds until the next check for the given activity mode."""
    if active:
        return config.active_check_interval
    return config.idle_check_interval


class Scheduler:
    """
    Re-arms the wake-up timer.

    Must be called once at start, once at the end of every wake-up and once
    after every genuine activity transition. Each call bumps the schedule
    generation; wake-ups carrying an older generation were superseded and
    must be discarded by the caller (see ``is_current``).
    """

    def __init__(
        self,
        state: MonitorState,
        config: MonitorConfig,
        sink: ScheduleSink,
        tag: str = DEFAULT_TAG,
    ):
        self.logger = get_module_logger("Scheduler")
        self._state = state
        self._config = config
        self._sink = sink
        self._tag = tag
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def tag(self) -> str:
        return self._tag

    def next_interval(self) -> float:
        return interval_for_mode(self._state.device_active, self._config)

    def schedule_next_wakeup(self) -> ScheduleRequest:
        min_delay = self.next_interval()
        self._generation += 1
        request = ScheduleRequest(
            min_delay=min_delay,
            max_delay=min_delay + self._config.wakeup_slack,
            tag=self._tag,
            generation=self._generation,
        )
        self.logger.debug(
            "Next wake-up in %.0f-%.0fs (%s, generation %d)",
            request.min_delay,
            request.max_delay,
            self._state.mode.value,
            request.generation,
        )
        self._sink(request)
        return request

    def is_current(self, generation: int, tag: str = DEFAULT_TAG) -> bool:
        return tag == self._tag and generation == self._generation
