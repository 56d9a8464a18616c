"""
Activity Gate - tracks whether the device is in use.

Two states, IDLE (initial) and ACTIVE, driven by the inactivity signal. The
new mode is the negation of the signal's ``inactive`` flag.

- Same mode as before: the signal is ignored (no check, no reschedule).
- Into ACTIVE: if the last check is at least ``max_time_from_last_check``
  old, check immediately before rescheduling.
- Into IDLE: never checks.

Every genuine transition reschedules, since the cadence depends on the mode.
"""

import time
from typing import Callable

from .check_executor import CheckExecutor
from .logging_utils import get_module_logger
from .monitor_config import MonitorConfig
from .monitor_state import ActivityMode, MonitorState
from .scheduler import Scheduler


class ActivityGate:

    def __init__(
        self,
        state: MonitorState,
        config: MonitorConfig,
        executor: CheckExecutor,
        scheduler: Scheduler,
        clock: Callable[[], float] = time.time,
    ):
        self.logger = get_module_logger("ActivityGate")
        self._state = state
        self._config = config
        self._executor = executor
        self._scheduler = scheduler
        self._clock = clock

    @property
    def mode(self) -> ActivityMode:
        return self._state.mode

    def handle_inactivity(self, inactive: bool) -> bool:
        """Apply an inactivity notification. Returns True on a genuine transition."""
        new_active = not inactive
        self.logger.debug("Inactivity signal received (inactive=%s)", inactive)

        if new_active == self._state.device_active:
            # no change in the activity state; keep the current schedule
            return False

        elapsed = self._state.seconds_since_last_check(self._clock())
        old_mode = self._state.mode
        self._state.device_active = new_active
        self.logger.info("Device %s -> %s", old_mode.value, self._state.mode.value)

        if new_active and elapsed >= self._config.max_time_from_last_check:
            self.logger.debug("%.0f seconds since the last check, checking", elapsed)
            self._executor.perform_check()

        self._scheduler.schedule_next_wakeup()
        return True
