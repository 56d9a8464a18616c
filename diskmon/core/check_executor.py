"""Gated entry point for running a disk usage check."""

import time
from typing import Callable

from .disk_backend import DiskUsageBackend
from .logging_utils import get_module_logger
from .monitor_state import MonitorState

Clock = Callable[[], float]


class CheckExecutor:
    """
    Runs the backend check once startup has completed and timestamps it.

    Scheduled wake-ups, on-demand requests and the activity gate all go
    through ``perform_check``.
    """

    def __init__(self, state: MonitorState, backend: DiskUsageBackend, clock: Clock = time.time):
        self.logger = get_module_logger("CheckExecutor")
        self._state = state
        self._backend = backend
        self._clock = clock
        self.checks_run = 0

    def perform_check(self) -> bool:
        """Run one check. Returns False when suppressed because startup is pending."""
        if not self._state.ready_to_check:
            self.logger.debug("Startup not complete, skipping disk check")
            return False

        try:
            self._backend.check_now()
        except Exception:
            # failed attempts are timestamped too
            self.logger.exception("Disk usage check failed")
        finally:
            self._state.record_check(self._clock())
            self.checks_run += 1

        return True
