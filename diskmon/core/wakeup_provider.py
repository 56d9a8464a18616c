"""
Wake-up provider - turns ScheduleRequests into asyncio timers.

At most one timer is outstanding per tag: arming a tag again cancels the
previous timer. Fire times are aligned to a shared heartbeat grid when the
grid has a slot inside the requested window, so wake-ups of independent
components tend to coincide.
"""

import asyncio
import math
import time
from typing import Callable, Dict, Optional

from .events import WakeupFired
from .logging_utils import get_module_logger
from .scheduler import ScheduleRequest

EventSink = Callable[[WakeupFired], None]


def aligned_delay(request: ScheduleRequest, align_interval: float, now: float) -> float:
    """Delay in seconds for ``request``, snapped to the alignment grid if possible."""
    if align_interval <= 0:
        return request.min_delay

    slot = math.ceil((now + request.min_delay) / align_interval) * align_interval
    delay = slot - now
    if delay <= request.max_delay:
        return delay
    return request.min_delay


class WakeupProvider:

    def __init__(
        self,
        sink: EventSink,
        align_interval: float = 0.0,
        clock: Callable[[], float] = time.time,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.logger = get_module_logger("WakeupProvider")
        self._sink = sink
        self._align_interval = align_interval
        self._clock = clock
        self._loop = loop
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def outstanding(self) -> int:
        return len(self._timers)

    def arm(self, request: ScheduleRequest) -> float:
        """Arm (or re-arm) the timer for ``request.tag``. Returns the chosen delay."""
        self.cancel(request.tag)

        delay = aligned_delay(request, self._align_interval, self._clock())
        handle = self._get_loop().call_later(delay, self._fire, request)
        self._timers[request.tag] = handle
        self.logger.debug("Armed %s timer: %.1fs (generation %d)", request.tag, delay, request.generation)
        return delay

    def _fire(self, request: ScheduleRequest) -> None:
        self._timers.pop(request.tag, None)
        self._sink(WakeupFired(generation=request.generation, tag=request.tag))

    def cancel(self, tag: str) -> None:
        handle = self._timers.pop(tag, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for tag in list(self._timers):
            self.cancel(tag)
