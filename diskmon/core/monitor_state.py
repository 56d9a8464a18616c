"""
Monitor State - the single piece of shared state of the disk monitor.

One ``MonitorState`` is owned by each ``DiskMonitor`` and handed to the
scheduler, activity gate and check executor explicitly. Only the monitor's
dispatcher task mutates it, so no locking is needed.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict


class ActivityMode(Enum):
    """Device activity modes."""
    IDLE = "idle"
    ACTIVE = "active"

    @classmethod
    def from_active(cls, active: bool) -> 'ActivityMode':
        return cls.ACTIVE if active else cls.IDLE


@dataclass
class MonitorState:
    ready_to_check: bool = False    # startup completed; never reset
    device_active: bool = False
    last_check_time: float = 0.0    # epoch seconds, 0 = never checked

    @property
    def mode(self) -> ActivityMode:
        return ActivityMode.from_active(self.device_active)

    def mark_ready(self) -> None:
        self.ready_to_check = True

    def record_check(self, now: float) -> None:
        """Store the completion time of a check, never moving it backwards."""
        if now > self.last_check_time:
            self.last_check_time = now

    def seconds_since_last_check(self, now: float) -> float:
        return now - self.last_check_time

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data
