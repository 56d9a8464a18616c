"""Inbound events handled by the disk monitor dispatcher.

Every external stimulus (timer fire, bus request or signal, backend result,
transport lifecycle) is turned into one of these and queued, so handlers
run strictly one at a time in arrival order.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class WakeupFired:
    generation: int
    tag: str = "diskmonitor"


@dataclass
class CheckRequested:
    sender: Optional[str] = None
    reply: Optional[asyncio.Future] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class StartupComplete:
    pass


@dataclass(frozen=True)
class ActivityChanged:
    inactive: Any


@dataclass(frozen=True)
class DiskUsageResult:
    path: Any
    percent_used: Any


@dataclass(frozen=True)
class TransportConnected:
    pass


@dataclass(frozen=True)
class TransportDisconnected:
    pass


def coerce_flag(value: Any) -> bool:
    """Interpret a wire boolean: bools, ints and "true"/"false"/"0"/"1" strings.

    Raises:
        ValueError: for anything else (floats, None, arbitrary text).
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes"):
            return True
        if lowered in ("0", "false", "no"):
            return False
    raise ValueError(f"not a boolean flag: {value!r}")


def coerce_usage(path: Any, percent_used: Any) -> tuple[str, int]:
    """Validate a disk-usage result payload.

    Raises:
        ValueError: if the path is empty or the percentage is not an int in 0-100.
    """
    if not isinstance(path, str) or not path:
        raise ValueError(f"invalid mount path: {path!r}")
    if isinstance(percent_used, bool) or not isinstance(percent_used, int):
        raise ValueError(f"percent_used must be an int, got {percent_used!r}")
    if not 0 <= percent_used <= 100:
        raise ValueError(f"percent_used out of range: {percent_used}")
    return path, percent_used


def event_payload(event: Any) -> Dict[str, Any]:
    """Loggable view of an event (without futures)."""
    if isinstance(event, CheckRequested):
        return {"sender": event.sender}
    return dict(getattr(event, "__dict__", {}))


__all__ = [
    "WakeupFired",
    "CheckRequested",
    "StartupComplete",
    "ActivityChanged",
    "DiskUsageResult",
    "TransportConnected",
    "TransportDisconnected",
    "coerce_flag",
    "coerce_usage",
    "event_payload",
]
