"""
API Controller - Thin wrapper around DiskMonitor for the HTTP transport.

Routes call into this controller; it forwards to the monitor's message bus
and never makes scheduling decisions itself.
"""

import datetime
import platform
from typing import Any, Callable, Dict, Optional

from diskmon.core.bus import UnknownMethodError, Subscriber
from diskmon.core.disk_monitor import DiskMonitor
from diskmon.core.logging_utils import get_module_logger


class MethodNotBoundError(RuntimeError):
    """The bus has no handler for the requested method (transport not bound)."""


class APIController:

    def __init__(self, monitor: DiskMonitor):
        self.logger = get_module_logger("APIController")
        self.monitor = monitor
        self.started_at = datetime.datetime.now()

    # =========================================================================
    # System
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": datetime.datetime.now().isoformat(),
            "api_version": "v1",
        }

    async def get_status(self) -> Dict[str, Any]:
        snapshot = self.monitor.snapshot()
        last_check = snapshot["last_check_time"]
        snapshot["last_check_iso"] = (
            datetime.datetime.fromtimestamp(last_check).isoformat() if last_check else None
        )
        snapshot["mounts"] = [
            {"path": m.path, "max_usage_percent": m.max_usage_percent}
            for m in self.monitor.config.mounts
        ]
        snapshot["started_at"] = self.started_at.isoformat()
        snapshot["python_version"] = platform.python_version()
        return snapshot

    # =========================================================================
    # Bus
    # =========================================================================

    async def call_method(self, interface: str, member: str, sender: Optional[str]) -> Dict[str, Any]:
        try:
            return await self.monitor.bus.call_method(interface, member, sender)
        except UnknownMethodError as e:
            raise MethodNotBoundError(str(e)) from e

    async def deliver_signal(self, interface: str, member: str, payload: Dict[str, Any]) -> int:
        return self.monitor.bus.deliver_signal(interface, member, payload)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        return self.monitor.bus.subscribe(subscriber)
