"""
Shutdown Coordinator - Single point of control for graceful shutdown.

SIGINT, SIGTERM and fatal errors all funnel into ``initiate_shutdown``;
only the first request runs the cleanup callbacks, in registration order.
"""

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from .logging_utils import get_module_logger


class ShutdownState(Enum):
    """States of the shutdown process."""
    RUNNING = "running"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class ShutdownCoordinator:

    def __init__(self):
        self.logger = get_module_logger("ShutdownCoordinator")
        self._state = ShutdownState.RUNNING
        self._shutdown_event = asyncio.Event()
        self._cleanup_callbacks: list[Callable[[], Awaitable[None]]] = []

    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def is_shutting_down(self) -> bool:
        return self._state == ShutdownState.IN_PROGRESS

    @property
    def is_complete(self) -> bool:
        return self._state == ShutdownState.COMPLETE

    def register_cleanup(self, callback: Callable[[], Awaitable[None]]) -> None:
        """
        Register an async cleanup callback.

        Callbacks run in the order they are registered; a failing callback
        is logged and does not stop the ones after it.
        """
        self._cleanup_callbacks.append(callback)
        self.logger.debug("Registered cleanup callback: %s", getattr(callback, "__name__", callback))

    async def initiate_shutdown(self, source: str = "unknown") -> None:
        """
        Initiate graceful shutdown. Later calls are no-ops.

        Args:
            source: What triggered shutdown (for logging)
        """
        if self._state != ShutdownState.RUNNING:
            self.logger.debug("Shutdown already initiated (state=%s), ignoring request from %s",
                              self._state.value, source)
            return

        self._state = ShutdownState.IN_PROGRESS
        self.logger.info("Shutdown initiated by: %s", source)
        shutdown_start = time.monotonic()

        for i, callback in enumerate(self._cleanup_callbacks, 1):
            name = getattr(callback, "__name__", repr(callback))
            try:
                self.logger.debug("Cleanup %d/%d: %s", i, len(self._cleanup_callbacks), name)
                await callback()
            except Exception as e:
                self.logger.error("Error in cleanup callback %s: %s", name, e, exc_info=True)

        self._state = ShutdownState.COMPLETE
        self._shutdown_event.set()
        self.logger.info("Shutdown complete in %.3fs", time.monotonic() - shutdown_start)

    async def wait_for_shutdown(self) -> None:
        """Block until shutdown has completed."""
        await self._shutdown_event.wait()


_coordinator: Optional[ShutdownCoordinator] = None


def get_shutdown_coordinator() -> ShutdownCoordinator:
    """Get the process-wide shutdown coordinator."""
    global _coordinator
    if _coordinator is None:
        _coordinator = ShutdownCoordinator()
    return _coordinator


def reset_shutdown_coordinator() -> None:
    """Reset the global coordinator (mainly for testing)."""
    global _coordinator
    _coordinator = None
