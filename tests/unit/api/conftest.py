"""Pytest fixtures for API unit tests.

The HTTP layer is exercised against a real DiskMonitor wired to the fake
clock, backend and wake-up provider from ``tests/unit/conftest.py``, so
requests travel the same bus path they do in production.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, AsyncIterator, Coroutine, TypeVar

from aiohttp.test_utils import TestClient, TestServer

from diskmon.core.api.controller import APIController
from diskmon.core.api.server import create_app
from diskmon.core.disk_monitor import DiskMonitor
from diskmon.core.events import TransportConnected


T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@contextlib.asynccontextmanager
async def monitor_client(
    monitor: DiskMonitor,
    connected: bool = True,
    localhost_only: bool = False,
) -> AsyncIterator[TestClient]:
    """Start ``monitor``, optionally bind its bus tables, and yield a client."""
    await monitor.start()
    if connected:
        monitor.post(TransportConnected())
        await monitor.drain()

    app = create_app(APIController(monitor), localhost_only=localhost_only)
    try:
        async with TestClient(TestServer(app)) as client:
            yield client
    finally:
        await monitor.stop()


async def wait_for_subscribers(monitor: DiskMonitor, count: int = 1, timeout: float = 2.0) -> None:
    """Wait until ``count`` signal subscribers are registered on the bus."""
    deadline = asyncio.get_running_loop().time() + timeout
    while monitor.bus.subscriber_count < count:
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("signal subscriber never registered")
        await asyncio.sleep(0.01)
