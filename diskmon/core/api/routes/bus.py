"""
Bus Routes - carry bus requests and signals over HTTP.

- POST /api/v1/request/{member}               call a method on the request interface
- POST /api/v1/signal/{interface}/{member}    deliver an inbound signal
- GET  /api/v1/signals                        WebSocket stream of outbound signals
"""

import asyncio
import contextlib
from typing import Any, Dict

from aiohttp import WSMsgType, web

from diskmon.core.asyncio_utils import cancel_and_wait, create_logged_task
from diskmon.core.bus import DISKMONITOR_REQ_INTERFACE
from diskmon.core.logging_utils import get_module_logger

from ..controller import APIController
from ..middleware import parse_json_body

logger = get_module_logger("BusRoutes")

SENDER_HEADER = "X-Sender"
SIGNAL_QUEUE_SIZE = 64


def setup_bus_routes(app: web.Application, controller: APIController) -> None:
    """Register bus routes."""
    app.router.add_post("/api/v1/request/{member}", request_handler)
    app.router.add_post("/api/v1/signal/{interface}/{member}", signal_handler)
    app.router.add_get("/api/v1/signals", signals_ws_handler)


def _sender_of(request: web.Request):
    return request.headers.get(SENDER_HEADER) or request.remote


async def request_handler(request: web.Request) -> web.Response:
    """POST /api/v1/request/{member} - Synchronous request, replies when handled."""
    controller: APIController = request.app["controller"]
    member = request.match_info["member"]
    result = await controller.call_method(DISKMONITOR_REQ_INTERFACE, member, _sender_of(request))
    return web.json_response(result)


async def signal_handler(request: web.Request) -> web.Response:
    """POST /api/v1/signal/{interface}/{member} - Fire-and-forget notification."""
    controller: APIController = request.app["controller"]
    payload = await parse_json_body(request)
    delivered = await controller.deliver_signal(
        request.match_info["interface"],
        request.match_info["member"],
        payload,
    )
    return web.json_response({"accepted": delivered > 0, "handlers": delivered})


async def signals_ws_handler(request: web.Request) -> web.WebSocketResponse:
    """GET /api/v1/signals - Push every outbound signal as a JSON message."""
    controller: APIController = request.app["controller"]
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=SIGNAL_QUEUE_SIZE)

    def _on_signal(interface: str, member: str, payload: Dict[str, Any]) -> None:
        try:
            queue.put_nowait({"interface": interface, "member": member, **payload})
        except asyncio.QueueFull:
            logger.warning("Signal subscriber %s is not keeping up, dropping %s", request.remote, member)

    async def _forward() -> None:
        try:
            while True:
                message = await queue.get()
                await ws.send_json(message)
        finally:
            # a dead forwarder must not leave a subscribed socket behind
            if not ws.closed:
                await ws.close()

    unsubscribe = controller.subscribe(_on_signal)
    request.app["websockets"].add(ws)
    forwarder = create_logged_task(_forward(), logger=logger, context="SignalForwarder")
    logger.info("Signal subscriber connected: %s", request.remote)

    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                logger.warning("Signal subscriber connection error: %s", ws.exception())
    finally:
        unsubscribe()
        request.app["websockets"].discard(ws)
        with contextlib.suppress(ConnectionResetError):
            await cancel_and_wait(forwarder)
        logger.info("Signal subscriber disconnected: %s", request.remote)

    return ws
