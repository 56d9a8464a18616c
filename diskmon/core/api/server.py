"""
API Server - aiohttp transport for the disk monitor bus.

Starting the server connects the transport (the monitor binds its request
method and signal subscriptions); stopping it disconnects.
"""

import weakref
from typing import Optional

from aiohttp import WSCloseCode, web

from diskmon.core.events import TransportConnected, TransportDisconnected
from diskmon.core.logging_utils import get_module_logger

from .controller import APIController
from .middleware import error_handling_middleware, localhost_only_middleware
from .routes import setup_all_routes


logger = get_module_logger("APIServer")


async def _close_websockets(app: web.Application) -> None:
    for ws in set(app["websockets"]):
        await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")


def create_app(controller: APIController, localhost_only: bool = True) -> web.Application:
    """Create and configure the aiohttp application."""
    middlewares = [error_handling_middleware]
    if localhost_only:
        middlewares.insert(0, localhost_only_middleware)

    app = web.Application(middlewares=middlewares)
    app["controller"] = controller
    app["websockets"] = weakref.WeakSet()
    app.on_shutdown.append(_close_websockets)

    setup_all_routes(app, controller)
    return app


class APIServer:

    def __init__(
        self,
        controller: APIController,
        host: str = "127.0.0.1",
        port: int = 8095,
        localhost_only: bool = True,
    ):
        """
        Initialize the API server.

        Args:
            controller: APIController wrapping the DiskMonitor
            host: Host to bind to (default: localhost only)
            port: Port to bind to
            localhost_only: If True, reject requests from non-localhost peers
        """
        self.controller = controller
        self.host = host
        self.port = port
        self.localhost_only = localhost_only

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._running = False

    async def start(self) -> None:
        """Start serving and connect the transport."""
        if self._running:
            logger.warning("API server already running")
            return

        self._app = create_app(self.controller, localhost_only=self.localhost_only)
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        self._running = True
        logger.info("API server started on %s", self.url)
        self.controller.monitor.post(TransportConnected())

    async def stop(self) -> None:
        """Disconnect the transport and stop serving."""
        if not self._running:
            return

        logger.info("Stopping API server...")
        self.controller.monitor.post(TransportDisconnected())

        if self._site:
            await self._site.stop()
            self._site = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        self._app = None
        self._running = False
        logger.info("API server stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"
