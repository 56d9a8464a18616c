"""
System Routes - health and monitor status.
"""

from aiohttp import web

from ..controller import APIController


def setup_system_routes(app: web.Application, controller: APIController) -> None:
    """Register system routes."""
    app.router.add_get("/api/v1/health", health_handler)
    app.router.add_get("/api/v1/status", status_handler)


async def health_handler(request: web.Request) -> web.Response:
    """GET /api/v1/health - Health check."""
    controller: APIController = request.app["controller"]
    result = await controller.health_check()
    return web.json_response(result)


async def status_handler(request: web.Request) -> web.Response:
    """GET /api/v1/status - Activity mode, readiness, last check and schedule."""
    controller: APIController = request.app["controller"]
    result = await controller.get_status()
    return web.json_response(result)
