"""
API route modules.

- system: health and monitor status
- bus: bus requests, inbound signals and the outbound signal stream
"""

from .system import setup_system_routes
from .bus import setup_bus_routes


def setup_all_routes(app, controller):
    """Register all API routes with the application."""
    setup_system_routes(app, controller)
    setup_bus_routes(app, controller)


__all__ = ["setup_all_routes"]
