"""HTTP transport for the disk monitor (aiohttp)."""

from .controller import APIController, MethodNotBoundError
from .server import APIServer, create_app

__all__ = ["APIController", "APIServer", "MethodNotBoundError", "create_app"]
