"""
API Middleware - access control and error formatting for the HTTP transport.

Every error leaves the server as:
{
    "error": {"code": "ERROR_CODE", "message": "Human-readable message"},
    "status": 400
}
"""

import json
from typing import Callable, Optional

from aiohttp import web

from diskmon.core.logging_utils import get_module_logger

from .controller import MethodNotBoundError


logger = get_module_logger("APIMiddleware")

LOCALHOST_IPS = frozenset({"127.0.0.1", "::1", "::ffff:127.0.0.1"})


def create_error_response(code: str, message: str, status: int = 400, details: Optional[dict] = None) -> web.Response:
    """Create standardized error response."""
    error = {"error": {"code": code, "message": message}, "status": status}
    if details:
        error["error"]["details"] = details
    return web.json_response(error, status=status)


@web.middleware
async def localhost_only_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Reject requests from any peer other than the local host."""
    peername = request.transport.get_extra_info("peername") if request.transport else None
    if peername:
        remote_ip = peername[0]
        if remote_ip not in LOCALHOST_IPS:
            logger.warning("Rejected request from non-localhost IP: %s", remote_ip)
            return create_error_response(
                "ACCESS_DENIED",
                "API access is restricted to localhost only",
                status=403,
            )

    return await handler(request)


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Convert exceptions into JSON error responses."""
    try:
        return await handler(request)
    except web.HTTPException as e:
        return create_error_response(
            e.reason.upper().replace(" ", "_") if e.reason else "HTTP_ERROR",
            e.text or str(e),
            status=e.status,
        )
    except MethodNotBoundError as e:
        logger.info("Request for unbound method: %s", e)
        return create_error_response("NOT_BOUND", str(e), status=503)
    except (ValueError, TypeError) as e:
        logger.warning("Validation error: %s", e)
        return create_error_response("VALIDATION_ERROR", str(e), status=400)
    except KeyError as e:
        logger.warning("Missing field: %s", e)
        return create_error_response("MISSING_FIELD", f"Missing required field: {e}", status=400)
    except Exception as e:
        logger.exception("Unexpected error on %s %s", request.method, request.path)
        return create_error_response(
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            status=500,
            details={"type": type(e).__name__, "message": str(e)},
        )


async def parse_json_body(request: web.Request) -> dict:
    """Return the JSON object body, ``{}`` when empty. Raises ValueError otherwise."""
    if not request.can_read_body:
        return {}
    text = await request.text()
    if not text.strip():
        return {}
    try:
        body = json.loads(text)
    except ValueError:
        raise ValueError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body
