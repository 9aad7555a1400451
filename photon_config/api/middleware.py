"""
API Middleware - error handling and request helpers for the settings API.

Provides:
- Optional localhost-only access enforcement
- Unified JSON error envelope
- Request logging
"""

from __future__ import annotations

import time
import traceback
from typing import Callable, Optional, Tuple

from aiohttp import web

from photon_config.core.errors import ConfigFormatError
from photon_config.core.logging_utils import get_module_logger


logger = get_module_logger("APIMiddleware")

LOCALHOST_IPS = {"127.0.0.1", "::1", "::ffff:127.0.0.1"}


def create_error_response(code: str, message: str, status: int = 400, details: Optional[dict] = None) -> web.Response:
    """Create standardized error response."""
    error = {"error": {"code": code, "message": message}, "status": status}
    if details:
        error["error"]["details"] = details
    return web.json_response(error, status=status)


def create_success_response(message: str, status: int = 200, **extra) -> web.Response:
    return web.json_response({"success": True, "message": message, **extra}, status=status)


async def parse_json_body(request: web.Request, required: bool = True) -> Tuple[Optional[dict], Optional[web.Response]]:
    """Parse JSON body with error handling. Returns (body, error_response)."""
    try:
        body = await request.json()
    except ValueError:
        if required:
            return None, create_error_response("INVALID_BODY", "Request body must be valid JSON", status=400)
        return {}, None
    if not isinstance(body, dict):
        return None, create_error_response("INVALID_BODY", "Request body must be a JSON object", status=400)
    if required and not body:
        return None, create_error_response("EMPTY_BODY", "Request body must contain data", status=400)
    return body, None


@web.middleware
async def localhost_only_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Reject requests from any IP other than the loopback addresses."""
    peername = request.transport.get_extra_info("peername") if request.transport else None
    if peername:
        remote_ip = peername[0]
        if remote_ip not in LOCALHOST_IPS:
            logger.warning("Rejected request from non-localhost IP: %s", remote_ip)
            return create_error_response("ACCESS_DENIED", "API access is restricted to localhost only", status=403)

    return await handler(request)


@web.middleware
async def request_logging_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    start_time = time.perf_counter()
    response = await handler(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.debug("%s %s -> %s (%.1f ms)", request.method, request.path, response.status, elapsed_ms)
    return response


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """
    Catch errors and format them as JSON responses:

    {
        "error": {"code": "ERROR_CODE", "message": "Human-readable message"},
        "status": 500
    }
    """
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return create_error_response(
            e.reason.upper().replace(" ", "_") if e.reason else "HTTP_ERROR",
            e.text or str(e),
            status=e.status,
        )
    except ConfigFormatError as e:
        logger.warning("Malformed settings payload: %s", e)
        return create_error_response("MALFORMED_SETTINGS", str(e), status=400)
    except Exception as e:
        tb = traceback.format_exc()
        logger.error("Unexpected error: %s\n%s", e, tb)
        return create_error_response(
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            status=500,
            details={"type": type(e).__name__, "message": str(e)},
        )


__all__ = [
    "create_error_response",
    "create_success_response",
    "error_handling_middleware",
    "localhost_only_middleware",
    "parse_json_body",
    "request_logging_middleware",
]
