"""
Ingress middleware - request logging and error formatting.

The forwarding route answers 200 on its own; these only matter for
requests that never reach it or for bugs in it.
"""

from __future__ import annotations

import time
import traceback
from typing import Awaitable, Callable

from aiohttp import web

from ..logging_utils import get_module_logger

logger = get_module_logger("IngressMiddleware")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def request_logging_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Log method, path, status and timing of every request at DEBUG."""
    start_time = time.perf_counter()
    status = 500
    try:
        response = await handler(request)
        status = response.status
        return response
    except web.HTTPException as exc:
        status = exc.status
        raise
    finally:
        logger.debug(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.path,
            status,
            (time.perf_counter() - start_time) * 1000,
        )


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Render failures as ``{"error": {...}, "status": N}`` JSON."""
    try:
        return await handler(request)
    except web.HTTPException as exc:
        return web.json_response(
            {
                "error": {
                    "code": exc.reason.upper().replace(" ", "_") if exc.reason else "HTTP_ERROR",
                    "message": exc.text or str(exc),
                },
                "status": exc.status,
            },
            status=exc.status,
        )
    except Exception as exc:
        logger.error("Unexpected error handling %s %s: %s\n%s",
                     request.method, request.path, exc, traceback.format_exc())
        return web.json_response(
            {
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                },
                "status": 500,
            },
            status=500,
        )


__all__ = ["error_handling_middleware", "request_logging_middleware"]
