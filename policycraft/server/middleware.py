"""
HTTP middleware for the PolicyCraft server.

This module provides middleware components for the HTTP server: request
ids, request logging, error handling and CORS. Every error response
carries the standing legal disclaimer.
"""

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable

if TYPE_CHECKING:
    from aiohttp import web

from policycraft.exceptions import (
    ConfigurationError,
    CyclicDependencyError,
    MappingError,
    NotFoundError,
    PolicyCraftError,
    RevisionConflictError,
    ValidationError,
    error_response,
)
from policycraft.models.base import generate_uuid, serialize_value

Handler = Callable[["web.Request"], Awaitable["web.StreamResponse"]]
Middleware = Callable[["web.Request", Handler], Awaitable["web.StreamResponse"]]

logger = logging.getLogger("policycraft.server")

# Checked in order; subclasses before their bases.
EXCEPTION_STATUS_MAP: list[tuple[type[Exception], int]] = [
    (RevisionConflictError, 409),
    (ValidationError, 400),
    (MappingError, 400),
    (NotFoundError, 404),
    (ConfigurationError, 422),
    (CyclicDependencyError, 422),
    (PolicyCraftError, 500),
]


def status_for(error: PolicyCraftError) -> int:
    """HTTP status code for a PolicyCraft error."""
    for exc_type, code in EXCEPTION_STATUS_MAP:
        if isinstance(error, exc_type):
            return code
    return 500


def create_request_id_middleware() -> Middleware:
    """
    Create middleware that ensures every request has a unique ID.

    The request ID is taken from the X-Request-ID header if present,
    otherwise a new UUID is generated.

    Returns:
        Middleware function.
    """
    from aiohttp import web

    @web.middleware
    async def request_id_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        """Ensure request has a unique ID."""
        request_id = request.headers.get("X-Request-ID") or generate_uuid()
        request["request_id"] = request_id

        response = await handler(request)
        response.headers["X-Request-ID"] = request_id
        return response

    return request_id_middleware


def create_request_logging_middleware(log_level: int = logging.INFO) -> Middleware:
    """
    Create request logging middleware.

    Logs method, path, status and duration of each request.

    Args:
        log_level: Logging level for request logs.

    Returns:
        Middleware function.
    """
    from aiohttp import web

    @web.middleware
    async def request_logging_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        """Log request and response information."""
        start_time = time.perf_counter()
        status = 500
        try:
            response = await handler(request)
            status = response.status
            return response
        except web.HTTPException as e:
            status = e.status
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            request_id = request.get("request_id", "unknown")
            logger.log(
                log_level,
                f"{request.method} {request.path} {status} "
                f"{duration_ms:.2f}ms [{request_id[:8]}]",
            )

    return request_logging_middleware


def create_error_handler_middleware() -> Middleware:
    """
    Create error handling middleware.

    Converts PolicyCraft exceptions to JSON error responses with the
    matching HTTP status, and unexpected exceptions to a 500 response.

    Returns:
        Middleware function.
    """
    from aiohttp import web

    @web.middleware
    async def error_handler_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        """Handle exceptions and convert to HTTP responses."""
        try:
            return await handler(request)

        except web.HTTPException:
            raise

        except PolicyCraftError as e:
            request_id = request.get("request_id", "unknown")
            logger.warning(
                f"PolicyCraft error: {e.__class__.__name__}: {e.message}",
                extra={"request_id": request_id, "details": e.details},
            )
            return web.json_response(
                error_response(e, request_id), status=status_for(e), dumps=json_dumps
            )

        except asyncio.CancelledError:
            raise

        except Exception as e:
            request_id = request.get("request_id", "unknown")
            logger.exception(
                f"Unhandled exception: {e}",
                extra={"request_id": request_id},
            )
            return web.json_response(error_response(e, request_id), status=500)

    return error_handler_middleware


def create_cors_middleware(
    allowed_origins: list[str] | None = None,
    allowed_methods: list[str] | None = None,
    allowed_headers: list[str] | None = None,
    max_age: int = 3600,
) -> Middleware:
    """
    Create CORS middleware.

    Args:
        allowed_origins: Allowed origins; "*" allows any.
        allowed_methods: Allowed HTTP methods.
        allowed_headers: Allowed request headers.
        max_age: Preflight cache duration in seconds.

    Returns:
        Middleware function.
    """
    from aiohttp import web

    origins = allowed_origins or ["*"]
    methods = allowed_methods or ["GET", "POST", "OPTIONS"]
    headers = allowed_headers or ["Content-Type", "X-Request-ID"]

    @web.middleware
    async def cors_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        """Handle CORS headers."""
        origin = request.headers.get("Origin", "")
        origin_allowed = "*" in origins or origin in origins

        if request.method == "OPTIONS" and origin_allowed:
            response = web.Response(status=204)
            response.headers["Access-Control-Allow-Origin"] = origin or "*"
            response.headers["Access-Control-Allow-Methods"] = ", ".join(methods)
            response.headers["Access-Control-Allow-Headers"] = ", ".join(headers)
            response.headers["Access-Control-Max-Age"] = str(max_age)
            return response

        response = await handler(request)
        if origin_allowed:
            response.headers["Access-Control-Allow-Origin"] = origin or "*"
        return response

    return cors_middleware


def json_dumps(data: Any) -> str:
    """Serialize a response body, converting enums, datetimes and models."""
    return json.dumps(serialize_value(data))
