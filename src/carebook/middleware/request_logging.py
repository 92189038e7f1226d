"""Request logging and correlation ids."""

import logging
import time
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"


def _status_symbol(status_code: int) -> str:
    if status_code < 300:
        return "✓"
    if status_code < 400:
        return "→"
    if status_code < 500:
        return "⚠"
    return "✗"


def internal_error_response(request_id: str) -> JSONResponse:
    """Generic 500 envelope; details stay in the log line with the same id."""
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_error",
                "message": "Internal server error",
                "correlation_id": request_id,
            }
        },
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its outcome, duration and correlation id.

    The id comes from the incoming ``x-request-id`` header or is generated,
    is exposed to handlers as ``request.state.request_id`` and is echoed in
    the response header.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        route = f"{request.method} {request.url.path}"
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"[{request_id}] {route} raised an unhandled exception")
            response = internal_error_response(request_id)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{_status_symbol(response.status_code)} [{request_id}] {route} "
            f"{response.status_code} {elapsed_ms:.1f}ms"
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
