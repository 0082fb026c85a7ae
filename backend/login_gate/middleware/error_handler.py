"""Error handler middleware for uncaught exceptions."""

import logging
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from login_gate.config import settings
from login_gate.utils.logging_utils import redact_ip

logger = logging.getLogger(__name__)


def _error_body(exc: Exception) -> dict:
    """Response body for an unhandled error; internals only with DEBUG."""
    if settings.DEBUG:
        return {
            "error": str(exc),
            "type": type(exc).__name__,
            "detail": "An error occurred processing your request",
        }
    return {
        "error": "Internal server error",
        "detail": "The login service could not process the request.",
    }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Turns exceptions no exception handler claimed into a 500 JSON response.

    Login errors with a defined answer (configuration, missing cookie, form
    protection) are handled by the exception handlers in ``main`` and never
    reach this middleware.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(
                "Unhandled error | method=%s | path=%s | ip=%s | error=%s",
                request.method,
                request.url.path,
                redact_ip(request.client.host if request.client else None),
                type(exc).__name__,
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_body(exc)
            )
