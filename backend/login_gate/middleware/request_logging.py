"""Request/response logging middleware."""

import logging
import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from login_gate.utils.logging_utils import redact_ip

logger = logging.getLogger(__name__)


def _format(event: str, **fields) -> str:
    return " | ".join([event] + [f"{key}={value}" for key, value in fields.items()])


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request with a request id, status and duration.

    The request id is bound to the structlog context, so controller events
    logged while handling the request carry it too. Query strings are never
    logged: login and reset links carry tokens.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        line = {
            "id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

        structlog.contextvars.bind_contextvars(request_id=request_id)
        logger.info(
            _format(
                "Request started",
                **line,
                ip=redact_ip(request.client.host if request.client else None),
            )
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                _format(
                    "Request failed",
                    **line,
                    duration=f"{int((time.perf_counter() - started) * 1000)}ms",
                    error=type(exc).__name__,
                )
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        logger.info(
            _format(
                "Request completed",
                **line,
                status=response.status_code,
                duration=f"{int((time.perf_counter() - started) * 1000)}ms",
            )
        )
        response.headers["X-Request-ID"] = request_id
        return response
