"""Request tracing middleware.

Every request gets an id (taken from ``X-Request-ID`` when the caller sends
one) that is bound to the logging context and echoed back on the response.

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app)
"""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = frozenset({"/health"})


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request context and log each request's outcome and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get(REQUEST_ID_HEADER),
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()

        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.exception(
                    "Unhandled error on %s %s",
                    request.method,
                    request.url.path,
                    extra={
                        "extra_fields": {
                            "error": str(exc),
                            "duration_ms": _elapsed_ms(started),
                        }
                    },
                )
                raise

            if request.url.path not in QUIET_PATHS:
                logger.log(
                    _level_for(response.status_code),
                    "%s %s -> %d",
                    request.method,
                    request.url.path,
                    response.status_code,
                    extra={
                        "extra_fields": {
                            "status_code": response.status_code,
                            "duration_ms": _elapsed_ms(started),
                            "query": request.url.query or None,
                        }
                    },
                )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install request tracing on ``app``."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
