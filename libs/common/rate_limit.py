"""Rate limiting for the store API.

slowapi counters live in the storage named by RATE_LIMIT_STORAGE_URI:
``memory://`` for a single process, a Redis URI when several instances must
share one budget. Limits are keyed by client IP.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings

PUBLIC_RATE = "100/minute"
ADMIN_RATE = "20/minute"


def get_client_ip(request: Request) -> str:
    """First address in X-Forwarded-For when behind a proxy, else the peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=get_client_ip,
        default_limits=[PUBLIC_RATE],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """429 in the same JSON shape as every other store error."""
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded: {exc.detail}",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def api_limit(func: Callable) -> Callable:
    """Public endpoints: checkout, coupon validation, client error reports."""
    return limiter.limit(PUBLIC_RATE)(func)


def admin_limit(func: Callable) -> Callable:
    """Mutating admin endpoints."""
    return limiter.limit(ADMIN_RATE)(func)
