"""Rate limiting configuration for the commerce API.

Uses slowapi; storage defaults to in-memory and can point at Redis through
``RATE_LIMIT_STORAGE_URI`` for limits shared across instances.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def _get_client_ip(request: Request) -> str:
    """
    Get client IP from request, honouring X-Forwarded-For from proxies.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def _get_user_or_ip(request: Request) -> str:
    """
    Rate limit by user ID if authenticated, otherwise by IP.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.user_id}"
    return f"ip:{_get_client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    """Build the shared limiter from settings (cached per process)."""
    settings = get_settings()
    return Limiter(
        key_func=_get_user_or_ip,
        default_limits=[settings.RATE_LIMIT_DEFAULT],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """429 in the same ``{detail, code}`` shape as every other API error."""
    window = exc.detail or get_settings().RATE_LIMIT_DEFAULT
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded ({window}).",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def checkout_limit(func: Callable) -> Callable:
    """Per-user limit on order placement and reorders."""
    return limiter.limit(lambda: get_settings().RATE_LIMIT_CHECKOUT)(func)


def admin_limit(func: Callable) -> Callable:
    """Relaxed limit for admin writes."""
    return limiter.limit(lambda: get_settings().RATE_LIMIT_ADMIN)(func)
