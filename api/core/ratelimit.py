"""Rate limiting configuration using slowapi.

memory:// storage only works for a single worker. Set RATELIMIT_STORAGE_URI
to a Redis URL when running several replicas.
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

if not settings.debug and settings.ratelimit_storage_uri == "memory://":
    logger.warning(
        "ratelimit.storage.in_memory",
        extra={"hint": "Set RATELIMIT_STORAGE_URI for multi-replica deployments"},
    )


def _get_request_identifier(request: Request) -> str:
    """Authenticated user id when known, client address otherwise.

    ``request.state.user_id`` is set by the LoggedUser dependency, so it is
    only available on routes that resolve the user before the limit check.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"

    return get_remote_address(request)


_using_redis = settings.ratelimit_storage_uri.startswith("redis://")

limiter = Limiter(
    key_func=_get_request_identifier,
    default_limits=["300/minute"],
    storage_uri=settings.ratelimit_storage_uri,
    in_memory_fallback_enabled=_using_redis,
    key_prefix="ouca:",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    logger.warning(
        "ratelimit.exceeded",
        extra={
            "identifier": _get_request_identifier(request),
            "limit": exc.detail,
        },
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


# Workbook generation is the most expensive operation of the API
EXPORT_LIMIT = "10/minute"

HEALTH_LIMIT = "30/minute"
