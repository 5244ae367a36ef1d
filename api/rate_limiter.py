"""
Rate limiting configuration for the Mood Reports API.

Rate limits are configurable via environment variables.
Format: "number/period" where period can be: second, minute, hour, day
"""
import logging
import os

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from api.utils import user_id_from_path

logger = logging.getLogger("mood-api.rate_limiter")

DEFAULT_RATE_LIMIT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
REPORTS_RATE_LIMIT = os.getenv("RATE_LIMIT_REPORTS", "10/minute")
DATA_ACCESS_RATE_LIMIT = os.getenv("RATE_LIMIT_DATA_ACCESS", "30/minute")

logger.info(f"Rate limiting configured - Default: {DEFAULT_RATE_LIMIT}, "
            f"Reports: {REPORTS_RATE_LIMIT}, Data: {DATA_ACCESS_RATE_LIMIT}")


def get_user_id_from_request(request: Request) -> str:
    """
    Extract user identifier from request for rate limiting.

    Uses the user id that follows ``/users/`` or ``/patients/`` in the path,
    falling back to the client IP address. This rate limits per user rather
    than globally.
    """
    user_id = user_id_from_path(request.url.path)
    if user_id:
        return f"user:{user_id}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_user_id_from_request,
    default_limits=[DEFAULT_RATE_LIMIT],
    # redis://host:port/db to share counters between workers
    storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded responses.

    Returns a 429 JSON response with retry information.
    """
    logger.warning(
        f"Rate limit exceeded for {get_user_id_from_request(request)} "
        f"on path {request.url.path}"
    )

    retry_after = getattr(exc, "retry_after", 60)
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down and try again later.",
            "detail": str(exc.detail) if hasattr(exc, "detail") else "Rate limit exceeded",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )
