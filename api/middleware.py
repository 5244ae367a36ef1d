# api/middleware.py
"""
Custom middleware for observability and request tracking.
"""
import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from api.utils import hash_user_id_for_logging, user_id_from_path

logger = logging.getLogger("mood-api.middleware")

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add observability features:
    - Request ID generation (or propagation of an incoming X-Request-ID)
    - Request timing
    - User ID hashing for privacy-preserving logging
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        user_id = user_id_from_path(request.url.path)
        user_id_hash = hash_user_id_for_logging(user_id) if user_id else None

        start_time = time.perf_counter()

        request.state.request_id = request_id
        request.state.user_id_hash = user_id_hash

        logger.info(
            f"Request started: request_id={request_id}, method={request.method}, "
            f"path={request.url.path}, user_hash={user_id_hash or 'none'}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: request_id={request_id}, "
                f"error={str(e)}, "
                f"duration={duration_ms:.2f}ms, "
                f"user_hash={user_id_hash or 'none'}",
                exc_info=True
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        logger.info(
            f"Request completed: request_id={request_id}, "
            f"status={response.status_code}, "
            f"duration={duration_ms:.2f}ms, "
            f"user_hash={user_id_hash or 'none'}"
        )

        if hasattr(request.state, "metrics"):
            logger.info(f"Request metrics: request_id={request_id}, {request.state.metrics}")

        return response


def add_request_metrics(request: Request, **metrics):
    """
    Attach custom metrics to the request; logged when the response completes.

    Example:
        add_request_metrics(request, patients=12, report_id="week-2024-1")
    """
    if not hasattr(request.state, "metrics"):
        request.state.metrics = {}

    request.state.metrics.update(metrics)
