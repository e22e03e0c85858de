"""
Request tracking middleware for X-Request-ID propagation and Server-Timing headers.
"""
import time
import uuid
from typing import Callable, Dict
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import logging

logger = logging.getLogger(__name__)

MAX_REQUEST_ID_LENGTH = 128


def server_timing_header(segments: Dict[str, float]) -> str:
    """Format {name: duration_ms} as a Server-Timing header value."""
    return ", ".join(f"{name};dur={duration_ms:.2f}" for name, duration_ms in segments.items())


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request tracking.

    Routes may add their own segments to request.state.timing_segments
    ({name: duration_ms}); they are reported alongside the total.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        total_start = time.perf_counter()

        request_id = request.headers.get("X-Request-ID", "")[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.timing_segments = {}

        logger.info(f"[{request_id}] {request.method} {request.url.path} - Started")

        try:
            response = await call_next(request)
        except Exception as e:
            total_duration_ms = (time.perf_counter() - total_start) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Failed after {total_duration_ms:.2f}ms: {e}"
            )
            raise

        total_duration_ms = (time.perf_counter() - total_start) * 1000
        segments = dict(getattr(request.state, "timing_segments", {}) or {})
        segments["total"] = total_duration_ms

        response.headers["X-Request-ID"] = request_id
        response.headers["Server-Timing"] = server_timing_header(segments)

        logger.info(
            f"[{request_id}] {request.method} {request.url.path} - "
            f"Completed with {response.status_code} in {total_duration_ms:.2f}ms"
        )
        return response
