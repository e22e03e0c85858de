"""
Global error handler middleware: any exception that escapes the app becomes a JSON 500.
Sits inside CORSMiddleware so error responses still carry CORS headers.
"""
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging

from config import settings

logger = logging.getLogger(__name__)


class GlobalErrorMiddleware(BaseHTTPMiddleware):
    """
    Ensures every response includes X-Request-ID and X-Response-Time,
    and that unhandled exceptions produce a JSON body.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = getattr(request.state, "request_id", None) \
            or request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(f"[{request_id}] Unhandled exception in {request.url.path}: {e}")
            response = JSONResponse(
                status_code=500,
                content={
                    "error": "internal_server_error",
                    "detail": str(e) if settings.debug else "Internal server error",
                    "request_id": request_id,
                    "path": str(request.url.path),
                    "method": request.method,
                }
            )
            response.headers["X-Error-Handler"] = "global"

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{(time.perf_counter() - start_time) * 1000:.2f}ms"
        return response
