"""
API Middleware — Request logging with timing.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("matchtrack.api")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every API request with its status and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()
        request.state.request_id = request_id

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "[%s] %s %s → %d (%.1fms)",
            request_id, request.method, request.url.path, response.status_code, duration_ms,
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.1f}ms"
        return response
